import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction

from events.models import Event
from .exceptions import ConflictError
from .models import Ticket
from .signals import ticket_reminder_due
from .store import TicketStore, store_call

logger = logging.getLogger('tickets')


class ExpirySweeper:
    """
    Плановая обработка прошедших и ближайших событий.

    sweep(now) гасит действительные билеты прошедших событий и закрывает сами события.
    send_reminders(now) один раз на билет отправляет напоминание о завтрашнем событии.
    Оба метода зависят только от now и состояния БД, повторный запуск ничего не ломает.
    """

    def __init__(self, store: Optional[TicketStore] = None):
        self.store = store or TicketStore()

    @property
    def events(self):
        return Event.objects.using(self.store.using)

    @store_call
    def sweep(self, now) -> int:
        # starts_at <= now отбираем в БД, длительность досчитываем в Python
        candidates = [e for e in self.events.filter(status=Event.Status.ACTIVE, starts_at__lte=now) if e.is_past(now)]
        if not candidates:
            logger.info("Expiry sweep: no elapsed events at %s", now.isoformat())
            return 0

        expired_total = 0
        for event in candidates:
            expired_total += self._close_event(event, now)
        logger.info("Expiry sweep: events=%s tickets_expired=%s", len(candidates), expired_total)
        return expired_total

    def _close_event(self, event: Event, now) -> int:
        expired = 0
        with transaction.atomic(using=self.store.using):
            # сначала билеты, потом событие: оборванный проход доделает следующий запуск
            for ticket_id in self.store.ticket_ids_with_status(status=Ticket.Status.VALID, event_id=event.pk):
                try:
                    self.store.transition(ticket_id, Ticket.Status.VALID, Ticket.Status.EXPIRED)
                    expired += 1
                except ConflictError:
                    # билет погасили сканом на входе в тот же момент
                    continue

            (self.events
             .filter(pk=event.pk, status=Event.Status.ACTIVE)
             .update(status=Event.Status.COMPLETED, completed_at=now))
        logger.info("Event completed: event=%s tickets_expired=%s", event.pk, expired)
        return expired

    @store_call
    def send_reminders(self, now, window_hours=None) -> int:
        window = timedelta(hours=window_hours or settings.TICKET_REMINDER_WINDOW_HOURS)
        upcoming = self.events.filter(status=Event.Status.ACTIVE, starts_at__gt=now, starts_at__lte=now + window)

        sent = 0
        for event in upcoming:
            for ticket_id in self.store.pending_reminders(event.pk):
                with transaction.atomic(using=self.store.using):
                    if not self.store.mark_reminded(ticket_id, now):
                        continue
                    ticket = self.store.get(ticket_id)
                    transaction.on_commit(
                        lambda t=ticket: ticket_reminder_due.send(sender=self.__class__, ticket=t),
                        using=self.store.using,
                    )
                    sent += 1
        logger.info("Reminder sweep: reminders=%s", sent)
        return sent
