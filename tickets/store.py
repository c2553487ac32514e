"""
Хранилище билетов.

Вся работа сервисов с таблицами билетов и журналом проверок идёт через TicketStore.
Главная операция здесь transition(): условный UPDATE ... WHERE status = from_status,
который выполняется атомарно на стороне БД. Двое сканеров с одним билетом не могут
оба увидеть успешный переход valid -> used.
"""
import logging
from functools import wraps

from django.db import IntegrityError, InterfaceError, OperationalError, transaction

from .exceptions import (
    ConflictError,
    DuplicateCodeError,
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailableError,
)
from .models import Ticket, VerificationRecord

logger = logging.getLogger('tickets')


def store_call(func):
    # Ошибки соединения и таймауты БД наружу уходят как StoreUnavailableError
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as e:
            logger.error("Ticket store unavailable in %s: %s", func.__name__, e)
            raise StoreUnavailableError(str(e)) from e
    return wrapper


class TicketStore:
    def __init__(self, using='default'):
        self.using = using

    @property
    def tickets(self):
        return Ticket.objects.using(self.using)

    @store_call
    def create(self, ticket: Ticket) -> Ticket:
        try:
            # savepoint, чтобы конфликт не ломал внешнюю транзакцию выпуска
            with transaction.atomic(using=self.using):
                ticket.save(using=self.using, force_insert=True)
        except IntegrityError:
            if self.tickets.filter(code=ticket.code).exists():
                raise DuplicateCodeError(ticket.code)
            raise
        return ticket

    @store_call
    def get_by_code(self, code: str) -> Ticket:
        try:
            return self.tickets.select_related('event').get(code=code)
        except Ticket.DoesNotExist:
            raise NotFoundError(code)

    @store_call
    def get(self, ticket_id) -> Ticket:
        try:
            return self.tickets.select_related('event').get(pk=ticket_id)
        except Ticket.DoesNotExist:
            raise NotFoundError(str(ticket_id))

    @store_call
    def get_by_owner(self, owner_id: str) -> list:
        return list(self.tickets.select_related('event').filter(owner_id=owner_id).order_by('issued_at'))

    @store_call
    def transition(self, ticket_id, from_status, to_status, **extra) -> Ticket:
        from_status, to_status = str(from_status), str(to_status)
        if from_status in Ticket.TERMINAL:
            raise InvalidTransitionError(f"{from_status} is terminal")
        if to_status not in Ticket.TRANSITIONS.get(from_status, ()):
            raise InvalidTransitionError(f"{from_status} -> {to_status} is not allowed")

        # compare-and-set: строка меняется, только если статус всё ещё from_status
        updated = (self.tickets
                   .filter(pk=ticket_id, status=from_status)
                   .update(status=to_status, **extra))
        if updated:
            return self.get(ticket_id)

        current = self.tickets.filter(pk=ticket_id).values_list('status', flat=True).first()
        if current is None:
            raise NotFoundError(str(ticket_id))
        logger.debug("CAS lost: ticket=%s expected=%s actual=%s", ticket_id, from_status, current)
        raise ConflictError(f"ticket {ticket_id} is {current}, expected {from_status}")

    @store_call
    def record_verification(self, *, code, outcome, verified_by, verified_at, event_id=None, reason='') -> VerificationRecord:
        return VerificationRecord.objects.using(self.using).create(
            event_id=event_id,
            code=code,
            outcome=str(outcome),
            reason=reason,
            verified_by=verified_by,
            verified_at=verified_at,
        )

    # --- выборки для свипера и отмены заказов ---

    @store_call
    def tickets_for_order(self, order) -> list:
        return list(self.tickets.filter(order=order).order_by('issued_at'))

    @store_call
    def ticket_ids_with_status(self, *, status, event_id=None, order_id=None) -> list:
        qs = self.tickets.filter(status=str(status))
        if event_id is not None:
            qs = qs.filter(event_id=event_id)
        if order_id is not None:
            qs = qs.filter(order_id=order_id)
        return list(qs.values_list('pk', flat=True))

    @store_call
    def pending_reminders(self, event_id) -> list:
        return list(self.tickets
                    .filter(event_id=event_id, status=Ticket.Status.VALID, reminder_sent_at__isnull=True)
                    .values_list('pk', flat=True))

    @store_call
    def mark_reminded(self, ticket_id, now) -> bool:
        # напоминание забирает ровно один проход свипера
        return bool(self.tickets
                    .filter(pk=ticket_id, reminder_sent_at__isnull=True)
                    .update(reminder_sent_at=now))
