# tickets/services.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from events.models import Event
from .codes import CodeGenerator
from .exceptions import (
    ConflictError,
    InvalidPaymentEventError,
    NotFoundError,
    StoreUnavailableError,
)
from .models import Order, Ticket
from .signals import tickets_cancelled, tickets_issued
from .store import TicketStore, store_call

logger = logging.getLogger('tickets')

CENT = Decimal('0.01')
VERIFIED_BY_MAX_LENGTH = 150


def split_price(amount_total, quantity: int) -> list:
    """
    Делит сумму заказа на quantity билетов.
    Считаем в копейках: остаток от деления по одной копейке уходит первым билетам,
    поэтому сумма цен билетов всегда равна сумме заказа.
    """
    cents = int((Decimal(amount_total) * 100).to_integral_value(rounding=ROUND_HALF_UP))
    base, remainder = divmod(cents, quantity)
    return [
        (Decimal(base + (1 if i < remainder else 0)) * CENT).quantize(CENT)
        for i in range(quantity)
    ]


@dataclass
class PaymentEvent:
    """Подтверждённый платёж, пришедший от платёжной системы."""

    payment_id: str
    event_id: object
    quantity: int
    amount_total: Decimal
    buyer_id: str = ''
    buyer_email: str = ''
    currency: str = 'usd'
    provider: str = 'stripe'

    def validate(self):
        if not isinstance(self.payment_id, str) or not self.payment_id.strip():
            raise InvalidPaymentEventError("Payment event has no idempotency key")
        self.payment_id = self.payment_id.strip()

        if self.event_id in (None, ''):
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has no event id")
        try:
            self.event_id = int(self.event_id)
        except (TypeError, ValueError):
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has bad event id {self.event_id!r}")

        try:
            self.quantity = int(self.quantity)
        except (TypeError, ValueError):
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has bad quantity {self.quantity!r}")
        if self.quantity < 1:
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has quantity {self.quantity}")

        try:
            self.amount_total = Decimal(str(self.amount_total)).quantize(CENT)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has bad amount {self.amount_total!r}")
        if self.amount_total < 0:
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has negative amount")

        if not self.buyer_email:
            raise InvalidPaymentEventError(f"Payment {self.payment_id} has no buyer email")
        # гостевая покупка: идентификатором владельца служит email
        self.buyer_id = self.buyer_id or self.buyer_email
        return self


class IssuanceService:
    def __init__(self, store: Optional[TicketStore] = None, codes: Optional[CodeGenerator] = None):
        self.store = store or TicketStore()
        self.codes = codes or CodeGenerator()

    @store_call
    def issue(self, payment_event: PaymentEvent) -> list:
        """
        Выпускает билеты по оплаченному платежу ровно один раз.

        Повторная доставка того же платежа возвращает уже выпущенные билеты.
        Если прошлая доставка оборвалась на середине, дописываются только недостающие.
        """
        payment_event.validate()

        with transaction.atomic(using=self.store.using):
            order, created = self._claim_order(payment_event)
            existing = self.store.tickets_for_order(order)

            if order.status == Order.Status.REFUNDED or len(existing) >= order.quantity:
                logger.info("Payment replay ignored: payment=%s order=%s tickets=%s",
                            order.payment_id, order.pk, len(existing))
                return existing

            if not created:
                logger.warning("Completing partial batch: payment=%s order=%s have=%s need=%s",
                               order.payment_id, order.pk, len(existing), order.quantity)

            prices = split_price(order.total_price, order.quantity)
            issued = [self._issue_one(order, prices[i]) for i in range(len(existing), order.quantity)]

            (Event.objects.using(self.store.using)
             .filter(pk=order.event_id)
             .update(tickets_sold=F('tickets_sold') + len(issued)))

            tickets = existing + issued
            transaction.on_commit(
                lambda: tickets_issued.send(sender=self.__class__, order=order, tickets=tickets),
                using=self.store.using,
            )

        logger.info("Tickets issued: payment=%s order=%s event=%s count=%s",
                    order.payment_id, order.pk, order.event_id, len(issued))
        return tickets

    def _claim_order(self, pe: PaymentEvent):
        # уникальный payment_id в БД и есть проверка идемпотентности
        try:
            event = Event.objects.using(self.store.using).get(pk=pe.event_id)
        except Event.DoesNotExist:
            raise NotFoundError(f"Event {pe.event_id} not found for payment {pe.payment_id}")

        try:
            with transaction.atomic(using=self.store.using):
                order = Order.objects.using(self.store.using).create(
                    payment_id=pe.payment_id,
                    payment_provider=pe.provider,
                    event=event,
                    buyer_id=pe.buyer_id,
                    buyer_email=pe.buyer_email,
                    quantity=pe.quantity,
                    total_price=pe.amount_total,
                    currency=pe.currency,
                )
            return order, True
        except IntegrityError:
            order = (Order.objects.using(self.store.using)
                     .select_for_update()
                     .get(payment_id=pe.payment_id))
            if order.quantity != pe.quantity or order.total_price != pe.amount_total:
                logger.warning("Redelivered payment differs from stored order: payment=%s", pe.payment_id)
            return order, False

    def _issue_one(self, order: Order, price: Decimal) -> Ticket:
        def persist(code):
            return self.store.create(Ticket(
                order=order,
                event_id=order.event_id,
                code=code,
                owner_id=order.buyer_id,
                owner_email=order.buyer_email,
                price=price,
                status=Ticket.Status.VALID,
                issued_at=timezone.now(),
            ))
        return self.codes.issue_code(order.event_id, persist)


@dataclass
class VerificationOutcome:
    VALID = 'valid'
    USED = 'used'
    INVALID = 'invalid'
    UNAVAILABLE = 'unavailable'

    outcome: str
    code: str
    event_id: Optional[int] = None
    event_title: str = ''
    used_at: Optional[datetime] = None
    reason: str = ''

    @property
    def http_status(self) -> int:
        if self.outcome in (self.VALID, self.USED):
            return 200
        if self.outcome == self.UNAVAILABLE:
            return 503
        return 404

    def as_dict(self) -> dict:
        data = {
            'outcome': self.outcome,
            'code': self.code,
            'eventId': self.event_id,
            'eventTitle': self.event_title,
        }
        if self.used_at:
            data['usedAt'] = self.used_at.isoformat()
        if self.reason:
            data['reason'] = self.reason
        return data


def _outcome_for(ticket: Ticket, code: str) -> VerificationOutcome:
    if ticket.status == Ticket.Status.VALID:
        outcome, reason = VerificationOutcome.VALID, ''
    elif ticket.status == Ticket.Status.USED:
        outcome, reason = VerificationOutcome.USED, ''
    else:
        outcome, reason = VerificationOutcome.INVALID, str(ticket.status)
    return VerificationOutcome(
        outcome=outcome,
        code=code,
        event_id=ticket.event_id,
        event_title=ticket.event.title,
        used_at=ticket.used_at if outcome == VerificationOutcome.USED else None,
        reason=reason,
    )


class VerificationService:
    """
    Проверка билета на входе.

    verify() отвечает на вопрос «можно ли пройти по этому коду сейчас» и при ответе
    valid переводит билет в used. Каждый вызов пишет ровно одну запись в журнал.
    """

    def __init__(self, store: Optional[TicketStore] = None, clock=timezone.now):
        self.store = store or TicketStore()
        self.clock = clock

    def check(self, code: str) -> VerificationOutcome:
        # только чтение: статус не меняется, журнал не пишется
        try:
            return _outcome_for(self.store.get_by_code(code), code)
        except NotFoundError:
            return VerificationOutcome(VerificationOutcome.INVALID, code, reason='not_found')
        except StoreUnavailableError:
            return VerificationOutcome(VerificationOutcome.UNAVAILABLE, code, reason='store_unavailable')

    def verify(self, code: str, verified_by: str) -> VerificationOutcome:
        verified_by = verified_by.strip() if isinstance(verified_by, str) else ''
        if not verified_by or len(verified_by) > VERIFIED_BY_MAX_LENGTH:
            raise ValueError("verifiedBy is required")

        try:
            return self._verify(code, verified_by)
        except StoreUnavailableError:
            # по таймауту не говорим «недействителен»: пусть контролёр повторит скан
            logger.error("Verification unavailable: code=%s by=%s", code, verified_by)
            return VerificationOutcome(VerificationOutcome.UNAVAILABLE, code, reason='store_unavailable')

    @store_call
    def _verify(self, code, verified_by):
        now = self.clock()
        try:
            ticket = self.store.get_by_code(code)
        except NotFoundError:
            ticket = None

        with transaction.atomic(using=self.store.using):
            if ticket is None:
                result = VerificationOutcome(VerificationOutcome.INVALID, code, reason='not_found')
                self._record(result, verified_by, now)
                logger.info("Scan of unknown code: code=%s by=%s", code, verified_by)
                return result

            if ticket.status == Ticket.Status.VALID:
                try:
                    ticket = self.store.transition(ticket.pk, Ticket.Status.VALID, Ticket.Status.USED, used_at=now)
                    logger.info("Ticket redeemed: code=%s by=%s", code, verified_by)
                except ConflictError:
                    # другой сканер успел раньше: перечитываем и отвечаем как при повторном скане
                    ticket = self.store.get(ticket.pk)
                    logger.info("Redemption race lost: code=%s by=%s now=%s", code, verified_by, ticket.status)
                    result = _outcome_for(ticket, code)
                else:
                    result = VerificationOutcome(VerificationOutcome.VALID, code,
                                                 event_id=ticket.event_id, event_title=ticket.event.title)
            else:
                result = _outcome_for(ticket, code)

            self._record(result, verified_by, now)
        return result

    def _record(self, result: VerificationOutcome, verified_by, now):
        self.store.record_verification(
            code=result.code,
            outcome=result.outcome,
            verified_by=verified_by,
            verified_at=now,
            event_id=result.event_id,
            reason=result.reason,
        )


class CancellationService:
    def __init__(self, store: Optional[TicketStore] = None):
        self.store = store or TicketStore()

    @store_call
    def cancel_order(self, payment_id: str, now=None) -> int:
        """Возврат платежа: заказ помечается возвращённым, действительные билеты отменяются."""
        now = now or timezone.now()
        with transaction.atomic(using=self.store.using):
            try:
                order = (Order.objects.using(self.store.using)
                         .select_for_update()
                         .get(payment_id=payment_id))
            except Order.DoesNotExist:
                raise NotFoundError(f"Order for payment {payment_id} not found")

            (Order.objects.using(self.store.using)
             .filter(pk=order.pk, status=Order.Status.PAID)
             .update(status=Order.Status.REFUNDED, refunded_at=now))

            cancelled = []
            for ticket_id in self.store.ticket_ids_with_status(status=Ticket.Status.VALID, order_id=order.pk):
                try:
                    cancelled.append(self.store.transition(ticket_id, Ticket.Status.VALID, Ticket.Status.CANCELLED))
                except ConflictError:
                    # билет уже прошёл на вход, использованный не отменяем
                    continue

            if cancelled:
                transaction.on_commit(
                    lambda: tickets_cancelled.send(sender=self.__class__, order=order, tickets=cancelled),
                    using=self.store.using,
                )

        logger.info("Order refunded: payment=%s order=%s cancelled=%s", payment_id, order.pk, len(cancelled))
        return len(cancelled)
