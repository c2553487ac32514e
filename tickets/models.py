# tickets/models.py
from django.db import models
from django.db.models import Q
from django.utils import timezone
import uuid

from events.models import Event


class Order(models.Model):
    class Status(models.TextChoices):
        PAID = 'paid', 'Оплачен'
        REFUNDED = 'refunded', 'Возвращён'

    # ключ идемпотентности платёжной системы: один платёж - один заказ
    payment_id = models.CharField(max_length=255, unique=True)
    payment_provider = models.CharField(max_length=50, default='stripe')
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='orders')
    buyer_id = models.CharField(max_length=255)
    buyer_email = models.EmailField()
    quantity = models.PositiveIntegerField()
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10, default='usd')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PAID)

    created_at = models.DateTimeField(auto_now_add=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f'Order #{self.pk} ({self.get_status_display()})'


class Ticket(models.Model):
    class Status(models.TextChoices):
        VALID = 'valid', 'Действителен'
        USED = 'used', 'Использован'
        CANCELLED = 'cancelled', 'Отменён'
        EXPIRED = 'expired', 'Истёк'

    # из конечных статусов выхода нет
    TERMINAL = frozenset({Status.USED.value, Status.CANCELLED.value, Status.EXPIRED.value})
    TRANSITIONS = {
        Status.VALID.value: frozenset({Status.USED.value, Status.EXPIRED.value, Status.CANCELLED.value}),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name='tickets')
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='tickets')

    code = models.CharField(max_length=64, unique=True)
    owner_id = models.CharField(max_length=255, db_index=True)
    owner_email = models.EmailField()
    price = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.VALID)
    issued_at = models.DateTimeField(default=timezone.now)
    used_at = models.DateTimeField(null=True, blank=True)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['issued_at']
        indexes = [
            models.Index(fields=['event', 'status'], name='ticket_event_status_idx'),
        ]
        constraints = [
            # used_at выставлен тогда и только тогда, когда билет использован
            models.CheckConstraint(
                condition=(
                    Q(status='used', used_at__isnull=False)
                    | (~Q(status='used') & Q(used_at__isnull=True))
                ),
                name='ticket_used_at_iff_used',
            ),
        ]

    def __str__(self):
        return f'Ticket {self.code} ({self.status})'

    @property
    def is_terminal(self) -> bool:
        return str(self.status) in self.TERMINAL


class VerificationRecord(models.Model):
    """Журнал попыток прохода. Пишется на каждый скан, не меняется и не удаляется."""

    class Outcome(models.TextChoices):
        VALID = 'valid', 'Проход разрешён'
        USED = 'used', 'Уже использован'
        INVALID = 'invalid', 'Недействителен'

    # для неизвестного кода события нет
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='verifications', null=True, blank=True)
    code = models.CharField(max_length=64, db_index=True)
    outcome = models.CharField(max_length=20, choices=Outcome.choices)
    reason = models.CharField(max_length=64, blank=True)
    verified_by = models.CharField(max_length=150)
    verified_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-verified_at']
        indexes = [
            models.Index(fields=['event', 'verified_at'], name='verification_event_idx'),
        ]

    def __str__(self):
        return f'{self.code} -> {self.outcome} ({self.verified_by})'
