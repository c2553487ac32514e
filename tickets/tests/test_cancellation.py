from decimal import Decimal

import pytest
from django.utils import timezone

from tickets.exceptions import NotFoundError
from tickets.models import Order, Ticket
from tickets.services import CancellationService
from tickets.signals import tickets_cancelled

pytestmark = pytest.mark.django_db


def test_cancel_order_keeps_used_tickets(store, issue, django_capture_on_commit_callbacks):
    tickets = issue(quantity=3, amount_total=Decimal('300.00'), payment_id='pi_cancel')
    store.transition(tickets[0].pk, Ticket.Status.VALID, Ticket.Status.USED, used_at=timezone.now())

    received = []

    def listener(sender, order, tickets, **kwargs):
        received.append(len(tickets))

    tickets_cancelled.connect(listener)
    try:
        with django_capture_on_commit_callbacks(execute=True):
            assert CancellationService(store).cancel_order('pi_cancel') == 2
    finally:
        tickets_cancelled.disconnect(listener)

    assert received == [2]
    order = Order.objects.get(payment_id='pi_cancel')
    assert order.status == Order.Status.REFUNDED
    assert sorted(order.tickets.values_list('status', flat=True)) == ['cancelled', 'cancelled', 'used']


def test_cancel_order_is_idempotent(store, issue):
    issue(quantity=2, amount_total=Decimal('200.00'), payment_id='pi_twice')
    service = CancellationService(store)

    assert service.cancel_order('pi_twice') == 2
    refunded_at = Order.objects.get(payment_id='pi_twice').refunded_at
    assert service.cancel_order('pi_twice') == 0
    assert Order.objects.get(payment_id='pi_twice').refunded_at == refunded_at


def test_cancel_unknown_order(store):
    with pytest.raises(NotFoundError):
        CancellationService(store).cancel_order('pi_missing')
