"""
Common test fixtures.

Provides events in various states, a ticket store handle and helpers for
issuing tickets from a payment and for creating tickets directly in a
given lifecycle state.
"""
from datetime import timedelta
from decimal import Decimal
import itertools

import pytest
from django.utils import timezone

from events.models import Event
from tickets.models import Order, Ticket
from tickets.services import IssuanceService, PaymentEvent
from tickets.store import TicketStore

_payment_seq = itertools.count(1)


@pytest.fixture
def store():
    return TicketStore()


@pytest.fixture
def make_event(db):
    """Create an event starting at the given offset from now."""
    def _make(title="Jazz Night", starts_in=timedelta(days=7), status=Event.Status.ACTIVE, **kwargs):
        kwargs.setdefault('location', 'Main Hall')
        kwargs.setdefault('price', Decimal('100.00'))
        kwargs.setdefault('tickets_available', 100)
        return Event.objects.create(title=title, starts_at=timezone.now() + starts_in, status=status, **kwargs)
    return _make


@pytest.fixture
def event(make_event):
    return make_event()


@pytest.fixture
def payment(event):
    """Build a payment event for the default event."""
    def _payment(quantity=1, amount_total=Decimal('100.00'), payment_id=None, **kwargs):
        kwargs.setdefault('event_id', event.pk)
        kwargs.setdefault('buyer_id', 'user-1')
        kwargs.setdefault('buyer_email', 'buyer@example.com')
        return PaymentEvent(
            payment_id=payment_id or f"pi_test_{next(_payment_seq)}",
            quantity=quantity,
            amount_total=amount_total,
            **kwargs,
        )
    return _payment


@pytest.fixture
def issue(store, payment):
    """Issue tickets for a fresh payment and return them."""
    def _issue(quantity=1, amount_total=None, **kwargs):
        amount_total = amount_total if amount_total is not None else Decimal('100.00') * quantity
        return IssuanceService(store).issue(payment(quantity=quantity, amount_total=amount_total, **kwargs))
    return _issue


@pytest.fixture
def make_ticket(event):
    """Create a ticket directly in the requested status, bypassing issuance."""
    counter = itertools.count(1)

    def _make(status=Ticket.Status.VALID, used_at=None, ticket_event=None, **kwargs):
        ticket_event = ticket_event or event
        n = next(counter)
        order = Order.objects.create(
            payment_id=f"pi_direct_{ticket_event.pk}_{n}_{next(_payment_seq)}",
            event=ticket_event,
            buyer_id='user-1',
            buyer_email='buyer@example.com',
            quantity=1,
            total_price=Decimal('100.00'),
        )
        if status == Ticket.Status.USED and used_at is None:
            used_at = timezone.now()
        kwargs.setdefault('code', f"TCT-{ticket_event.pk}-{n:012X}")
        return Ticket.objects.create(
            order=order,
            event=ticket_event,
            owner_id='user-1',
            owner_email='buyer@example.com',
            price=Decimal('100.00'),
            status=status,
            used_at=used_at,
            **kwargs,
        )
    return _make
