from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from events.models import Event
from tickets.models import Ticket
from tickets.signals import ticket_reminder_due
from tickets.sweeper import ExpirySweeper

pytestmark = pytest.mark.django_db


@pytest.fixture
def past_event(make_event):
    return make_event(title='Yesterday', starts_in=-timedelta(hours=3), duration_minutes=60)


def test_sweep_expires_valid_tickets_of_elapsed_events(store, make_ticket, past_event, event):
    stale = make_ticket(ticket_event=past_event)
    used = make_ticket(ticket_event=past_event, status=Ticket.Status.USED)
    cancelled = make_ticket(ticket_event=past_event, status=Ticket.Status.CANCELLED)
    upcoming = make_ticket(ticket_event=event)
    now = timezone.now()

    assert ExpirySweeper(store).sweep(now) == 1

    for t in (stale, used, cancelled, upcoming):
        t.refresh_from_db()
    assert stale.status == Ticket.Status.EXPIRED
    assert stale.used_at is None
    assert used.status == Ticket.Status.USED
    assert cancelled.status == Ticket.Status.CANCELLED
    assert upcoming.status == Ticket.Status.VALID

    past_event.refresh_from_db()
    event.refresh_from_db()
    assert past_event.status == Event.Status.COMPLETED
    assert past_event.completed_at == now
    assert event.status == Event.Status.ACTIVE


def test_sweep_is_idempotent(store, make_ticket, past_event):
    make_ticket(ticket_event=past_event)
    sweeper = ExpirySweeper(store)
    now = timezone.now()

    assert sweeper.sweep(now) == 1
    assert sweeper.sweep(now) == 0
    assert Ticket.objects.filter(status=Ticket.Status.EXPIRED).count() == 1


def test_running_event_is_not_swept(store, make_ticket, make_event):
    running = make_event(title='Now playing', starts_in=-timedelta(minutes=30), duration_minutes=120)
    ticket = make_ticket(ticket_event=running)

    assert ExpirySweeper(store).sweep(timezone.now()) == 0

    ticket.refresh_from_db()
    running.refresh_from_db()
    assert ticket.status == Ticket.Status.VALID
    assert running.status == Event.Status.ACTIVE


def test_event_without_duration_ends_at_start(store, make_ticket, make_event):
    started = make_event(title='Open air', starts_in=-timedelta(minutes=1))
    make_ticket(ticket_event=started)

    assert ExpirySweeper(store).sweep(timezone.now()) == 1


def test_sweep_uses_given_now(store, make_ticket, event):
    make_ticket(ticket_event=event)
    sweeper = ExpirySweeper(store)

    assert sweeper.sweep(timezone.now()) == 0
    assert sweeper.sweep(event.starts_at + timedelta(minutes=1)) == 1


def test_only_active_events_are_swept(store, make_ticket, make_event):
    draft = make_event(title='Draft', starts_in=-timedelta(days=1), status=Event.Status.DRAFT)
    ticket = make_ticket(ticket_event=draft)

    assert ExpirySweeper(store).sweep(timezone.now()) == 0
    ticket.refresh_from_db()
    assert ticket.status == Ticket.Status.VALID


def test_reminders_sent_once(store, make_ticket, make_event, django_capture_on_commit_callbacks):
    tomorrow = make_event(title='Tomorrow', starts_in=timedelta(hours=12))
    later = make_event(title='Next week', starts_in=timedelta(days=7))
    reminded = [make_ticket(ticket_event=tomorrow), make_ticket(ticket_event=tomorrow)]
    make_ticket(ticket_event=tomorrow, status=Ticket.Status.CANCELLED)
    make_ticket(ticket_event=later)

    received = []

    def listener(sender, ticket, **kwargs):
        received.append(ticket.pk)

    ticket_reminder_due.connect(listener)
    try:
        sweeper = ExpirySweeper(store)
        now = timezone.now()
        with django_capture_on_commit_callbacks(execute=True):
            assert sweeper.send_reminders(now, window_hours=24) == 2
        with django_capture_on_commit_callbacks(execute=True):
            assert sweeper.send_reminders(now, window_hours=24) == 0
    finally:
        ticket_reminder_due.disconnect(listener)

    assert sorted(received, key=str) == sorted((t.pk for t in reminded), key=str)
    assert Ticket.objects.filter(reminder_sent_at__isnull=False).count() == 2


def test_sweep_command(make_ticket, past_event):
    make_ticket(ticket_event=past_event)
    out = StringIO()

    call_command('sweep_tickets', stdout=out)

    assert 'Expired: 1' in out.getvalue()
    assert 'Reminders: 0' in out.getvalue()


def test_sweep_command_with_now(make_ticket, event):
    make_ticket(ticket_event=event)
    out = StringIO()
    when = (event.starts_at + timedelta(hours=1)).isoformat()

    call_command('sweep_tickets', '--now', when, '--skip-reminders', stdout=out)

    assert 'Expired: 1' in out.getvalue()
    assert 'Reminders' not in out.getvalue()


def test_sweep_command_rejects_bad_now(db):
    with pytest.raises(CommandError):
        call_command('sweep_tickets', '--now', 'yesterday', stdout=StringIO())
