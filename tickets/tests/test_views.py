import json
from unittest import mock

import pytest
from django.urls import reverse

from tickets.exceptions import StoreUnavailableError
from tickets.models import Ticket, VerificationRecord

pytestmark = pytest.mark.django_db


def _scan(client, code, body):
    return client.post(
        reverse('tickets:verify', args=[code]),
        data=json.dumps(body),
        content_type='application/json',
    )


def test_get_reports_status_without_redeeming(client, make_ticket, event):
    ticket = make_ticket()

    response = client.get(reverse('tickets:verify', args=[ticket.code]))

    assert response.status_code == 200
    assert response.json() == {
        'outcome': 'valid', 'code': ticket.code, 'eventId': event.pk, 'eventTitle': event.title,
    }
    ticket.refresh_from_db()
    assert ticket.status == Ticket.Status.VALID


def test_post_redeems_then_reports_used(client, make_ticket):
    ticket = make_ticket()

    first = _scan(client, ticket.code, {'verifiedBy': 'gate-1'})
    second = _scan(client, ticket.code, {'verifiedBy': 'gate-2'})

    assert first.status_code == 200
    assert first.json()['outcome'] == 'valid'
    assert second.status_code == 200
    assert second.json()['outcome'] == 'used'
    assert 'usedAt' in second.json()
    assert VerificationRecord.objects.count() == 2


def test_code_is_normalized(client, make_ticket):
    ticket = make_ticket()

    response = _scan(client, ticket.code.lower(), {'verifiedBy': 'gate-1'})

    assert response.json()['outcome'] == 'valid'
    assert response.json()['code'] == ticket.code


def test_unknown_code_is_404(client):
    response = _scan(client, 'TCT-1-DOESNOTEXIST', {'verifiedBy': 'gate-1'})

    assert response.status_code == 404
    assert response.json()['outcome'] == 'invalid'
    assert response.json()['reason'] == 'not_found'


def test_cancelled_ticket_is_404(client, make_ticket):
    ticket = make_ticket(status=Ticket.Status.CANCELLED)

    response = _scan(client, ticket.code, {'verifiedBy': 'gate-1'})

    assert response.status_code == 404
    assert response.json()['reason'] == 'cancelled'


@pytest.mark.parametrize('body', [{}, {'verifiedBy': ''}, {'verifiedBy': 42}, ['gate-1']])
def test_verified_by_required(client, make_ticket, body):
    ticket = make_ticket()

    response = _scan(client, ticket.code, body)

    assert response.status_code == 400
    assert VerificationRecord.objects.count() == 0


def test_bad_json_is_400(client, make_ticket):
    ticket = make_ticket()
    response = client.post(
        reverse('tickets:verify', args=[ticket.code]), data='{not json', content_type='application/json',
    )
    assert response.status_code == 400


def test_malformed_code_is_400(client):
    response = client.get('/verify/TCT_1_ABC/')
    assert response.status_code == 400


def test_method_not_allowed(client, make_ticket):
    ticket = make_ticket()
    response = client.delete(reverse('tickets:verify', args=[ticket.code]))
    assert response.status_code == 405


def test_store_outage_is_503(client, make_ticket):
    ticket = make_ticket()
    with mock.patch('tickets.store.TicketStore.get_by_code', side_effect=StoreUnavailableError('timeout')):
        response = _scan(client, ticket.code, {'verifiedBy': 'gate-1'})

    assert response.status_code == 503
    assert response.json()['outcome'] == 'unavailable'
    ticket.refresh_from_db()
    assert ticket.status == Ticket.Status.VALID


def test_ticket_pdf(client, make_ticket):
    ticket = make_ticket()

    response = client.get(reverse('tickets:ticket_pdf', args=[ticket.code]))

    assert response.status_code == 200
    assert response['Content-Type'] == 'application/pdf'
    assert ticket.code in response['Content-Disposition']
    assert response.content.startswith(b'%PDF')


def test_ticket_pdf_unknown_code(client):
    response = client.get(reverse('tickets:ticket_pdf', args=['TCT-1-NOPE']))
    assert response.status_code == 404
