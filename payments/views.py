import json
import logging

import stripe
from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.http import HttpResponse, HttpResponseBadRequest, HttpResponseNotFound
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from tickets.exceptions import InvalidPaymentEventError, NotFoundError, StoreUnavailableError
from tickets.models import Order
from tickets.services import CancellationService, IssuanceService
from .models import PaymentTransaction
from .services import (
    PAYMENT_SUCCEEDED_EVENTS,
    REFUND_EVENTS,
    construct_webhook_event,
    has_ticket_metadata,
    is_full_refund,
    major_units,
    payment_event_from_stripe,
    payment_id_of,
)

logger = logging.getLogger('payments')


def _transaction_status(event_type, obj):
    if event_type in REFUND_EVENTS:
        return 'refunded' if is_full_refund(obj) else 'partially_refunded'
    return obj.get('status') or event_type


def _log_transaction(payment_id, event_type, obj, payload):
    # Лог/идемпотентность: одна строка на платёж, статус обновляется последним событием
    defaults = {
        "order": Order.objects.filter(payment_id=payment_id).first(),
        "status": _transaction_status(event_type, obj),
        "amount": major_units(obj.get('amount_total') or obj.get('amount_received') or obj.get('amount')),
        "event": event_type,
        "payload": payload,
    }
    try:
        with transaction.atomic():
            PaymentTransaction.objects.update_or_create(payment_id=payment_id, defaults=defaults)
    except IntegrityError:
        # параллельная доставка того же платежа успела вставить строку первой
        PaymentTransaction.objects.filter(payment_id=payment_id).update(**defaults)


@csrf_exempt
@require_POST
def stripe_webhook(request):
    """
    Вебхук Stripe. Доставка at-least-once: любое событие может прийти повторно.
    Не-2xx ответ Stripe будет повторять, поэтому 503 только на недоступность хранилища.
    """
    try:
        construct_webhook_event(request.body, request.META.get('HTTP_STRIPE_SIGNATURE', ''))
    except ValueError:
        return HttpResponseBadRequest('Bad JSON')
    except stripe.SignatureVerificationError:
        logger.warning("Stripe webhook with invalid signature")
        return HttpResponseBadRequest('Invalid signature')

    payload = json.loads(request.body.decode('utf-8'))
    event_type = payload.get('type', '')
    obj = (payload.get('data') or {}).get('object') or {}

    if event_type not in PAYMENT_SUCCEEDED_EVENTS + REFUND_EVENTS:
        return HttpResponse('OK')

    payment_id = payment_id_of(event_type, obj)
    if not payment_id:
        logger.warning("Stripe %s without payment id", event_type)
        return HttpResponseBadRequest('No payment id')

    try:
        if event_type in REFUND_EVENTS:
            if is_full_refund(obj):
                CancellationService().cancel_order(payment_id)
            else:
                logger.info("Partial refund, tickets kept: payment=%s refunded=%s of %s",
                            payment_id, obj.get('amount_refunded'), obj.get('amount'))
        elif event_type == 'payment_intent.succeeded' and not has_ticket_metadata(obj):
            logger.info("PaymentIntent without ticket metadata, left to checkout session: payment=%s",
                        payment_id)
        else:
            IssuanceService().issue(payment_event_from_stripe(event_type, obj))
        _log_transaction(payment_id, event_type, obj, payload)
    except InvalidPaymentEventError as e:
        logger.warning("Rejected Stripe %s: %s", event_type, e)
        return HttpResponseBadRequest(str(e))
    except NotFoundError as e:
        logger.warning("Stripe %s for unknown object: %s", event_type, e)
        return HttpResponseNotFound(str(e))
    except (StoreUnavailableError, OperationalError, InterfaceError) as e:
        logger.error("Stripe %s not processed, store unavailable: %s", event_type, e)
        return HttpResponse('Try again later', status=503)

    return HttpResponse('OK')
