from decimal import Decimal

import stripe
from django.conf import settings

from tickets.services import PaymentEvent

# Оба события означают один и тот же оплаченный платёж: ключом служит id PaymentIntent,
# поэтому повторная доставка через любое из них выпускает билеты один раз.
PAYMENT_SUCCEEDED_EVENTS = ('checkout.session.completed', 'payment_intent.succeeded')
REFUND_EVENTS = ('charge.refunded',)


def construct_webhook_event(payload: bytes, sig_header: str):
    """
    Проверяет подпись Stripe-Signature и возвращает событие.
    Бросает ValueError на битом JSON и stripe.SignatureVerificationError на чужой подписи.
    """
    return stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)


def _meta(metadata: dict, *names):
    for name in names:
        value = metadata.get(name)
        if value not in (None, ''):
            return value
    return None


def major_units(minor) -> Decimal:
    # Stripe присылает суммы в центах
    return Decimal(int(minor or 0)) / 100


def payment_id_of(event_type: str, obj: dict):
    if event_type == 'checkout.session.completed':
        return obj.get('payment_intent') or obj.get('id')
    if event_type in REFUND_EVENTS:
        return obj.get('payment_intent')
    return obj.get('id')


def has_ticket_metadata(obj: dict) -> bool:
    # PaymentIntent из Checkout приходит без metadata: билеты выпускает событие сессии
    return _meta(obj.get('metadata') or {}, 'event_id', 'eventId') is not None


def is_full_refund(obj: dict) -> bool:
    """charge.refunded приходит и на частичный возврат, билеты отменяем только на полный."""
    if obj.get('refunded'):
        return True
    amount = int(obj.get('amount') or 0)
    return amount > 0 and int(obj.get('amount_refunded') or 0) >= amount


def payment_event_from_stripe(event_type: str, obj: dict) -> PaymentEvent:
    metadata = obj.get('metadata') or {}

    if event_type == 'checkout.session.completed':
        amount = obj.get('amount_total')
        email = (obj.get('customer_details') or {}).get('email') or obj.get('customer_email')
    else:
        amount = obj.get('amount_received') or obj.get('amount')
        email = obj.get('receipt_email')

    return PaymentEvent(
        payment_id=payment_id_of(event_type, obj) or '',
        event_id=_meta(metadata, 'event_id', 'eventId'),
        quantity=_meta(metadata, 'quantity') or 1,
        amount_total=major_units(amount),
        buyer_id=_meta(metadata, 'user_id', 'userId') or '',
        buyer_email=email or _meta(metadata, 'user_email', 'userEmail') or '',
        currency=obj.get('currency') or 'usd',
        provider='stripe',
    )
