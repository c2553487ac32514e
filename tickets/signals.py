import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger('notifications')

# Уведомления для внешней рассылки. Письма отправляет не это приложение.
tickets_issued = Signal()        # order, tickets
tickets_cancelled = Signal()     # order, tickets
ticket_reminder_due = Signal()   # ticket


@receiver(tickets_issued)
def on_tickets_issued(sender, order, tickets, **kwargs):
    logger.info("tickets.issued order=%s payment=%s to=%s count=%s",
                order.pk, order.payment_id, order.buyer_email, len(tickets))


@receiver(tickets_cancelled)
def on_tickets_cancelled(sender, order, tickets, **kwargs):
    logger.info("tickets.cancelled order=%s payment=%s to=%s count=%s",
                order.pk, order.payment_id, order.buyer_email, len(tickets))


@receiver(ticket_reminder_due)
def on_ticket_reminder_due(sender, ticket, **kwargs):
    logger.info("tickets.reminder ticket=%s event=%s to=%s", ticket.code, ticket.event_id, ticket.owner_email)
