"""Celery tasks for events.

This module contains asynchronous tasks for:
- Expiring lapsed inventory reservations
- Order confirmation and organizer notification emails
- Ticket transfer emails
- Waitlist notifications
"""

import structlog
from celery import shared_task
from django.conf import settings

from common.tasks import send_templated_email

from .models import Order, Ticket, TicketType

logger = structlog.get_logger(__name__)


@shared_task
def expire_reservations() -> int:
    """Periodic sweep of lapsed reservations."""
    from events.service import inventory_service

    return inventory_service.expire_reservations()


@shared_task
def send_order_confirmation(order_id: str) -> None:
    """Send the buyer their tickets."""
    order = Order.objects.select_related("event").get(pk=order_id)
    tickets = list(order.tickets.select_related("ticket_type"))
    send_templated_email(
        to=order.customer_email,
        template="events/emails/order_confirmation",
        context={"order": order, "event": order.event, "tickets": tickets},
    )
    logger.info("order_confirmation_queued", order_id=order_id, tickets=len(tickets))


@shared_task
def send_organizer_order_notification(order_id: str) -> None:
    """Tell the organizer about a new paid order."""
    order = Order.objects.select_related("event__organizer").get(pk=order_id)
    send_templated_email(
        to=order.event.organizer.email,
        template="events/emails/organizer_new_order",
        context={"order": order, "event": order.event, "ticket_count": order.tickets.count()},
    )


@shared_task
def send_ticket_transfer_email(ticket_id: str, previous_holder: str) -> None:
    """Let the recipient of a transferred ticket know it is theirs."""
    ticket = Ticket.objects.select_related("event", "ticket_type").get(pk=ticket_id)
    send_templated_email(
        to=ticket.attendee_email,
        template="events/emails/ticket_transfer",
        context={"ticket": ticket, "event": ticket.event, "previous_holder": previous_holder},
    )


@shared_task
def notify_waitlist(ticket_type_id: str) -> int:
    """Email the waitlist when seats of a ticket type free up. Returns how many entries were notified."""
    from events.service import waitlist_service

    ticket_type = TicketType.objects.select_related("event").filter(pk=ticket_type_id).first()
    if ticket_type is None or not ticket_type.event.is_purchasable or not ticket_type.is_on_sale:
        return 0
    entries = waitlist_service.pending_entries(ticket_type)
    for entry in entries:
        send_templated_email(
            to=entry.email,
            template="events/emails/waitlist_available",
            context={
                "event": ticket_type.event,
                "ticket_type": ticket_type,
                "quantity": entry.quantity,
                "reservation_minutes": settings.RESERVATION_EXPIRY_MINUTES,
            },
        )
    notified = waitlist_service.mark_notified(entries)
    if notified:
        logger.info("waitlist_notified", ticket_type_id=ticket_type_id, count=notified)
    return notified
