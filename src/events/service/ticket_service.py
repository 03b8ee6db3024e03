import typing as t

import structlog
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from accounts.models import User
from events import tasks
from events.models import Event, InventoryReservation, Order, Ticket, TicketStatus
from events.service import inventory_service

logger = structlog.get_logger(__name__)


def _attendee(order: Order, index: int) -> dict[str, str]:
    attendees = order.metadata.get("attendees") or []
    info = attendees[index] if index < len(attendees) and isinstance(attendees[index], dict) else {}
    return {
        "attendee_name": info.get("name") or order.customer_name,
        "attendee_email": info.get("email") or order.customer_email,
        "attendee_phone": info.get("phone") or order.customer_phone,
    }


@transaction.atomic
def issue_tickets(order: Order) -> list[Ticket]:
    """Create one ticket per reserved seat and convert the reservation.

    Calling it again for the same order returns the tickets already issued.
    """
    existing = list(order.tickets.all())
    if existing:
        return existing

    reservation = InventoryReservation.objects.filter(order=order).first()
    if reservation is None:
        raise HttpError(400, str(_("This order has no reservation.")))
    inventory_service.convert(reservation)

    tickets = []
    for index in range(reservation.quantity):
        ticket = Ticket(
            order=order,
            event_id=order.event_id,
            ticket_type_id=reservation.ticket_type_id,
            **_attendee(order, index),
        )
        ticket.qr_code = ticket.build_qr_payload()
        tickets.append(ticket)
    Ticket.objects.bulk_create(tickets)
    logger.info("tickets_issued", order_id=str(order.id), count=len(tickets))
    return tickets


def _owns_order(user: User, order: Order) -> bool:
    return order.user_id == user.id or order.customer_email.lower() == user.email.lower()


def get_ticket_for_owner(user: User, ticket_id: t.Any, *, allow_holder: bool = False) -> Ticket:
    """A ticket from one of the user's orders, or one held under their e-mail when ``allow_holder``."""
    ticket = Ticket.objects.select_related("order", "event", "ticket_type").filter(pk=ticket_id).first()
    if ticket is None:
        raise HttpError(404, str(_("Ticket not found.")))
    if allow_holder and ticket.attendee_email.lower() == user.email.lower():
        return ticket
    if not _owns_order(user, ticket.order):
        raise HttpError(403, str(_("You can only manage tickets from your own orders.")))
    return ticket


def tickets_for_user(user: User) -> QuerySet[Ticket]:
    """Tickets bought by the user or held under their e-mail."""
    return (
        Ticket.objects.filter(
            Q(order__in=Order.objects.for_customer(user).paid()) | Q(attendee_email__iexact=user.email)
        )
        .select_related("event", "ticket_type", "order")
        .distinct()
        .order_by("-created_at")
    )


@transaction.atomic
def transfer(ticket: Ticket, owner: User, recipient_email: str, recipient_name: str | None = None) -> Ticket:
    """Hand a VALID ticket to someone else. The ticket stays VALID for the new holder."""
    ticket = Ticket.objects.select_for_update().select_related("order").get(pk=ticket.pk)
    if not _owns_order(owner, ticket.order):
        raise HttpError(403, str(_("Only the buyer can transfer this ticket.")))
    if ticket.status != TicketStatus.VALID:
        raise HttpError(400, str(_("Only valid tickets can be transferred.")))
    recipient_email = recipient_email.strip().lower()
    if recipient_email == ticket.attendee_email.lower():
        raise HttpError(400, str(_("The ticket is already held by this e-mail address.")))

    previous_holder = ticket.attendee_email
    ticket.transferred_from = previous_holder
    ticket.transferred_at = timezone.now()
    ticket.attendee_email = recipient_email
    ticket.attendee_name = recipient_name or ""
    ticket.attendee_phone = ""
    ticket.save()

    ticket_id = str(ticket.id)
    transaction.on_commit(lambda: tasks.send_ticket_transfer_email.delay(ticket_id, previous_holder))
    logger.info("ticket_transferred", ticket_id=ticket_id, order_id=str(ticket.order_id))
    return ticket


@transaction.atomic
def check_in(event: Event, ticket_number: str) -> Ticket:
    """Admit a ticket holder at the door."""
    ticket = (
        Ticket.objects.select_for_update()
        .filter(event=event, ticket_number=ticket_number.strip().upper())
        .first()
    )
    if ticket is None:
        raise HttpError(404, str(_("Ticket not found for this event.")))
    if ticket.status == TicketStatus.USED:
        raise HttpError(409, str(_("This ticket has already been checked in.")))
    if ticket.status != TicketStatus.VALID:
        raise HttpError(400, str(_("This ticket is not valid.")))
    ticket.status = TicketStatus.USED
    ticket.checked_in_at = timezone.now()
    ticket.save(update_fields=["status", "checked_in_at", "updated_at"])
    logger.info("ticket_checked_in", ticket_id=str(ticket.id), event_id=str(event.id))
    return ticket


def cancel_tickets(order: Order) -> int:
    """Cancel the VALID tickets of an order. Returns how many were cancelled."""
    return order.tickets.filter(status=TicketStatus.VALID).update(
        status=TicketStatus.CANCELLED, updated_at=timezone.now()
    )
