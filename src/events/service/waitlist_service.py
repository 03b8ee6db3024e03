import typing as t

import structlog
from django.db.models import Q, QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from common.utils import get_or_create_with_race_protection
from events.models import Event, TicketType, WaitlistEntry

logger = structlog.get_logger(__name__)


def join(
    event: Event, email: str, *, ticket_type_id: t.Any = None, phone: str = "", quantity: int = 1
) -> tuple[WaitlistEntry, bool]:
    """Add an e-mail to the waitlist. Joining twice returns the existing entry."""
    ticket_type = None
    if ticket_type_id is not None:
        ticket_type = TicketType.objects.filter(pk=ticket_type_id, event=event).first()
        if ticket_type is None:
            raise HttpError(404, str(_("Ticket type not found for this event.")))
    email = email.strip().lower()
    lookup = Q(event=event, email=email) & (Q(ticket_type=ticket_type) if ticket_type else Q(ticket_type__isnull=True))
    entry, created = get_or_create_with_race_protection(
        WaitlistEntry,
        lookup,
        {"event": event, "email": email, "ticket_type": ticket_type, "phone": phone, "quantity": quantity},
    )
    if created:
        logger.info("waitlist_joined", event_id=str(event.id), waitlist_entry_id=str(entry.id))
    return entry, created


def entries_for_event(event: Event) -> QuerySet[WaitlistEntry]:
    return WaitlistEntry.objects.filter(event=event).select_related("ticket_type")


def pending_entries(ticket_type: TicketType) -> list[WaitlistEntry]:
    """Entries to notify now that seats of ``ticket_type`` are free, oldest first.

    Entries are taken in order while their quantities fit in the free seats, always at least one.
    """
    available = ticket_type.available
    if available <= 0:
        return []
    candidates = WaitlistEntry.objects.filter(
        Q(ticket_type=ticket_type) | Q(ticket_type__isnull=True),
        event_id=ticket_type.event_id,
        notified_at__isnull=True,
    ).order_by("created_at")
    selected: list[WaitlistEntry] = []
    seats = 0
    for entry in candidates:
        if selected and seats + entry.quantity > available:
            break
        selected.append(entry)
        seats += entry.quantity
    return selected


def mark_notified(entries: list[WaitlistEntry]) -> int:
    return WaitlistEntry.objects.filter(pk__in=[entry.pk for entry in entries]).update(notified_at=timezone.now())
