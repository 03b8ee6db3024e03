import typing as t
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import Prefetch, QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from pydantic import BaseModel

from accounts.models import User
from events.models import (
    TERMINAL_STATUSES,
    Event,
    EventStatus,
    InventoryReservation,
    Order,
    OrderStatus,
    TicketType,
)
from events.service import inventory_service, update_db_instance
from events.service.status import Actor, check_transition

logger = structlog.get_logger(__name__)


def public_events() -> QuerySet[Event]:
    """Storefront events with their active ticket types, newest first by start."""
    return (
        Event.objects.public()
        .select_related("organizer")
        .prefetch_related(Prefetch("ticket_types", queryset=TicketType.objects.filter(is_active=True)))
        .order_by("-start_datetime")
    )


def get_public_event(id_or_slug: str) -> Event:
    """Look an event up by id or slug. Non-public events are not found."""
    qs = public_events()
    try:
        event = qs.filter(pk=UUID(str(id_or_slug))).first()
    except ValueError:
        event = qs.filter(slug=id_or_slug).first()
    if event is None:
        raise HttpError(404, str(_("Event not found.")))
    return event


def organizer_events(organizer: User) -> QuerySet[Event]:
    return Event.objects.for_organizer(organizer.id).prefetch_related("ticket_types")


def get_organizer_event(organizer: User, event_id: UUID) -> Event:
    event = Event.objects.filter(pk=event_id).select_related("organizer").first()
    if event is None:
        raise HttpError(404, str(_("Event not found.")))
    if event.organizer_id != organizer.id:
        raise HttpError(403, str(_("You can only manage your own events.")))
    return event


def _ensure_editable(event: Event) -> None:
    if event.status in TERMINAL_STATUSES:
        raise HttpError(400, str(_("Cancelled or completed events cannot be changed.")))


@transaction.atomic
def create_event(organizer: User, payload: BaseModel) -> Event:
    data = payload.model_dump(exclude={"ticket_types"})
    event = Event.objects.create(organizer=organizer, **data)
    for ticket_type_payload in getattr(payload, "ticket_types", None) or []:
        TicketType.objects.create(event=event, **ticket_type_payload.model_dump())
    logger.info("event_created", event_id=str(event.id), organizer_id=str(organizer.id))
    return event


def update_event(event: Event, payload: BaseModel) -> Event:
    _ensure_editable(event)
    event = update_db_instance(event, payload)
    logger.info("event_updated", event_id=str(event.id))
    return event


@transaction.atomic
def delete_event(event: Event) -> None:
    """Only drafts without orders can be deleted."""
    if event.status != EventStatus.DRAFT:
        raise HttpError(400, str(_("Only draft events can be deleted.")))
    if Order.objects.filter(event=event).exists():
        raise HttpError(400, str(_("Events with orders cannot be deleted.")))
    logger.info("event_deleted", event_id=str(event.id))
    event.delete()


def create_ticket_type(event: Event, payload: BaseModel) -> TicketType:
    _ensure_editable(event)
    ticket_type = TicketType.objects.create(event=event, **payload.model_dump())
    inventory_service.sync_sold_out_status(event)
    logger.info("ticket_type_created", event_id=str(event.id), ticket_type_id=str(ticket_type.id))
    return ticket_type


def get_ticket_type(event: Event, ticket_type_id: UUID) -> TicketType:
    ticket_type = TicketType.objects.filter(pk=ticket_type_id, event=event).first()
    if ticket_type is None:
        raise HttpError(404, str(_("Ticket type not found.")))
    return ticket_type


@transaction.atomic
def update_ticket_type(event: Event, ticket_type: TicketType, payload: BaseModel) -> TicketType:
    """Update a ticket type. The total can never drop below what is sold or held."""
    _ensure_editable(event)
    locked = TicketType.objects.select_for_update().get(pk=ticket_type.pk)
    data = payload.model_dump(exclude_unset=True)
    total = data.get("total_quantity")
    if total is not None and total < locked.sold_quantity + locked.reserved_quantity:
        raise HttpError(
            400,
            str(_("Total quantity cannot be lower than the {count} tickets already sold or reserved.")).format(
                count=locked.sold_quantity + locked.reserved_quantity
            ),
        )
    ticket_type = update_db_instance(locked, **data)
    inventory_service.sync_sold_out_status(event)
    return ticket_type


def delete_ticket_type(event: Event, ticket_type: TicketType) -> None:
    _ensure_editable(event)
    if ticket_type.sold_quantity or ticket_type.reserved_quantity or ticket_type.tickets.exists():
        raise HttpError(400, str(_("Ticket types with sales cannot be deleted. Deactivate it instead.")))
    ticket_type.delete()


@transaction.atomic
def change_status(event: Event, target: str, actor: Actor = Actor.ORGANIZER) -> Event:
    """Move an event through its lifecycle.

    Publishing needs an active ticket type and an organizer in good standing. Cancelling releases
    every active reservation and cancels the orders still waiting for payment.
    """
    event = Event.objects.select_for_update().select_related("organizer").get(pk=event.pk)
    check_transition(event.status, target, actor)

    if target == EventStatus.PUBLISHED and event.status == EventStatus.DRAFT:
        if not event.ticket_types.filter(is_active=True).exists():
            raise HttpError(400, str(_("Add at least one active ticket type before publishing.")))
        profile = getattr(event.organizer, "organizer_profile", None)
        if actor == Actor.ORGANIZER and profile is not None and profile.is_suspended:
            raise HttpError(403, str(_("Suspended organizers cannot publish events.")))

    previous = event.status
    event.status = target
    if target == EventStatus.PUBLISHED and not event.published_at:
        event.published_at = timezone.now()
    event.save()

    if target == EventStatus.CANCELLED:
        _wind_down(event)
    logger.info("event_status_changed", event_id=str(event.id), previous=previous, status=target, actor=actor)
    return event


def _wind_down(event: Event) -> None:
    reservation_ids = list(InventoryReservation.objects.filter(event=event).active().values_list("id", flat=True))
    for reservation_id in reservation_ids:
        inventory_service.release(reservation_id)
    Order.objects.filter(event=event, status__in=(OrderStatus.PENDING, OrderStatus.PROCESSING)).update(
        status=OrderStatus.CANCELLED, failure_reason=str(_("Event cancelled.")), updated_at=timezone.now()
    )


def set_featured(event: Event, is_featured: bool) -> Event:
    Event.objects.filter(pk=event.pk).update(is_featured=is_featured, updated_at=timezone.now())
    event.is_featured = is_featured
    logger.info("event_featured_changed", event_id=str(event.id), is_featured=is_featured)
    return event
