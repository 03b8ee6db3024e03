"""Seat inventory: reservations, releases, expiry and conversion into sales.

All mutations happen with the ticket type row locked, so two buyers can never both hold the last seat.
"""

import typing as t
from datetime import timedelta
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from events import tasks
from events.exceptions import InsufficientInventoryError
from events.models import (
    Event,
    EventStatus,
    InventoryReservation,
    Order,
    OrderStatus,
    ReservationStatus,
    TicketType,
)
from events.service.status import Actor, check_transition

logger = structlog.get_logger(__name__)


class Availability(t.NamedTuple):
    available: int
    can_reserve: bool


def check_availability(event: Event, ticket_type: TicketType, quantity: int) -> Availability:
    """Report whether ``quantity`` seats could be reserved right now. Takes no lock."""
    available = ticket_type.available
    can_reserve = (
        ticket_type.event_id == event.id
        and event.is_purchasable
        and ticket_type.is_on_sale
        and quantity <= ticket_type.max_per_order
        and quantity <= available
    )
    return Availability(available=available, can_reserve=can_reserve)


def _lock_ticket_type(ticket_type_id: t.Any) -> TicketType:
    return TicketType.objects.select_for_update().get(pk=ticket_type_id)


@transaction.atomic
def reserve(
    event: Event, ticket_type_id: t.Any, quantity: int, *, user: t.Any = None
) -> InventoryReservation:
    """Hold ``quantity`` seats of a ticket type for the reservation lifetime."""
    if quantity < 1:
        raise HttpError(400, str(_("Quantity must be at least 1.")))
    try:
        ticket_type = TicketType.objects.select_for_update().get(pk=ticket_type_id, event_id=event.id)
    except TicketType.DoesNotExist:
        raise HttpError(404, str(_("Ticket type not found for this event.")))
    if not ticket_type.is_on_sale:
        raise HttpError(400, str(_("This ticket type is not on sale.")))
    if not event.is_purchasable:
        raise HttpError(400, str(_("Tickets for this event are not available for purchase.")))
    if quantity > ticket_type.max_per_order:
        raise HttpError(
            400, str(_("You can buy at most {max} tickets per order.")).format(max=ticket_type.max_per_order)
        )
    if quantity > ticket_type.available:
        raise InsufficientInventoryError(available=ticket_type.available, requested=quantity)

    TicketType.objects.filter(pk=ticket_type.pk).update(reserved_quantity=F("reserved_quantity") + quantity)
    reservation = InventoryReservation.objects.create(
        event=event,
        ticket_type=ticket_type,
        quantity=quantity,
        user=user if user is not None and user.is_authenticated else None,
        expires_at=timezone.now() + timedelta(minutes=settings.RESERVATION_EXPIRY_MINUTES),
    )
    logger.info(
        "inventory_reserved",
        reservation_id=str(reservation.id),
        ticket_type_id=str(ticket_type.pk),
        quantity=quantity,
    )
    return reservation


@transaction.atomic
def release(reservation_id: UUID | str, *, status: str = ReservationStatus.RELEASED) -> InventoryReservation | None:
    """Return the seats held by an ACTIVE reservation. Releasing twice is a no-op.

    A PENDING order attached to the reservation is cancelled along with it.
    """
    reservation = (
        InventoryReservation.objects.select_for_update().select_related("event").filter(pk=reservation_id).first()
    )
    if reservation is None:
        return None
    if reservation.status != ReservationStatus.ACTIVE:
        return reservation

    _lock_ticket_type(reservation.ticket_type_id)
    TicketType.objects.filter(pk=reservation.ticket_type_id).update(
        reserved_quantity=F("reserved_quantity") - reservation.quantity
    )
    reservation.status = status
    reservation.released_at = timezone.now()
    reservation.save(update_fields=["status", "released_at", "updated_at"])

    if reservation.order_id:
        Order.objects.filter(pk=reservation.order_id, status=OrderStatus.PENDING).update(
            status=OrderStatus.CANCELLED,
            failure_reason=str(_("Reservation expired.")) if status == ReservationStatus.EXPIRED else "",
            updated_at=timezone.now(),
        )

    sync_sold_out_status(reservation.event)
    ticket_type_id = str(reservation.ticket_type_id)
    transaction.on_commit(lambda: tasks.notify_waitlist.delay(ticket_type_id))
    logger.info("inventory_released", reservation_id=str(reservation.id), status=status)
    return reservation


def expire_reservations() -> int:
    """Expire every ACTIVE reservation past its hold time. Returns how many were expired."""
    expired = 0
    for reservation_id in InventoryReservation.objects.past_expiry().values_list("id", flat=True):
        reservation = release(reservation_id, status=ReservationStatus.EXPIRED)
        if reservation is not None and reservation.status == ReservationStatus.EXPIRED:
            expired += 1
    if expired:
        logger.info("reservations_expired", count=expired)
    return expired


def convert(reservation: InventoryReservation) -> InventoryReservation:
    """Turn the held seats into sold seats. Must run inside a transaction.

    A reservation whose hold already lapsed no longer holds seats, so availability is checked again.
    """
    reservation = InventoryReservation.objects.select_for_update().get(pk=reservation.pk)
    if reservation.status == ReservationStatus.CONVERTED:
        return reservation

    ticket_type = _lock_ticket_type(reservation.ticket_type_id)
    if reservation.status == ReservationStatus.ACTIVE:
        TicketType.objects.filter(pk=ticket_type.pk).update(
            reserved_quantity=F("reserved_quantity") - reservation.quantity,
            sold_quantity=F("sold_quantity") + reservation.quantity,
        )
    else:
        if ticket_type.available < reservation.quantity:
            raise InsufficientInventoryError(available=ticket_type.available, requested=reservation.quantity)
        TicketType.objects.filter(pk=ticket_type.pk).update(sold_quantity=F("sold_quantity") + reservation.quantity)
        logger.warning("late_reservation_converted", reservation_id=str(reservation.pk))

    reservation.status = ReservationStatus.CONVERTED
    reservation.save(update_fields=["status", "updated_at"])
    sync_sold_out_status(Event.objects.get(pk=reservation.event_id))
    return reservation


def return_sold(ticket_type_id: t.Any, quantity: int) -> None:
    """Put sold seats back on sale, for cancelled or refunded orders. Must run inside a transaction."""
    ticket_type = _lock_ticket_type(ticket_type_id)
    quantity = min(quantity, ticket_type.sold_quantity)
    TicketType.objects.filter(pk=ticket_type.pk).update(sold_quantity=F("sold_quantity") - quantity)
    sync_sold_out_status(ticket_type.event)
    transaction.on_commit(lambda: tasks.notify_waitlist.delay(str(ticket_type_id)))


def sync_sold_out_status(event: Event) -> str:
    """Flip a LIVE event to SOLD_OUT when nothing is left, and back when seats free up."""
    event.refresh_from_db(fields=["status"])
    if event.status not in (EventStatus.LIVE, EventStatus.SOLD_OUT):
        return event.status
    has_seats = any(
        ticket_type.available_quantity > 0
        for ticket_type in TicketType.objects.filter(event=event, is_active=True).with_availability()
    )
    target = None
    if event.status == EventStatus.LIVE and not has_seats:
        target = EventStatus.SOLD_OUT
    elif event.status == EventStatus.SOLD_OUT and has_seats:
        target = EventStatus.LIVE
    if target is None:
        return event.status
    check_transition(event.status, target, Actor.SYSTEM)
    # Only move from the status read above, so a concurrent cancel or completion is never overwritten.
    updated = Event.objects.filter(pk=event.pk, status=event.status).update(status=target, updated_at=timezone.now())
    if not updated:
        event.refresh_from_db(fields=["status"])
        logger.info("event_status_sync_skipped", event_id=str(event.pk), status=event.status)
        return event.status
    logger.info("event_status_synced", event_id=str(event.pk), previous=event.status, status=target)
    event.status = target
    return target
