"""Checkout and order lifecycle."""

import typing as t
from decimal import Decimal
from uuid import UUID, uuid4

import structlog
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from accounts.models import Role, User
from common.models import PlatformSettings
from common.permissions import request_roles
from events import tasks
from events.exceptions import InsufficientInventoryError
from events.models import (
    TERMINAL_STATUSES,
    Event,
    InventoryReservation,
    Order,
    OrderStatus,
    ReservationStatus,
    TicketStatus,
    TicketType,
)
from events.service import inventory_service, pricing, promo_service, ticket_service

logger = structlog.get_logger(__name__)

OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)


def generate_free_reference(order: Order) -> str:
    return f"FREE-{order.id}-{uuid4().hex[:8].upper()}"


def _claim_reservation(reservation_id: UUID, ticket_type: TicketType, quantity: int) -> InventoryReservation:
    reservation = InventoryReservation.objects.select_for_update().filter(pk=reservation_id).first()
    if reservation is None:
        raise HttpError(404, str(_("Reservation not found.")))
    if reservation.status != ReservationStatus.ACTIVE or reservation.is_expired:
        raise HttpError(400, str(_("This reservation has expired. Please select your tickets again.")))
    if reservation.order_id is not None:
        raise HttpError(409, str(_("This reservation is already attached to an order.")))
    if reservation.ticket_type_id != ticket_type.id or reservation.quantity != quantity:
        raise HttpError(400, str(_("The reservation does not match the requested tickets.")))
    return reservation


@transaction.atomic
def create_order(
    *,
    event_id: UUID,
    ticket_type_id: UUID,
    quantity: int,
    customer_email: str,
    customer_name: str = "",
    customer_phone: str = "",
    promo_code: str | None = None,
    reservation_id: UUID | None = None,
    attendees: list[dict[str, t.Any]] | None = None,
    user: User | None = None,
    ip_address: str | None = None,
    user_agent: str = "",
) -> Order:
    """Create an order from a reservation, or reserve seats for it inline.

    Free orders are completed immediately. Paid orders stay PENDING until the payment is confirmed.
    """
    event = Event.objects.filter(pk=event_id).first()
    ticket_type = TicketType.objects.filter(pk=ticket_type_id, event_id=event_id).first() if event else None
    if event is None or ticket_type is None:
        raise HttpError(404, str(_("Event or ticket type not found.")))

    if reservation_id:
        reservation = _claim_reservation(reservation_id, ticket_type, quantity)
    else:
        reservation = inventory_service.reserve(event, ticket_type.id, quantity, user=user)

    platform_settings = PlatformSettings.get_solo()
    gross = ticket_type.price * quantity
    promo = None
    discount = Decimal("0")
    if promo_code:
        validation = promo_service.validate(promo_code, event, gross, customer_email)
        promo = validation.promo_code
        discount = validation.discount_amount
    quote = pricing.quote(
        ticket_type, quantity, discount=discount, organizer_id=event.organizer_id, platform_settings=platform_settings
    )

    order = Order.objects.create(
        event=event,
        user=user if user is not None and user.is_authenticated else None,
        customer_email=customer_email.strip().lower(),
        customer_name=customer_name,
        customer_phone=customer_phone,
        subtotal=quote.subtotal,
        discount_amount=quote.discount_amount,
        platform_fee=quote.platform_fee,
        processing_fee=quote.processing_fee,
        total_amount=quote.total_amount,
        currency=quote.currency,
        promo_code=promo,
        ip_address=ip_address,
        user_agent=user_agent[:500],
        metadata={"ticket_type_id": str(ticket_type.id), "quantity": quantity, "attendees": attendees or []},
    )
    reservation.order = order
    reservation.save(update_fields=["order", "updated_at"])
    logger.info(
        "order_created",
        order_id=str(order.id),
        order_number=order.order_number,
        event_id=str(event.id),
        total=str(order.total_amount),
    )

    if order.is_free:
        order = mark_order_paid(order, payment_reference=generate_free_reference(order), payment_status="free")
    return order


@transaction.atomic
def mark_order_paid(
    order: Order, *, payment_reference: str | None = None, payment_status: str = "success"
) -> Order:
    """Complete a paid order: issue tickets, count the promo use and send confirmations.

    Idempotent. A payment that arrives after the reservation lapsed still completes the order when
    seats are left; otherwise the order is marked FAILED and needs a manual refund. The same goes for
    payments on events that were cancelled or have already taken place.
    """
    # Event before order, the same order change_status takes its locks in.
    event_status = Event.objects.select_for_update().values_list("status", flat=True).get(pk=order.event_id)
    order = Order.objects.select_for_update().get(pk=order.pk)
    if order.status == OrderStatus.PAID:
        return order
    if order.status == OrderStatus.REFUNDED:
        logger.warning("payment_for_refunded_order", order_id=str(order.id))
        return order

    if payment_reference and not order.payment_reference:
        order.payment_reference = payment_reference
    order.payment_status = payment_status

    if event_status in TERMINAL_STATUSES:
        order.status = OrderStatus.FAILED
        order.failure_reason = str(
            _("Payment received for an event that is no longer on sale. A refund is required.")
        )
        order.save()
        logger.error(
            "late_payment_event_closed",
            order_id=str(order.id),
            payment_reference=order.payment_reference,
            event_status=event_status,
        )
        return order

    try:
        ticket_service.issue_tickets(order)
    except InsufficientInventoryError as exc:
        order.status = OrderStatus.FAILED
        order.failure_reason = str(_("Payment received after the tickets sold out. A refund is required."))
        order.save()
        logger.error(
            "late_payment_sold_out",
            order_id=str(order.id),
            payment_reference=order.payment_reference,
            available=exc.available,
            requested=exc.requested,
        )
        return order

    order.status = OrderStatus.PAID
    order.paid_at = timezone.now()
    order.failure_reason = ""
    order.save()
    if order.promo_code_id:
        promo_service.record_use(order.promo_code_id)

    order_id = str(order.id)
    transaction.on_commit(lambda: tasks.send_order_confirmation.delay(order_id))
    transaction.on_commit(lambda: tasks.send_organizer_order_notification.delay(order_id))
    logger.info("order_paid", order_id=order_id, payment_reference=order.payment_reference)
    return order


@transaction.atomic
def mark_order_failed(order: Order, reason: str = "") -> Order:
    """Fail an open order and give its seats back."""
    order = Order.objects.select_for_update().get(pk=order.pk)
    if order.status not in OPEN_STATUSES:
        return order
    order.status = OrderStatus.FAILED
    order.failure_reason = reason
    order.save()
    reservation = InventoryReservation.objects.filter(order=order).first()
    if reservation is not None:
        inventory_service.release(reservation.pk)
    logger.info("order_failed", order_id=str(order.id), reason=reason)
    return order


@transaction.atomic
def cancel_order(order: Order, *, status: str = OrderStatus.CANCELLED, reason: str = "") -> Order:
    """Cancel or mark refunded. Tickets are cancelled and their seats go back on sale."""
    if status not in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        raise HttpError(400, str(_("Orders can only be cancelled or refunded.")))
    order = Order.objects.select_for_update().get(pk=order.pk)
    if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        return order

    was_paid = order.status == OrderStatus.PAID
    order.status = status
    order.failure_reason = reason
    order.save()

    if was_paid:
        by_type: dict[t.Any, int] = {}
        for ticket in order.tickets.filter(status=TicketStatus.VALID):
            by_type[ticket.ticket_type_id] = by_type.get(ticket.ticket_type_id, 0) + 1
        ticket_service.cancel_tickets(order)
        for ticket_type_id, count in by_type.items():
            inventory_service.return_sold(ticket_type_id, count)
    else:
        reservation = InventoryReservation.objects.filter(order=order).first()
        if reservation is not None:
            inventory_service.release(reservation.pk)
    logger.info("order_cancelled", order_id=str(order.id), status=status, was_paid=was_paid)
    return order


def can_view_order(request: t.Any, order: Order) -> bool:
    """Owners, the event's organizer and admins can see an order."""
    user = request.user
    if not user.is_authenticated:
        return False
    if Role.ADMIN in request_roles(request):
        return True
    if order.event.organizer_id == user.id:
        return True
    return order.user_id == user.id or order.customer_email.lower() == user.email.lower()


def get_order(request: t.Any, order_id: UUID) -> Order:
    order = Order.objects.select_related("event", "promo_code").filter(pk=order_id).first()
    if order is None:
        raise HttpError(404, str(_("Order not found.")))
    if not can_view_order(request, order):
        raise HttpError(403, str(_("You do not have access to this order.")))
    return order


def orders_for_user(user: User) -> QuerySet[Order]:
    return Order.objects.for_customer(user).select_related("event").distinct()


def orders_for_event(event: Event, status: str | None = None) -> QuerySet[Order]:
    qs = Order.objects.filter(event=event).select_related("promo_code")
    if status:
        qs = qs.filter(status=status)
    return qs
