"""Reservations, quotes, orders and promo code validation."""

import typing as t
from uuid import UUID

import structlog
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from ninja_extra import api_controller, route

from common.authentication import AUTH, OPTIONAL_AUTH
from common.controllers import UserAwareController
from common.schema import ResponseOk
from common.throttling import CheckoutThrottle
from events import models, schema
from events.service import event_service, inventory_service, order_service, pricing, promo_service

logger = structlog.get_logger(__name__)


@api_controller("/checkout", auth=OPTIONAL_AUTH, tags=["Checkout"], throttle=CheckoutThrottle())
class CheckoutController(UserAwareController):
    def _purchasable_event(self, event_id: UUID) -> models.Event:
        event = models.Event.objects.filter(pk=event_id).first()
        if event is None:
            raise HttpError(404, str(_("Event not found.")))
        return event

    @route.post("/reservations", url_name="create_reservation", response={201: schema.ReservationSchema})
    def create_reservation(
        self, payload: schema.ReservationCreateSchema
    ) -> tuple[int, models.InventoryReservation]:
        """Hold tickets for 10 minutes while the buyer fills in their details.

        Returns 409 with the available count when not enough tickets are left.
        """
        event = self._purchasable_event(payload.event_id)
        reservation = inventory_service.reserve(event, payload.ticket_type_id, payload.quantity, user=self.maybe_user())
        return 201, reservation

    @route.delete("/reservations/{reservation_id}", url_name="release_reservation", response=ResponseOk)
    def release_reservation(self, reservation_id: UUID) -> ResponseOk:
        """Give held tickets back. Releasing twice is harmless."""
        reservation = models.InventoryReservation.objects.filter(pk=reservation_id).first()
        if reservation is None:
            raise HttpError(404, str(_("Reservation not found.")))
        user = self.maybe_user()
        if reservation.user_id and (not user.is_authenticated or reservation.user_id != user.id):
            raise HttpError(403, str(_("This reservation belongs to someone else.")))
        inventory_service.release(reservation.pk)
        return ResponseOk()

    @route.post("/quote", url_name="checkout_quote", response=schema.QuoteSchema)
    def quote(self, payload: schema.QuoteRequestSchema) -> dict[str, t.Any]:
        """Price an order before placing it, promo discount and fees included."""
        event = self._purchasable_event(payload.event_id)
        ticket_type = event_service.get_ticket_type(event, payload.ticket_type_id)
        discount = pricing.ZERO
        if payload.promo_code:
            gross = ticket_type.price * payload.quantity
            discount = promo_service.validate(
                payload.promo_code, event, gross, payload.customer_email
            ).discount_amount
        quote = pricing.quote(ticket_type, payload.quantity, discount=discount, organizer_id=event.organizer_id)
        return quote._asdict()

    @route.post("/orders", url_name="create_order", response={201: schema.OrderDetailSchema})
    def create_order(self, payload: schema.CheckoutSchema) -> tuple[int, models.Order]:
        """Place an order, with or without a prior reservation. Guests may check out.

        Free orders are completed immediately and come back PAID with their tickets.
        Paid orders come back PENDING; continue with POST /payments/initialize.
        """
        data = payload.model_dump(exclude={"attendees"})
        order = order_service.create_order(
            **data,
            attendees=[attendee.model_dump(mode="json") for attendee in payload.attendees],
            user=self.maybe_user(),
            ip_address=self.client_ip(),
            user_agent=self.user_agent(),
        )
        return 201, order

    @route.post("/promo-codes/validate", url_name="validate_promo_code", response=schema.PromoValidationSchema)
    def validate_promo_code(self, payload: schema.PromoValidateSchema) -> dict[str, t.Any]:
        """Check a promo code against an event and order amount. Codes are case-insensitive."""
        event = self._purchasable_event(payload.event_id)
        result = promo_service.validate(payload.code, event, payload.amount, payload.email)
        return {
            "code": result.promo_code.code,
            "discount_type": result.promo_code.discount_type,
            "discount_value": result.promo_code.discount_value,
            "discount_amount": result.discount_amount,
            "final_amount": result.final_amount,
        }


@api_controller("/orders", auth=AUTH, tags=["Orders"])
class OrderController(UserAwareController):
    @route.get("/{order_id}", url_name="get_order", response=schema.OrderDetailSchema)
    def get_order(self, order_id: UUID) -> models.Order:
        """Get an order. Visible to its buyer, the event's organizer and admins."""
        return order_service.get_order(self.context.request, order_id)  # type: ignore[union-attr,arg-type]

    @route.post("/{order_id}/cancel", url_name="cancel_order", response=schema.OrderSchema)
    def cancel_order(self, order_id: UUID) -> models.Order:
        """Abandon an unpaid order and release its tickets."""
        order = order_service.get_order(self.context.request, order_id)  # type: ignore[union-attr,arg-type]
        if order.user_id != self.user().id and order.customer_email.lower() != self.user().email.lower():
            raise HttpError(403, str(_("Only the buyer can cancel this order.")))
        if order.status not in order_service.OPEN_STATUSES:
            raise HttpError(400, str(_("Only unpaid orders can be cancelled.")))
        return order_service.cancel_order(order, reason=str(_("Cancelled by the buyer.")))
