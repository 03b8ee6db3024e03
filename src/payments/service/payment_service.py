"""Buyer payments through Paystack."""

import secrets
import typing as t

import structlog
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from common.models import PlatformSettings
from common.utils import now_millis, to_minor_units
from events.models import InventoryReservation, Order, OrderStatus
from events.service import order_service
from payments import paystack

logger = structlog.get_logger(__name__)


def generate_payment_reference() -> str:
    """``TKT-<epoch millis>-<8 hex chars>``."""
    return f"TKT-{now_millis()}-{secrets.token_hex(4)}"


def initialize_payment(order: Order) -> dict[str, t.Any]:
    """Start the Paystack charge for a PENDING order.

    Free orders are completed on the spot and no charge is created.
    """
    if order.status != OrderStatus.PENDING:
        raise HttpError(400, str(_("Only pending orders can be paid.")))

    if order.is_free:
        order = order_service.mark_order_paid(
            order, payment_reference=order_service.generate_free_reference(order), payment_status="free"
        )
        return {
            "order_id": order.id,
            "reference": order.payment_reference,
            "authorization_url": None,
            "access_code": None,
            "status": order.status,
        }

    reservation = InventoryReservation.objects.filter(order=order).first()
    if reservation is not None and reservation.is_expired:
        raise HttpError(400, str(_("Your reservation has expired. Please place a new order.")))

    reference = generate_payment_reference()
    Order.objects.filter(pk=order.pk).update(payment_reference=reference, payment_status="initialized")
    platform_settings = PlatformSettings.get_solo()
    with paystack.get_client() as client:
        data = client.initialize_transaction(
            email=order.customer_email,
            amount=to_minor_units(order.total_amount),
            reference=reference,
            currency=order.currency,
            callback_url=f"{platform_settings.frontend_base_url}/payment/callback",
            metadata={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "event_id": str(order.event_id),
                "user_id": str(order.user_id) if order.user_id else None,
            },
        )
    logger.info("payment_initialized", order_id=str(order.id), reference=reference)
    return {
        "order_id": order.id,
        "reference": data.get("reference", reference),
        "authorization_url": data.get("authorization_url"),
        "access_code": data.get("access_code"),
        "status": OrderStatus.PENDING,
    }


def amount_matches(order: Order, amount_in_kobo: t.Any) -> bool:
    """Whether the processor charged exactly the order total."""
    try:
        return int(amount_in_kobo) == to_minor_units(order.total_amount)
    except (TypeError, ValueError):
        return False


def complete_from_processor(order: Order, data: dict[str, t.Any]) -> Order:
    """Apply a successful charge reported by Paystack, unless the amount is wrong."""
    if not amount_matches(order, data.get("amount")):
        logger.error(
            "payment_amount_mismatch",
            order_id=str(order.id),
            reference=order.payment_reference,
            charged=data.get("amount"),
            expected=to_minor_units(order.total_amount),
        )
        raise HttpError(400, str(_("The charged amount does not match the order total.")))
    return order_service.mark_order_paid(order, payment_reference=data.get("reference"), payment_status="success")


def verify_payment(reference: str) -> Order:
    """Confirm a payment with Paystack, as a fallback for a delayed webhook.

    Free references never leave the database.
    """
    order = Order.objects.select_related("event").filter(payment_reference=reference).first()
    if order is None:
        raise HttpError(404, str(_("Payment not found.")))
    if reference.startswith("FREE-") or order.status == OrderStatus.PAID:
        return order

    with paystack.get_client() as client:
        data = client.verify_transaction(reference)
    processor_status = data.get("status")
    logger.info("payment_verified", order_id=str(order.id), reference=reference, processor_status=processor_status)
    if processor_status == "success":
        return complete_from_processor(order, data)
    if processor_status == "failed":
        return order_service.mark_order_failed(order, reason=data.get("gateway_response") or "Payment failed.")
    return order
