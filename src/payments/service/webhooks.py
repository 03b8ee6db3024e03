"""Paystack webhook event handlers."""

import typing as t

import structlog
from django.db import transaction

from events.models import Order, OrderStatus
from events.service import order_service
from payments.models import Payout
from payments.service import payment_service, payout_service

logger = structlog.get_logger(__name__)


class PaystackEventHandler:
    """Handles the business logic for the different Paystack webhook events.

    Every handler is idempotent: Paystack retries deliveries until it gets a 200.
    """

    def __init__(self, event: dict[str, t.Any]):
        """Initialize the Paystack event handler."""
        self.event = event
        self.event_type = str(event.get("event", ""))
        self.data: dict[str, t.Any] = event.get("data") or {}

    def handle(self) -> None:
        """Routes the event to the appropriate handler based on its type."""
        handler_method = getattr(self, f"handle_{self.event_type.replace('.', '_')}", self.handle_unknown_event)
        handler_method()

    def handle_unknown_event(self) -> None:
        """Log unhandled event types."""
        logger.info("paystack_webhook_unhandled_event", event_type=self.event_type)

    def _order(self) -> Order | None:
        reference = self.data.get("reference")
        order = Order.objects.filter(payment_reference=reference).first() if reference else None
        if order is None:
            logger.warning("paystack_webhook_unknown_order", event_type=self.event_type, reference=reference)
        return order

    def _payout(self) -> Payout | None:
        reference = self.data.get("reference")
        transfer_code = self.data.get("transfer_code")
        payout = None
        if reference:
            payout = Payout.objects.filter(reference=reference).first()
        if payout is None and transfer_code:
            payout = Payout.objects.filter(transfer_code=transfer_code).first()
        if payout is None:
            logger.warning("paystack_webhook_unknown_payout", event_type=self.event_type, reference=reference)
        return payout

    @transaction.atomic
    def handle_charge_success(self) -> None:
        """A buyer's charge went through: complete the order."""
        order = self._order()
        if order is None:
            return
        if order.status == OrderStatus.PAID:
            logger.info("paystack_webhook_duplicate_charge", order_id=str(order.id))
            return
        if not payment_service.amount_matches(order, self.data.get("amount")):
            logger.error(
                "paystack_webhook_amount_mismatch",
                order_id=str(order.id),
                charged=self.data.get("amount"),
            )
            return
        order_service.mark_order_paid(order, payment_reference=self.data.get("reference"), payment_status="success")

    @transaction.atomic
    def handle_charge_failed(self) -> None:
        """A charge failed: fail the order and give the seats back."""
        order = self._order()
        if order is None:
            return
        order_service.mark_order_failed(order, reason=self.data.get("gateway_response") or "Payment failed.")

    def handle_transfer_success(self) -> None:
        if payout := self._payout():
            payout_service.complete_payout(payout)

    def handle_transfer_failed(self) -> None:
        if payout := self._payout():
            payout_service.fail_payout(payout, self.data.get("reason") or self.data.get("message") or "Transfer failed")

    def handle_transfer_reversed(self) -> None:
        if payout := self._payout():
            payout_service.fail_payout(
                payout, self.data.get("reason") or self.data.get("message") or "Transfer reversed by processor"
            )
