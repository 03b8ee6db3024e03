import re
import typing as t
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from django.utils import timezone
from ninja.errors import HttpError

from events.models import InventoryReservation, Order, OrderStatus, TicketStatus, TicketType
from payments.service import payment_service

pytestmark = pytest.mark.django_db


def test_payment_reference_format() -> None:
    assert re.fullmatch(r"TKT-\d{13}-[0-9a-f]{8}", payment_service.generate_payment_reference())


class TestInitializePayment:
    def test_starts_a_charge_for_the_order_total(self, pending_order: Order, paystack_client: MagicMock) -> None:
        paystack_client.initialize_transaction.return_value = {
            "authorization_url": "https://checkout.paystack.com/abc",
            "access_code": "abc",
        }

        result = payment_service.initialize_payment(pending_order)

        pending_order.refresh_from_db()
        assert result["authorization_url"] == "https://checkout.paystack.com/abc"
        assert result["reference"] == pending_order.payment_reference
        assert result["status"] == OrderStatus.PENDING
        assert pending_order.payment_status == "initialized"
        kwargs = paystack_client.initialize_transaction.call_args.kwargs
        assert kwargs["amount"] == 2040000
        assert kwargs["email"] == "buyer@example.com"
        assert kwargs["currency"] == "NGN"
        assert kwargs["callback_url"].endswith("/payment/callback")
        assert kwargs["metadata"]["order_number"] == pending_order.order_number

    def test_free_order_is_completed_without_a_charge(
        self, pending_order: Order, paystack_client: MagicMock, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        Order.objects.filter(pk=pending_order.pk).update(
            subtotal=0, platform_fee=0, processing_fee=0, total_amount=0
        )
        pending_order.refresh_from_db()

        with django_capture_on_commit_callbacks(execute=True):
            result = payment_service.initialize_payment(pending_order)

        assert result["status"] == OrderStatus.PAID
        assert result["authorization_url"] is None
        assert result["reference"].startswith("FREE-")
        paystack_client.initialize_transaction.assert_not_called()

    def test_only_pending_orders(self, paid_order: Order, paystack_client: MagicMock) -> None:
        with pytest.raises(HttpError) as exc_info:
            payment_service.initialize_payment(paid_order)

        assert exc_info.value.status_code == 400
        paystack_client.initialize_transaction.assert_not_called()

    def test_expired_reservation(self, pending_order: Order, paystack_client: MagicMock) -> None:
        InventoryReservation.objects.filter(order=pending_order).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        with pytest.raises(HttpError) as exc_info:
            payment_service.initialize_payment(pending_order)

        assert exc_info.value.status_code == 400
        paystack_client.initialize_transaction.assert_not_called()


class TestAmountMatches:
    @pytest.mark.parametrize(
        "amount,expected",
        [(2040000, True), ("2040000", True), (2039999, False), (None, False), ("abc", False)],
    )
    def test_amount_matches(self, pending_order: Order, amount: t.Any, expected: bool) -> None:
        assert payment_service.amount_matches(pending_order, amount) is expected


class TestVerifyPayment:
    @pytest.fixture
    def charged_order(self, pending_order: Order) -> Order:
        Order.objects.filter(pk=pending_order.pk).update(payment_reference="TKT-1700000000000-deadbeef")
        pending_order.refresh_from_db()
        return pending_order

    def test_unknown_reference(self, paystack_client: MagicMock) -> None:
        with pytest.raises(HttpError) as exc_info:
            payment_service.verify_payment("TKT-0-nothing")

        assert exc_info.value.status_code == 404

    def test_success_completes_the_order(
        self, charged_order: Order, paystack_client: MagicMock, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        paystack_client.verify_transaction.return_value = {
            "status": "success",
            "amount": 2040000,
            "reference": charged_order.payment_reference,
        }

        with django_capture_on_commit_callbacks(execute=True):
            order = payment_service.verify_payment(charged_order.payment_reference)

        assert order.status == OrderStatus.PAID
        assert order.tickets.filter(status=TicketStatus.VALID).count() == 2
        paystack_client.verify_transaction.assert_called_once_with(charged_order.payment_reference)

    def test_amount_mismatch_is_rejected(self, charged_order: Order, paystack_client: MagicMock) -> None:
        paystack_client.verify_transaction.return_value = {
            "status": "success",
            "amount": 100,
            "reference": charged_order.payment_reference,
        }

        with pytest.raises(HttpError) as exc_info:
            payment_service.verify_payment(charged_order.payment_reference)

        assert exc_info.value.status_code == 400
        charged_order.refresh_from_db()
        assert charged_order.status == OrderStatus.PENDING

    def test_failed_charge_fails_the_order(
        self, charged_order: Order, ticket_type: TicketType, paystack_client: MagicMock
    ) -> None:
        paystack_client.verify_transaction.return_value = {"status": "failed", "gateway_response": "Declined"}

        order = payment_service.verify_payment(charged_order.payment_reference)

        assert order.status == OrderStatus.FAILED
        assert order.failure_reason == "Declined"
        ticket_type.refresh_from_db()
        assert ticket_type.reserved_quantity == 0

    def test_abandoned_charge_leaves_the_order_open(self, charged_order: Order, paystack_client: MagicMock) -> None:
        paystack_client.verify_transaction.return_value = {"status": "abandoned"}

        order = payment_service.verify_payment(charged_order.payment_reference)

        assert order.status == OrderStatus.PENDING

    def test_paid_order_is_not_rechecked(self, paid_order: Order, paystack_client: MagicMock) -> None:
        order = payment_service.verify_payment(paid_order.payment_reference)

        assert order.status == OrderStatus.PAID
        paystack_client.verify_transaction.assert_not_called()
