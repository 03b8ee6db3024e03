import typing as t
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from django.test import RequestFactory
from django.utils import timezone
from ninja.errors import HttpError

from accounts.models import User
from events.models import (
    Event,
    EventStatus,
    InventoryReservation,
    Order,
    OrderStatus,
    PromoCode,
    ReservationStatus,
    TicketStatus,
    TicketType,
)
from events.service import event_service, inventory_service, order_service

pytestmark = pytest.mark.django_db


def _request(user: User) -> t.Any:
    request = RequestFactory().get("/")
    request.user = user
    return request


class TestCreateOrder:
    def test_reserves_and_prices_inline(self, pending_order: Order, ticket_type: TicketType, buyer: User) -> None:
        ticket_type.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING
        assert pending_order.user == buyer
        assert pending_order.subtotal == Decimal("20000.00")
        assert pending_order.processing_fee == Decimal("400.00")
        assert pending_order.total_amount == Decimal("20400.00")
        assert pending_order.order_number.startswith("TKT-")
        assert pending_order.reservation.quantity == 2
        assert ticket_type.reserved_quantity == 2

    def test_uses_existing_reservation(
        self, event: Event, ticket_type: TicketType, reservation: InventoryReservation
    ) -> None:
        order = order_service.create_order(
            event_id=event.id,
            ticket_type_id=ticket_type.id,
            quantity=2,
            customer_email="Guest@Example.com",
            reservation_id=reservation.id,
        )

        reservation.refresh_from_db()
        ticket_type.refresh_from_db()
        assert reservation.order == order
        assert ticket_type.reserved_quantity == 2
        assert order.customer_email == "guest@example.com"
        assert order.user is None

    def test_reservation_must_match(
        self, event: Event, ticket_type: TicketType, reservation: InventoryReservation
    ) -> None:
        with pytest.raises(HttpError) as exc_info:
            order_service.create_order(
                event_id=event.id,
                ticket_type_id=ticket_type.id,
                quantity=3,
                customer_email="guest@example.com",
                reservation_id=reservation.id,
            )

        assert exc_info.value.status_code == 400

    def test_reservation_can_back_one_order_only(
        self, event: Event, ticket_type: TicketType, reservation: InventoryReservation
    ) -> None:
        kwargs = {
            "event_id": event.id,
            "ticket_type_id": ticket_type.id,
            "quantity": 2,
            "customer_email": "guest@example.com",
            "reservation_id": reservation.id,
        }
        order_service.create_order(**kwargs)

        with pytest.raises(HttpError) as exc_info:
            order_service.create_order(**kwargs)

        assert exc_info.value.status_code == 409

    def test_expired_reservation(
        self, event: Event, ticket_type: TicketType, reservation: InventoryReservation
    ) -> None:
        InventoryReservation.objects.filter(pk=reservation.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        with pytest.raises(HttpError, match="expired"):
            order_service.create_order(
                event_id=event.id,
                ticket_type_id=ticket_type.id,
                quantity=2,
                customer_email="guest@example.com",
                reservation_id=reservation.id,
            )

    def test_unknown_ticket_type(self, event: Event) -> None:
        with pytest.raises(HttpError) as exc_info:
            order_service.create_order(
                event_id=event.id,
                ticket_type_id="00000000-0000-4000-8000-000000000000",
                quantity=1,
                customer_email="guest@example.com",
            )

        assert exc_info.value.status_code == 404

    def test_applies_promo_code(self, event: Event, ticket_type: TicketType, promo_code: PromoCode) -> None:
        order = order_service.create_order(
            event_id=event.id,
            ticket_type_id=ticket_type.id,
            quantity=2,
            customer_email="guest@example.com",
            promo_code="jazz10",
        )

        assert order.promo_code == promo_code
        assert order.discount_amount == Decimal("2000.00")
        assert order.subtotal == Decimal("18000.00")
        assert order.total_amount == Decimal("18370.00")

    def test_free_order_completes_immediately(
        self, event: Event, free_ticket_type: TicketType, buyer: User
    ) -> None:
        order = order_service.create_order(
            event_id=event.id,
            ticket_type_id=free_ticket_type.id,
            quantity=2,
            customer_email=buyer.email,
            user=buyer,
        )

        free_ticket_type.refresh_from_db()
        assert order.status == OrderStatus.PAID
        assert order.payment_status == "free"
        assert order.payment_reference.startswith(f"FREE-{order.id}-")
        assert order.tickets.count() == 2
        assert free_ticket_type.sold_quantity == 2


class TestMarkOrderPaid:
    @patch("events.service.order_service.tasks")
    def test_issues_tickets_and_queues_emails(
        self,
        mock_tasks: MagicMock,
        pending_order: Order,
        ticket_type: TicketType,
        django_capture_on_commit_callbacks: t.Any,
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):
            order = order_service.mark_order_paid(pending_order, payment_reference="ref-123")

        ticket_type.refresh_from_db()
        assert order.status == OrderStatus.PAID
        assert order.paid_at is not None
        assert order.payment_reference == "ref-123"
        assert ticket_type.sold_quantity == 2
        assert ticket_type.reserved_quantity == 0
        attendees = sorted(order.tickets.values_list("attendee_name", "attendee_email"))
        assert attendees == [("Ada Buyer", "buyer@example.com"), ("Bola Friend", "bola@example.com")]
        mock_tasks.send_order_confirmation.delay.assert_called_once_with(str(order.id))
        mock_tasks.send_organizer_order_notification.delay.assert_called_once_with(str(order.id))

    def test_tickets_carry_a_qr_payload(self, paid_order: Order) -> None:
        ticket = paid_order.tickets.first()

        assert ticket is not None
        assert ticket.ticket_number in ticket.qr_code
        assert paid_order.order_number in ticket.qr_code

    def test_is_idempotent(self, paid_order: Order, ticket_type: TicketType) -> None:
        order = order_service.mark_order_paid(paid_order, payment_reference="another-ref")

        ticket_type.refresh_from_db()
        assert order.payment_reference == "TKT-1-ABCDEF12"
        assert order.tickets.count() == 2
        assert ticket_type.sold_quantity == 2

    def test_late_payment_with_seats_left(self, pending_order: Order, ticket_type: TicketType) -> None:
        reservation = InventoryReservation.objects.get(order=pending_order)
        InventoryReservation.objects.filter(pk=reservation.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        inventory_service.expire_reservations()

        order = order_service.mark_order_paid(pending_order, payment_reference="late-ref")

        ticket_type.refresh_from_db()
        assert order.status == OrderStatus.PAID
        assert ticket_type.sold_quantity == 2

    def test_late_payment_after_sell_out_fails_the_order(self, pending_order: Order, ticket_type: TicketType) -> None:
        reservation = InventoryReservation.objects.get(order=pending_order)
        inventory_service.release(reservation.id, status=ReservationStatus.EXPIRED)
        TicketType.objects.filter(pk=ticket_type.pk).update(sold_quantity=9)

        order = order_service.mark_order_paid(pending_order, payment_reference="late-ref")

        assert order.status == OrderStatus.FAILED
        assert "refund" in order.failure_reason
        assert order.tickets.count() == 0

    def test_payment_after_event_cancelled_fails_the_order(
        self, pending_order: Order, event: Event, ticket_type: TicketType
    ) -> None:
        event_service.change_status(event, EventStatus.CANCELLED)

        order = order_service.mark_order_paid(pending_order, payment_reference="TKT-late")

        ticket_type.refresh_from_db()
        assert order.status == OrderStatus.FAILED
        assert "refund" in order.failure_reason
        assert order.payment_reference == "TKT-late"
        assert order.tickets.count() == 0
        assert ticket_type.sold_quantity == 0

    def test_payment_after_event_completed_fails_the_order(self, pending_order: Order, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(status=EventStatus.COMPLETED)

        order = order_service.mark_order_paid(pending_order, payment_reference="TKT-late")

        assert order.status == OrderStatus.FAILED
        assert order.tickets.count() == 0

    def test_refunded_order_is_left_alone(self, pending_order: Order) -> None:
        Order.objects.filter(pk=pending_order.pk).update(status=OrderStatus.REFUNDED)

        order = order_service.mark_order_paid(pending_order, payment_reference="ref")

        assert order.status == OrderStatus.REFUNDED
        assert order.tickets.count() == 0


class TestMarkOrderFailed:
    def test_releases_seats(self, pending_order: Order, ticket_type: TicketType) -> None:
        order = order_service.mark_order_failed(pending_order, "Card declined")

        ticket_type.refresh_from_db()
        assert order.status == OrderStatus.FAILED
        assert order.failure_reason == "Card declined"
        assert ticket_type.reserved_quantity == 0

    def test_ignores_paid_orders(self, paid_order: Order) -> None:
        assert order_service.mark_order_failed(paid_order, "late decline").status == OrderStatus.PAID


class TestCancelOrder:
    def test_cancel_pending(self, pending_order: Order, ticket_type: TicketType) -> None:
        order = order_service.cancel_order(pending_order, reason="Changed my mind")

        ticket_type.refresh_from_db()
        assert order.status == OrderStatus.CANCELLED
        assert ticket_type.reserved_quantity == 0

    def test_refund_paid(self, paid_order: Order, ticket_type: TicketType) -> None:
        order = order_service.cancel_order(paid_order, status=OrderStatus.REFUNDED, reason="Refunded by support")

        ticket_type.refresh_from_db()
        assert order.status == OrderStatus.REFUNDED
        assert set(order.tickets.values_list("status", flat=True)) == {TicketStatus.CANCELLED}
        assert ticket_type.sold_quantity == 0

    def test_only_cancel_or_refund(self, pending_order: Order) -> None:
        with pytest.raises(HttpError) as exc_info:
            order_service.cancel_order(pending_order, status=OrderStatus.PAID)

        assert exc_info.value.status_code == 400


class TestOrderAccess:
    def test_buyer_organizer_and_admin_can_view(
        self, paid_order: Order, buyer: User, organizer: User, admin_user: User
    ) -> None:
        for user in (buyer, organizer, admin_user):
            assert order_service.get_order(_request(user), paid_order.id) == paid_order

    def test_stranger_cannot_view(self, paid_order: Order, other_organizer: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            order_service.get_order(_request(other_organizer), paid_order.id)

        assert exc_info.value.status_code == 403

    def test_orders_for_user_include_guest_checkouts(
        self, event: Event, ticket_type: TicketType, buyer: User, pending_order: Order
    ) -> None:
        guest_order = order_service.create_order(
            event_id=event.id, ticket_type_id=ticket_type.id, quantity=1, customer_email="BUYER@example.com"
        )

        assert set(order_service.orders_for_user(buyer)) == {pending_order, guest_order}

    def test_orders_for_event_filter_by_status(self, paid_order: Order, event: Event) -> None:
        assert list(order_service.orders_for_event(event, OrderStatus.PAID)) == [paid_order]
        assert not order_service.orders_for_event(event, OrderStatus.PENDING).exists()
