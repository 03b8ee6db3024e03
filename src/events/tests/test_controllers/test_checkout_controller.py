import typing as t

import orjson
import pytest
from django.test.client import Client
from django.urls import reverse

from accounts.models import User
from events.models import (
    Event,
    InventoryReservation,
    Order,
    OrderStatus,
    PromoCode,
    ReservationStatus,
    TicketType,
)

pytestmark = pytest.mark.django_db


def _post(client: Client, url_name: str, payload: dict[str, t.Any]) -> t.Any:
    return client.post(reverse(f"api:{url_name}"), data=orjson.dumps(payload), content_type="application/json")


class TestReservations:
    def test_guest_reservation(self, client: Client, event: Event, ticket_type: TicketType) -> None:
        response = _post(
            client, "create_reservation", {"event_id": event.id, "ticket_type_id": ticket_type.id, "quantity": 3}
        )

        assert response.status_code == 201, response.content
        data = response.json()
        assert data["quantity"] == 3
        assert data["status"] == ReservationStatus.ACTIVE
        assert InventoryReservation.objects.get(pk=data["reservation_id"]).user is None

    def test_not_enough_tickets_returns_409_with_available(
        self, buyer_client: Client, event: Event, ticket_type: TicketType
    ) -> None:
        TicketType.objects.filter(pk=ticket_type.pk).update(sold_quantity=9)

        response = _post(
            buyer_client, "create_reservation", {"event_id": event.id, "ticket_type_id": ticket_type.id, "quantity": 2}
        )

        assert response.status_code == 409
        assert response.json()["available"] == 1

    def test_release_own_reservation(
        self, buyer_client: Client, reservation: InventoryReservation, ticket_type: TicketType
    ) -> None:
        url = reverse("api:release_reservation", kwargs={"reservation_id": reservation.id})

        assert buyer_client.delete(url).status_code == 200
        assert buyer_client.delete(url).status_code == 200

        ticket_type.refresh_from_db()
        assert ticket_type.reserved_quantity == 0

    def test_cannot_release_someone_elses_reservation(
        self, client: Client, organizer_client: Client, reservation: InventoryReservation
    ) -> None:
        url = reverse("api:release_reservation", kwargs={"reservation_id": reservation.id})

        assert client.delete(url).status_code == 403
        assert organizer_client.delete(url).status_code == 403


class TestQuote:
    def test_quote_with_promo(
        self, client: Client, event: Event, ticket_type: TicketType, promo_code: PromoCode
    ) -> None:
        response = _post(
            client,
            "checkout_quote",
            {"event_id": event.id, "ticket_type_id": ticket_type.id, "quantity": 2, "promo_code": "jazz10"},
        )

        assert response.status_code == 200, response.content
        data = response.json()
        assert float(data["discount_amount"]) == 2000
        assert float(data["total_amount"]) == 18370
        assert not InventoryReservation.objects.exists()

    def test_unknown_promo_code(self, client: Client, event: Event, ticket_type: TicketType) -> None:
        response = _post(
            client,
            "checkout_quote",
            {"event_id": event.id, "ticket_type_id": ticket_type.id, "quantity": 1, "promo_code": "NOPE"},
        )

        assert response.status_code == 404


class TestCreateOrder:
    def test_guest_checkout(self, client: Client, event: Event, ticket_type: TicketType) -> None:
        response = _post(
            client,
            "create_order",
            {
                "event_id": event.id,
                "ticket_type_id": ticket_type.id,
                "quantity": 1,
                "customer_email": "guest@example.com",
                "customer_phone": "0803 123 4567",
            },
        )

        assert response.status_code == 201, response.content
        data = response.json()
        assert data["status"] == OrderStatus.PENDING
        assert data["tickets"] == []
        assert data["reservation_expires_at"] is not None
        order = Order.objects.get(pk=data["id"])
        assert order.customer_phone == "+2348031234567"
        assert order.ip_address == "127.0.0.1"

    def test_signed_in_checkout_with_reservation(
        self, buyer_client: Client, buyer: User, reservation: InventoryReservation, event: Event
    ) -> None:
        response = _post(
            buyer_client,
            "create_order",
            {
                "event_id": event.id,
                "ticket_type_id": reservation.ticket_type_id,
                "quantity": 2,
                "customer_email": buyer.email,
                "reservation_id": reservation.id,
                "attendees": [{"name": "Ada"}, {"name": "Chi", "email": "chi@example.com"}],
            },
        )

        assert response.status_code == 201, response.content
        order = Order.objects.get(pk=response.json()["id"])
        assert order.user == buyer
        assert order.metadata["attendees"][1]["email"] == "chi@example.com"

    def test_free_checkout_returns_tickets(self, client: Client, event: Event, free_ticket_type: TicketType) -> None:
        response = _post(
            client,
            "create_order",
            {
                "event_id": event.id,
                "ticket_type_id": free_ticket_type.id,
                "quantity": 2,
                "customer_email": "guest@example.com",
            },
        )

        assert response.status_code == 201, response.content
        assert response.json()["status"] == OrderStatus.PAID
        assert len(response.json()["tickets"]) == 2

    def test_invalid_promo_code(
        self, client: Client, event: Event, ticket_type: TicketType, promo_code: PromoCode
    ) -> None:
        promo_code.is_active = False
        promo_code.save()

        response = _post(
            client,
            "create_order",
            {
                "event_id": event.id,
                "ticket_type_id": ticket_type.id,
                "quantity": 1,
                "customer_email": "guest@example.com",
                "promo_code": "JAZZ10",
            },
        )

        assert response.status_code == 400
        assert not Order.objects.exists()
        ticket_type.refresh_from_db()
        assert ticket_type.reserved_quantity == 0


def test_validate_promo_code(client: Client, event: Event, promo_code: PromoCode) -> None:
    response = _post(client, "validate_promo_code", {"code": "Jazz10", "event_id": event.id, "amount": "5000"})

    assert response.status_code == 200
    data = response.json()
    assert data["code"] == "JAZZ10"
    assert float(data["discount_amount"]) == 500
    assert float(data["final_amount"]) == 4500


class TestOrders:
    def test_buyer_sees_order(self, buyer_client: Client, paid_order: Order) -> None:
        response = buyer_client.get(reverse("api:get_order", kwargs={"order_id": paid_order.id}))

        assert response.status_code == 200
        assert len(response.json()["tickets"]) == 2

    def test_organizer_sees_order(self, organizer_client: Client, paid_order: Order) -> None:
        response = organizer_client.get(reverse("api:get_order", kwargs={"order_id": paid_order.id}))

        assert response.status_code == 200

    def test_stranger_is_forbidden(self, other_organizer_client: Client, paid_order: Order) -> None:
        response = other_organizer_client.get(reverse("api:get_order", kwargs={"order_id": paid_order.id}))

        assert response.status_code == 403

    def test_buyer_cancels_pending_order(
        self, buyer_client: Client, pending_order: Order, ticket_type: TicketType
    ) -> None:
        response = buyer_client.post(reverse("api:cancel_order", kwargs={"order_id": pending_order.id}))

        assert response.status_code == 200, response.content
        assert response.json()["status"] == OrderStatus.CANCELLED
        ticket_type.refresh_from_db()
        assert ticket_type.reserved_quantity == 0

    def test_paid_orders_cannot_be_cancelled_by_buyer(self, buyer_client: Client, paid_order: Order) -> None:
        response = buyer_client.post(reverse("api:cancel_order", kwargs={"order_id": paid_order.id}))

        assert response.status_code == 400

    def test_organizer_cannot_cancel_buyer_order(self, organizer_client: Client, pending_order: Order) -> None:
        response = organizer_client.post(reverse("api:cancel_order", kwargs={"order_id": pending_order.id}))

        assert response.status_code == 403
