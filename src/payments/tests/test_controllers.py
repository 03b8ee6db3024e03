import hashlib
import hmac
import typing as t
from decimal import Decimal
from unittest.mock import MagicMock

import orjson
import pytest
from django.test.client import Client
from django.urls import reverse

from accounts.models import User
from events.models import Order, OrderStatus
from payments.exceptions import PaymentProcessorError
from payments.models import Payout, PayoutStatus

pytestmark = pytest.mark.django_db


class TestInitializePayment:
    def test_buyer_pays_own_order(
        self, buyer_client: Client, pending_order: Order, paystack_client: MagicMock
    ) -> None:
        paystack_client.initialize_transaction.return_value = {"authorization_url": "https://checkout.paystack.com/x"}

        response = buyer_client.post(
            reverse("api:initialize_payment"),
            data={"order_id": str(pending_order.id)},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        assert response.json()["authorization_url"] == "https://checkout.paystack.com/x"
        assert response.json()["reference"].startswith("TKT-")

    def test_guest_confirms_email(self, client: Client, pending_order: Order, paystack_client: MagicMock) -> None:
        paystack_client.initialize_transaction.return_value = {"authorization_url": "https://checkout.paystack.com/y"}

        response = client.post(
            reverse("api:initialize_payment"),
            data={"order_id": str(pending_order.id), "email": "BUYER@example.com"},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content

    def test_stranger_is_forbidden(self, client: Client, pending_order: Order, paystack_client: MagicMock) -> None:
        response = client.post(
            reverse("api:initialize_payment"),
            data={"order_id": str(pending_order.id), "email": "someone@example.com"},
            content_type="application/json",
        )

        assert response.status_code == 403
        paystack_client.initialize_transaction.assert_not_called()

    def test_processor_unavailable(
        self, buyer_client: Client, pending_order: Order, paystack_client: MagicMock
    ) -> None:
        paystack_client.initialize_transaction.side_effect = PaymentProcessorError("The processor timed out.")

        response = buyer_client.post(
            reverse("api:initialize_payment"),
            data={"order_id": str(pending_order.id)},
            content_type="application/json",
        )

        assert response.status_code == 503


def test_verify_payment(client: Client, paid_order: Order) -> None:
    response = client.get(reverse("api:verify_payment", kwargs={"reference": paid_order.payment_reference}))

    assert response.status_code == 200
    assert response.json()["status"] == OrderStatus.PAID
    assert response.json()["order_number"] == paid_order.order_number


class TestPaystackWebhook:
    SECRET = "sk_test_webhook"

    @pytest.fixture(autouse=True)
    def paystack_secret(self, settings: t.Any) -> None:
        settings.PAYSTACK_SECRET_KEY = self.SECRET

    def _post(self, client: Client, body: bytes, signature: str | None) -> t.Any:
        headers = {"HTTP_X_PAYSTACK_SIGNATURE": signature} if signature is not None else {}
        return client.post(reverse("api:paystack_webhook"), data=body, content_type="application/json", **headers)

    def _sign(self, body: bytes) -> str:
        return hmac.new(self.SECRET.encode(), body, hashlib.sha512).hexdigest()

    def test_charge_success(
        self, client: Client, pending_order: Order, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        Order.objects.filter(pk=pending_order.pk).update(payment_reference="TKT-1-abc")
        body = orjson.dumps({"event": "charge.success", "data": {"reference": "TKT-1-abc", "amount": 2040000}})

        with django_capture_on_commit_callbacks(execute=True):
            response = self._post(client, body, self._sign(body))

        assert response.status_code == 200, response.content
        assert response.json() == {"received": True}
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PAID

    def test_unknown_reference_is_acknowledged(self, client: Client) -> None:
        body = orjson.dumps({"event": "charge.success", "data": {"reference": "TKT-0-none", "amount": 1}})

        assert self._post(client, body, self._sign(body)).status_code == 200

    def test_missing_signature(self, client: Client) -> None:
        assert self._post(client, b"{}", None).status_code == 400

    def test_invalid_signature(self, client: Client) -> None:
        body = orjson.dumps({"event": "charge.success", "data": {}})

        assert self._post(client, body, "0" * 128).status_code == 401

    def test_invalid_json(self, client: Client) -> None:
        body = b"not json"

        assert self._post(client, body, self._sign(body)).status_code == 400


class TestPayouts:
    def test_buyer_is_forbidden(self, buyer_client: Client) -> None:
        assert buyer_client.get(reverse("api:payout_balance")).status_code == 403

    def test_balance(self, organizer_client: Client, paid_order: Order) -> None:
        response = organizer_client.get(reverse("api:payout_balance"))

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["gross_revenue"]) == Decimal("20000")
        assert Decimal(data["available_balance"]) == Decimal("0")
        assert data["payout_hold_days"] == 7

    def test_bank_account_not_configured(self, organizer_client: Client) -> None:
        assert organizer_client.get(reverse("api:get_bank_account")).status_code == 404

    def test_setup_bank_account_masks_number(self, organizer_client: Client, paystack_client: MagicMock) -> None:
        paystack_client.create_transfer_recipient.return_value = {"recipient_code": "RCP_1", "details": {}}

        response = organizer_client.post(
            reverse("api:setup_bank_account"),
            data={"account_name": "Olu Organizer", "account_number": "0123456789", "bank_code": "058"},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        assert response.json()["account_number"] == "******6789"
        assert organizer_client.get(reverse("api:get_bank_account")).json()["account_name"] == "Olu Organizer"

    def test_setup_bank_account_validates_number(self, organizer_client: Client) -> None:
        response = organizer_client.post(
            reverse("api:setup_bank_account"),
            data={"account_name": "Olu", "account_number": "123", "bank_code": "058"},
            content_type="application/json",
        )

        assert response.status_code == 422

    def test_request_payout_over_balance(self, organizer_client: Client, organizer: User) -> None:
        profile = organizer.organizer_profile
        profile.payout_details = {"recipient_code": "RCP_1"}
        profile.save()

        response = organizer_client.post(
            reverse("api:request_payout"), data={"amount": "10000"}, content_type="application/json"
        )

        assert response.status_code == 400

    def test_list_and_get(self, organizer_client: Client, other_organizer_client: Client, organizer: User) -> None:
        payout = Payout.objects.create(
            organizer=organizer, amount=Decimal("10000"), recipient_code="RCP_1", status=PayoutStatus.COMPLETED
        )

        listing = organizer_client.get(reverse("api:list_payouts"), {"status": PayoutStatus.COMPLETED})
        assert listing.json()["count"] == 1

        url = reverse("api:get_payout", kwargs={"payout_id": payout.id})
        assert organizer_client.get(url).json()["status"] == PayoutStatus.COMPLETED
        assert other_organizer_client.get(url).status_code == 404
