"""Paystack HTTP client.

Amounts are always sent in kobo. Every call returns the ``data`` member of Paystack's response
envelope (``{"status": true, "message": ..., "data": {...}}``) or raises ``PaymentProcessorError``.
"""

import hashlib
import hmac
import typing as t

import httpx
import structlog
from django.conf import settings

from payments.exceptions import PaymentProcessorError

logger = structlog.get_logger(__name__)


def verify_webhook_signature(payload: bytes, signature: str, secret_key: str | None = None) -> bool:
    """Check ``x-paystack-signature``: the hex HMAC-SHA512 of the raw body keyed with the secret key."""
    secret = (secret_key or settings.PAYSTACK_SECRET_KEY).encode()
    expected = hmac.new(secret, payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaystackClient:
    """Thin client over the Paystack REST API."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            secret_key: Paystack secret key, defaults to ``PAYSTACK_SECRET_KEY``.
            base_url: API root, defaults to ``PAYSTACK_BASE_URL``.
            timeout: Request timeout in seconds, defaults to ``PAYSTACK_TIMEOUT_SECONDS``.
        """
        self.secret_key = secret_key or settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.PAYSTACK_TIMEOUT_SECONDS
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.secret_key}", "Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout, connect=10.0),
            )
        return self._client

    def _request(self, method: str, path: str, json: dict[str, t.Any] | None = None) -> dict[str, t.Any]:
        try:
            response = self._get_client().request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error("paystack_timeout", path=path, error=str(e))
            raise PaymentProcessorError("The payment processor timed out. Please try again.")
        except httpx.RequestError as e:
            logger.error("paystack_request_error", path=path, error=str(e))
            raise PaymentProcessorError("The payment processor is unavailable. Please try again later.")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error or not body.get("status"):
            message = body.get("message") or f"Paystack returned status {response.status_code}"
            logger.warning("paystack_error_response", path=path, status=response.status_code, message=message)
            raise PaymentProcessorError(
                message,
                status_code=503 if response.status_code >= 500 else 400,
                processor_status=response.status_code,
            )
        return t.cast(dict[str, t.Any], body.get("data") or {})

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: int,
        reference: str,
        currency: str = "NGN",
        callback_url: str | None = None,
        metadata: dict[str, t.Any] | None = None,
    ) -> dict[str, t.Any]:
        """Start a charge. Returns ``authorization_url``, ``access_code`` and ``reference``."""
        payload: dict[str, t.Any] = {"email": email, "amount": amount, "reference": reference, "currency": currency}
        if callback_url:
            payload["callback_url"] = callback_url
        if metadata:
            payload["metadata"] = metadata
        return self._request("POST", "/transaction/initialize", json=payload)

    def verify_transaction(self, reference: str) -> dict[str, t.Any]:
        """Fetch a charge. ``status`` is ``success``, ``failed``, ``abandoned`` or ``pending``."""
        return self._request("GET", f"/transaction/verify/{reference}")

    def create_transfer_recipient(
        self, *, name: str, account_number: str, bank_code: str, currency: str = "NGN"
    ) -> dict[str, t.Any]:
        """Register a NUBAN bank account. Returns ``recipient_code`` and resolved ``details``."""
        return self._request(
            "POST",
            "/transferrecipient",
            json={
                "type": "nuban",
                "name": name,
                "account_number": account_number,
                "bank_code": bank_code,
                "currency": currency,
            },
        )

    def initiate_transfer(
        self, *, amount: int, recipient: str, reason: str, reference: str | None = None
    ) -> dict[str, t.Any]:
        """Send money from the balance. Returns ``transfer_code``, ``reference`` and ``status``."""
        payload: dict[str, t.Any] = {"source": "balance", "amount": amount, "recipient": recipient, "reason": reason}
        if reference:
            payload["reference"] = reference
        return self._request("POST", "/transfer", json=payload)

    def verify_transfer(self, reference: str) -> dict[str, t.Any]:
        """Fetch a transfer by reference."""
        return self._request("GET", f"/transfer/verify/{reference}")

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "PaystackClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()


def get_client() -> PaystackClient:
    return PaystackClient()
