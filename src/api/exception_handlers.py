"""Exception handlers for the API."""

import traceback
import typing as t
from copy import deepcopy

import orjson
import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from accounts.exceptions import AccountLockedError, EmailNotVerifiedError
from events.exceptions import InsufficientInventoryError, InvalidStatusTransitionError, PromoCodeError
from payments.exceptions import PaymentProcessorError

logger = structlog.get_logger(__name__)


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Log an unexpected exception with the (obfuscated) request and return a bare 500.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    json_payload = None
    if request.method in ("POST", "PUT", "PATCH") and request.headers.get("Content-Type") == "application/json":
        try:
            json_payload = obfuscate(orjson.loads(request.body))
        except orjson.JSONDecodeError:  # pragma: no cover
            json_payload = None
    logger.exception(
        "INTERNAL_SERVER_ERROR",
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
        query=obfuscate(request.GET.dict()),
        json_payload=json_payload,
        user=str(request.user) if getattr(request, "user", None) else None,
    )
    data = {"detail": "Internal Server Error."}
    is_staff = getattr(request, "user", None) and request.user.is_staff
    if settings.DEBUG or is_staff:  # pragma: no cover
        data["traceback"] = traceback.format_exc()
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a model validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.warning("VALIDATION_ERROR", path=request.path)
    if hasattr(exc, "error_dict"):
        error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    else:
        error_dict = {"__all__": list(exc.messages)}  # type: ignore[union-attr]
    return Response(status=400, data={"errors": error_dict})


def handle_invalid_status_transition_error(
    request: HttpRequest, exc: InvalidStatusTransitionError | t.Type[InvalidStatusTransitionError]
) -> Response:
    """Handle a rejected event status change."""
    data = {
        "detail": str(exc),
        "current": exc.current,  # type: ignore[union-attr]
        "allowed_transitions": exc.allowed,  # type: ignore[union-attr]
    }
    return Response(status=400, data=data)


def handle_insufficient_inventory_error(
    request: HttpRequest, exc: InsufficientInventoryError | t.Type[InsufficientInventoryError]
) -> Response:
    """Handle a request for more seats than are left."""
    return Response(status=409, data={"detail": str(exc), "available": exc.available})  # type: ignore[union-attr]


def handle_promo_code_error(request: HttpRequest, exc: PromoCodeError | t.Type[PromoCodeError]) -> Response:
    """Handle a promo code that cannot be applied."""
    return Response(status=exc.status_code, data={"detail": exc.message})  # type: ignore[union-attr]


def handle_payment_processor_error(
    request: HttpRequest, exc: PaymentProcessorError | t.Type[PaymentProcessorError]
) -> Response:
    """Handle a payment processor outage or rejection."""
    logger.warning(
        "payment_processor_error",
        path=request.path,
        message=exc.message,  # type: ignore[union-attr]
        processor_status=exc.processor_status,  # type: ignore[union-attr]
    )
    return Response(status=exc.status_code, data={"detail": exc.message})  # type: ignore[union-attr]


def handle_email_not_verified_error(
    request: HttpRequest, exc: EmailNotVerifiedError | t.Type[EmailNotVerifiedError]
) -> Response:
    """Handle a login attempt before the e-mail was verified."""
    return Response(
        status=403,
        data={"detail": str(exc), "requires_verification": True, "email": exc.email},  # type: ignore[union-attr]
    )


def handle_account_locked_error(request: HttpRequest, exc: AccountLockedError | t.Type[AccountLockedError]) -> Response:
    """Handle a login attempt on a locked or suspended account."""
    return Response(status=403, data={"detail": "This account is locked. Try again later or contact support."})


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "cookie", "x-paystack-signature"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
