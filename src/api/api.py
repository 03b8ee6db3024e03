from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from accounts.controllers.account import AccountController
from accounts.controllers.auth import AuthController
from accounts.exceptions import AccountLockedError, EmailNotVerifiedError
from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from console.controllers.dashboard import DashboardController
from console.controllers.moderation import ConsoleEventController, ConsoleOrderController
from console.controllers.users import ConsoleOrganizerController, ConsoleUserController
from events.controllers.checkout import CheckoutController, OrderController
from events.controllers.events import EventController
from events.controllers.organizer import (
    OrganizerEventController,
    OrganizerEventsController,
    OrganizerPromoCodeController,
)
from events.controllers.tickets import TicketController
from events.exceptions import InsufficientInventoryError, InvalidStatusTransitionError, PromoCodeError
from payments.controllers.payments import PaymentController, PaystackWebhookController
from payments.controllers.payouts import PayoutController
from payments.exceptions import PaymentProcessorError

from .exception_handlers import (
    handle_account_locked_error,
    handle_django_validation_error,
    handle_email_not_verified_error,
    handle_general_exception,
    handle_insufficient_inventory_error,
    handle_invalid_status_transition_error,
    handle_payment_processor_error,
    handle_promo_code_error,
)

api = NinjaExtraAPI(
    title="getiickets API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"getiickets API {settings.VERSION}",
    app_name=f"getiickets-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION, demo=settings.DEMO_MODE)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API."""
    return 200, ResponseOk()


api.register_controllers(
    # Auth/Account controllers
    AuthController,
    AccountController,
    # Storefront
    EventController,
    CheckoutController,
    OrderController,
    TicketController,
    # Organizer dashboard
    OrganizerEventsController,
    OrganizerEventController,
    OrganizerPromoCodeController,
    # Payments
    PaymentController,
    PaystackWebhookController,
    PayoutController,
    # Admin console
    DashboardController,
    ConsoleUserController,
    ConsoleOrganizerController,
    ConsoleEventController,
    ConsoleOrderController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    InvalidStatusTransitionError: handle_invalid_status_transition_error,
    InsufficientInventoryError: handle_insufficient_inventory_error,
    PromoCodeError: handle_promo_code_error,
    PaymentProcessorError: handle_payment_processor_error,
    EmailNotVerifiedError: handle_email_not_verified_error,
    AccountLockedError: handle_account_locked_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
