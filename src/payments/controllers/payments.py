import typing as t

import orjson
import structlog
from django.http import HttpRequest
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from ninja_extra import api_controller, route

from common.authentication import OPTIONAL_AUTH
from common.controllers import UserAwareController
from common.throttling import CheckoutThrottle, WebhookThrottle
from events.models import Order
from events.service import order_service
from payments import paystack, schema
from payments.service import payment_service
from payments.service.webhooks import PaystackEventHandler

logger = structlog.get_logger(__name__)


@api_controller("/payments", auth=OPTIONAL_AUTH, tags=["Payments"], throttle=CheckoutThrottle())
class PaymentController(UserAwareController):
    @route.post("/initialize", url_name="initialize_payment", response=schema.InitializePaymentResponseSchema)
    def initialize(self, payload: schema.InitializePaymentSchema) -> dict[str, t.Any]:
        """Start paying a PENDING order and get the Paystack checkout URL.

        Signed-in buyers pay their own orders. Guests confirm the e-mail used at checkout.
        Free orders are completed immediately and no URL is returned.
        """
        order = Order.objects.select_related("event").filter(pk=payload.order_id).first()
        if order is None:
            raise HttpError(404, str(_("Order not found.")))
        request = self.context.request  # type: ignore[union-attr]
        email = payload.email
        is_guest_owner = email is not None and email.lower() == order.customer_email.lower()
        if not is_guest_owner and not order_service.can_view_order(request, order):
            raise HttpError(403, str(_("You do not have access to this order.")))
        return payment_service.initialize_payment(order)

    @route.get("/verify/{reference}", url_name="verify_payment", response=schema.VerifyPaymentResponseSchema)
    def verify(self, reference: str) -> Order:
        """Check a payment by reference and complete the order if Paystack confirms it."""
        return payment_service.verify_payment(reference)


@api_controller("/webhooks", auth=None, tags=["Webhooks"], throttle=WebhookThrottle())
class PaystackWebhookController:
    @route.post("/paystack", url_name="paystack_webhook", response={200: schema.WebhookAckSchema})
    def handle_webhook(self, request: HttpRequest) -> tuple[int, schema.WebhookAckSchema]:
        """Handle incoming Paystack webhooks.

        Returns 400 without `x-paystack-signature` and 401 when the signature does not match the body.
        """
        signature = request.META.get("HTTP_X_PAYSTACK_SIGNATURE")
        if not signature:
            raise HttpError(400, "Missing Paystack signature")
        if not paystack.verify_webhook_signature(request.body, signature):
            logger.warning("paystack_webhook_invalid_signature")
            raise HttpError(401, "Invalid Paystack signature")
        try:
            event = orjson.loads(request.body)
        except orjson.JSONDecodeError:
            raise HttpError(400, "Invalid JSON body")

        PaystackEventHandler(event).handle()
        return 200, schema.WebhookAckSchema()
