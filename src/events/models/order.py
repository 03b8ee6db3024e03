import typing as t
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel
from common.utils import now_millis, random_base36

from .event import Event
from .promo import PromoCode


def generate_order_number() -> str:
    """``TKT-<epoch millis>-<6 base36 chars>``."""
    return f"TKT-{now_millis()}-{random_base36(6).upper()}"


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    PAID = "PAID", "Paid"
    FAILED = "FAILED", "Failed"
    REFUNDED = "REFUNDED", "Refunded"
    CANCELLED = "CANCELLED", "Cancelled"


class OrderQuerySet(models.QuerySet["Order"]):
    def paid(self) -> t.Self:
        """Orders that completed payment."""
        return self.filter(status=OrderStatus.PAID)

    def for_customer(self, user: t.Any) -> t.Self:
        """Orders placed by a user, including guest orders under their email."""
        return self.filter(Q(user=user) | Q(customer_email__iexact=user.email))


class Order(TimeStampedModel):
    order_number = models.CharField(max_length=40, unique=True, default=generate_order_number, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="orders")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    customer_email = models.EmailField(db_index=True)
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    subtotal = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0"), help_text="Ticket value after discount."
    )
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    processing_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    promo_code = models.ForeignKey(PromoCode, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True)
    payment_status = models.CharField(max_length=50, blank=True)
    payment_reference = models.CharField(max_length=100, unique=True, null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True, db_index=True)
    failure_reason = models.TextField(blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["event", "status"], name="ix_order_event_status")]

    def __str__(self) -> str:
        return self.order_number

    @property
    def is_free(self) -> bool:
        """Whether nothing has to be charged."""
        return self.total_amount == 0
