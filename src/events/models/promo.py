import typing as t
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models

from common.models import TimeStampedModel

from .event import Event


class DiscountType(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED = "FIXED", "Fixed amount"


class PromoCode(TimeStampedModel):
    code = models.CharField(max_length=50, unique=True, db_index=True)
    description = models.TextField(blank=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))]
    )
    max_uses = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited uses.")
    max_uses_per_user = models.PositiveIntegerField(default=1)
    current_uses = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="promo_codes",
        help_text="Restrict the code to one event. Empty means any event of the creator.",
    )
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="promo_codes"
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.code

    def clean(self) -> None:
        """Normalize the code and check the discount bounds."""
        self.code = (self.code or "").strip().upper()
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            raise DjangoValidationError({"valid_until": "Must be after valid_from."})
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value and self.discount_value > 100:
            raise DjangoValidationError({"discount_value": "A percentage discount cannot exceed 100."})

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Codes are stored upper-case."""
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)
