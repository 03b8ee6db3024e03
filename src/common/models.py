import gzip
import typing as t
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from simple_history.models import HistoricalRecords
from solo.models import SingletonModel


class TimeStampedModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Override the save method to call full_clean before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


class PlatformSettings(SingletonModel):
    """Runtime-tunable platform configuration.

    Defaults come from the ``payments`` and ``email`` settings modules. Admins can change the
    values from the console or the Django admin; every change is kept in the history table.
    """

    platform_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=settings.DEFAULT_PLATFORM_FEE_PERCENT,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="Percentage charged on the ticket subtotal.",
    )
    processing_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=settings.DEFAULT_PROCESSING_FEE_PERCENT,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="Payment processing percentage passed on to the buyer.",
    )
    processing_fee_fixed = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=settings.DEFAULT_PROCESSING_FEE_FIXED,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Flat processing fee added to every paid order.",
    )
    free_tickets_threshold = models.PositiveIntegerField(
        default=settings.DEFAULT_FREE_TICKETS_THRESHOLD,
        help_text="Number of tickets per organizer that carry no platform fee.",
    )
    minimum_payout = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=settings.DEFAULT_MINIMUM_PAYOUT,
        validators=[MinValueValidator(Decimal("0"))],
    )
    payout_hold_days = models.PositiveIntegerField(default=settings.DEFAULT_PAYOUT_HOLD_DAYS)
    live_emails = models.BooleanField(default=False, help_text="Live-emails enabled")
    frontend_base_url = models.URLField(default=settings.FRONTEND_BASE_URL)
    internal_catchall_email = models.EmailField(
        verbose_name="Internal Catchall Email",
        help_text="The catchall email address for internal use.",
        default=settings.INTERNAL_CATCHALL_EMAIL,
    )
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    def __str__(self) -> str:  # pragma: no cover
        return "Platform Settings"

    class Meta:
        verbose_name = "Platform Settings"
        verbose_name_plural = "Platform Settings"


class EmailLog(TimeStampedModel):
    to = models.EmailField(db_index=True)
    subject = models.TextField(db_index=True)
    sent_at = models.DateTimeField(auto_now_add=True, db_index=True)
    test_only = models.BooleanField(default=False, db_index=True)
    compressed_body = models.BinaryField(null=True, blank=True)
    compressed_html = models.BinaryField(null=True, blank=True)

    def set_body(self, body: str) -> None:
        """Compress and set text."""
        self.compressed_body = gzip.compress(body.encode())

    def set_html(self, html_body: str) -> None:
        """Compress and set html."""
        self.compressed_html = gzip.compress(html_body.encode())

    @property
    def body(self) -> str | None:
        """Decompress and return text."""
        if self.compressed_body:
            return gzip.decompress(self.compressed_body).decode()
        return None

    @property
    def html(self) -> str | None:
        """Decompress and return html."""
        if self.compressed_html:
            return gzip.decompress(self.compressed_html).decode()
        return None

    def __str__(self) -> str:
        return f"Email to: {self.to}"

    class Meta:
        indexes = [
            models.Index(fields=["to", "sent_at", "test_only"], name="ix_emaillog_to_sentat_testonly"),
        ]
