import typing as t

from django.conf import settings
from django.db import models

from common.models import TimeStampedModel


class PayoutStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"


# Payouts in these statuses count against the organizer's available balance.
COMMITTED_STATUSES = (PayoutStatus.PENDING, PayoutStatus.PROCESSING, PayoutStatus.COMPLETED)


class PayoutQuerySet(models.QuerySet["Payout"]):
    def committed(self) -> t.Self:
        return self.filter(status__in=COMMITTED_STATUSES)

    def in_flight(self) -> t.Self:
        """Transfers waiting for the processor to settle."""
        return self.filter(status=PayoutStatus.PROCESSING)


class Payout(TimeStampedModel):
    organizer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="payouts")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    status = models.CharField(max_length=20, choices=PayoutStatus.choices, default=PayoutStatus.PENDING, db_index=True)
    recipient_code = models.CharField(max_length=100)
    bank_account = models.JSONField(default=dict, blank=True, help_text="Snapshot of the bank account paid to.")
    reference = models.CharField(max_length=100, unique=True, null=True, blank=True)
    transfer_code = models.CharField(max_length=100, blank=True)
    failure_reason = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    objects = PayoutQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["organizer", "status"], name="ix_payout_organizer_status")]

    def __str__(self) -> str:
        return f"{self.currency} {self.amount} to {self.organizer_id} ({self.status})"
