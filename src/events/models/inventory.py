import typing as t

from django.conf import settings
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel

from .event import Event, TicketType


class ReservationStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    RELEASED = "RELEASED", "Released"
    EXPIRED = "EXPIRED", "Expired"
    CONVERTED = "CONVERTED", "Converted"


class InventoryReservationQuerySet(models.QuerySet["InventoryReservation"]):
    def active(self) -> t.Self:
        """Reservations currently holding inventory."""
        return self.filter(status=ReservationStatus.ACTIVE)

    def past_expiry(self) -> t.Self:
        """Active reservations whose hold has lapsed."""
        return self.active().filter(expires_at__lt=timezone.now())


class InventoryReservation(TimeStampedModel):
    """A temporary hold on seats of a ticket type while the buyer checks out.

    ``reserved_quantity`` on the ticket type always equals the sum of the quantities of its
    ACTIVE reservations, minus those that lapsed and were converted late.
    """

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="reservations")
    ticket_type = models.ForeignKey(TicketType, on_delete=models.CASCADE, related_name="reservations")
    quantity = models.PositiveIntegerField()
    status = models.CharField(
        max_length=20, choices=ReservationStatus.choices, default=ReservationStatus.ACTIVE, db_index=True
    )
    expires_at = models.DateTimeField(db_index=True)
    order = models.OneToOneField(
        "events.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="reservation"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="reservations"
    )
    released_at = models.DateTimeField(null=True, blank=True)

    objects = InventoryReservationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.ticket_type_id} ({self.status})"

    @property
    def reservation_id(self) -> t.Any:
        """Public identifier of the reservation."""
        return self.id

    @property
    def is_expired(self) -> bool:
        """Whether the hold has lapsed, regardless of whether the sweep already ran."""
        return self.status == ReservationStatus.EXPIRED or (
            self.status == ReservationStatus.ACTIVE and self.expires_at < timezone.now()
        )
