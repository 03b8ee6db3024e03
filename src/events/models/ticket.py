import json

from django.db import models

from common.models import TimeStampedModel
from common.utils import now_millis, random_base36

from .event import Event, TicketType
from .order import Order


def generate_ticket_number() -> str:
    """``T<epoch millis><8 base36 chars>``."""
    return f"T{now_millis()}{random_base36(8).upper()}"


class TicketStatus(models.TextChoices):
    VALID = "VALID", "Valid"
    USED = "USED", "Used"
    CANCELLED = "CANCELLED", "Cancelled"
    TRANSFERRED = "TRANSFERRED", "Transferred"


class Ticket(TimeStampedModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="tickets")
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="tickets")
    ticket_type = models.ForeignKey(TicketType, on_delete=models.PROTECT, related_name="tickets")
    ticket_number = models.CharField(max_length=40, unique=True, default=generate_ticket_number, editable=False)
    qr_code = models.TextField(blank=True, help_text="Payload encoded in the ticket's QR code.")
    attendee_name = models.CharField(max_length=255, blank=True)
    attendee_email = models.EmailField(db_index=True)
    attendee_phone = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=TicketStatus.choices, default=TicketStatus.VALID, db_index=True)
    transferred_from = models.EmailField(blank=True)
    transferred_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return self.ticket_number

    def build_qr_payload(self) -> str:
        """JSON payload scanned at the door."""
        return json.dumps(
            {
                "ticketNumber": self.ticket_number,
                "orderId": str(self.order_id),
                "eventId": str(self.event_id),
                "orderNumber": self.order.order_number,
            }
        )
