from django.db import models

from common.models import TimeStampedModel

from .event import Event, TicketType


class WaitlistEntry(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="waitlist")
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.CASCADE, null=True, blank=True, related_name="waitlist"
    )
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    notified_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "email", "ticket_type"], name="unique_waitlist_entry"),
        ]

    def __str__(self) -> str:
        return f"{self.email} waiting for {self.event_id}"
