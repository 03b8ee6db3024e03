import typing as t
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.text import slugify

from common.models import TimeStampedModel
from common.utils import random_base36


class EventCategory(models.TextChoices):
    CONCERT = "concert", "Concert"
    SPORTS = "sports", "Sports"
    CONFERENCE = "conference", "Conference"
    FESTIVAL = "festival", "Festival"
    THEATER = "theater", "Theater"
    WORKSHOP = "workshop", "Workshop"


class EventStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    PUBLISHED = "PUBLISHED", "Published"
    LIVE = "LIVE", "Live"
    SOLD_OUT = "SOLD_OUT", "Sold out"
    CANCELLED = "CANCELLED", "Cancelled"
    COMPLETED = "COMPLETED", "Completed"


PUBLIC_STATUSES = (EventStatus.PUBLISHED, EventStatus.LIVE, EventStatus.SOLD_OUT)
PURCHASABLE_STATUSES = (EventStatus.PUBLISHED, EventStatus.LIVE)
TERMINAL_STATUSES = (EventStatus.CANCELLED, EventStatus.COMPLETED)


class EventQuerySet(models.QuerySet["Event"]):
    def public(self) -> t.Self:
        """Events visible on the storefront."""
        return self.filter(status__in=PUBLIC_STATUSES)

    def for_organizer(self, user_id: t.Any) -> t.Self:
        """Events owned by an organizer."""
        return self.filter(organizer_id=user_id)


class Event(TimeStampedModel):
    organizer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="events")
    title = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=300, unique=True, blank=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=EventCategory.choices, db_index=True)
    venue_name = models.CharField(max_length=255)
    venue_address = models.CharField(max_length=500, blank=True)
    city = models.CharField(max_length=100, db_index=True)
    start_datetime = models.DateTimeField(db_index=True)
    end_datetime = models.DateTimeField()
    image_url = models.URLField(max_length=500, blank=True)
    is_featured = models.BooleanField(default=False, db_index=True)
    status = models.CharField(max_length=20, choices=EventStatus.choices, default=EventStatus.DRAFT, db_index=True)
    published_at = models.DateTimeField(null=True, blank=True)

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["-start_datetime"]
        indexes = [models.Index(fields=["status", "start_datetime"], name="ix_event_status_start")]

    def __str__(self) -> str:
        return self.title

    def clean(self) -> None:
        """The event must end after it starts."""
        if self.start_datetime and self.end_datetime and self.end_datetime <= self.start_datetime:
            raise DjangoValidationError({"end_datetime": "End must be after start."})

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Generate a unique slug from the title on first save."""
        if not self.slug:
            base = slugify(self.title)[:280] or "event"
            slug = base
            while Event.objects.filter(slug=slug).exists():
                slug = f"{base}-{random_base36(6)}"
            self.slug = slug
        super().save(*args, **kwargs)

    @property
    def is_purchasable(self) -> bool:
        """Tickets can be bought while PUBLISHED or LIVE."""
        return self.status in PURCHASABLE_STATUSES


class TicketTypeQuerySet(models.QuerySet["TicketType"]):
    def on_sale(self) -> t.Self:
        """Active ticket types whose sales window is open now."""
        now = timezone.now()
        return self.filter(is_active=True).filter(
            Q(sales_start__isnull=True) | Q(sales_start__lte=now),
            Q(sales_end__isnull=True) | Q(sales_end__gte=now),
        )

    def with_availability(self) -> t.Self:
        """Annotate ``available_quantity``."""
        return self.annotate(available_quantity=F("total_quantity") - F("sold_quantity") - F("reserved_quantity"))


class TicketType(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    total_quantity = models.PositiveIntegerField()
    sold_quantity = models.PositiveIntegerField(default=0)
    reserved_quantity = models.PositiveIntegerField(default=0)
    max_per_order = models.PositiveIntegerField(default=10, validators=[MinValueValidator(1)])
    sales_start = models.DateTimeField(null=True, blank=True)
    sales_end = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    objects = TicketTypeQuerySet.as_manager()

    class Meta:
        ordering = ["price", "name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(sold_quantity__lte=F("total_quantity") - F("reserved_quantity")),
                name="ticket_type_no_oversell",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event.title} - {self.name}"

    def clean(self) -> None:
        """The sales window must be ordered."""
        if self.sales_start and self.sales_end and self.sales_end <= self.sales_start:
            raise DjangoValidationError({"sales_end": "Sales end must be after sales start."})

    @property
    def available(self) -> int:
        """Seats that are neither sold nor held by a reservation."""
        return max(self.total_quantity - self.sold_quantity - self.reserved_quantity, 0)

    @property
    def is_on_sale(self) -> bool:
        """Active and inside the sales window."""
        now = timezone.now()
        if not self.is_active:
            return False
        if self.sales_start and self.sales_start > now:
            return False
        return not (self.sales_end and self.sales_end < now)
