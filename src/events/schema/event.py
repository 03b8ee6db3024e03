import typing as t
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from ninja import ModelSchema, Schema
from pydantic import UUID4, AwareDatetime, Field, model_validator

from common.schema import OneToTwoFiftyFiveString, StrippedString
from events.models import Event, EventCategory, EventStatus, TicketType


class TicketTypeSchema(ModelSchema):
    id: UUID4
    available: int
    is_on_sale: bool

    class Meta:
        model = TicketType
        fields = [
            "name",
            "description",
            "price",
            "currency",
            "total_quantity",
            "max_per_order",
            "sales_start",
            "sales_end",
            "is_active",
        ]


class OrganizerTicketTypeSchema(TicketTypeSchema):
    sold_quantity: int
    reserved_quantity: int


class EventListSchema(ModelSchema):
    id: UUID4
    organizer_name: str
    min_price: Decimal | None = None

    class Meta:
        model = Event
        fields = [
            "title",
            "slug",
            "category",
            "venue_name",
            "city",
            "start_datetime",
            "end_datetime",
            "image_url",
            "is_featured",
            "status",
        ]

    @staticmethod
    def resolve_organizer_name(obj: Event) -> str:
        profile = getattr(obj.organizer, "organizer_profile", None)
        return profile.business_name if profile else obj.organizer.display_name

    @staticmethod
    def resolve_min_price(obj: Event) -> Decimal | None:
        prices = [ticket_type.price for ticket_type in obj.ticket_types.all() if ticket_type.is_active]
        return min(prices) if prices else None


class EventDetailSchema(EventListSchema):
    description: str
    venue_address: str
    published_at: AwareDatetime | None = None
    ticket_types: list[TicketTypeSchema]

    @staticmethod
    def resolve_ticket_types(obj: Event) -> list[TicketType]:
        return [ticket_type for ticket_type in obj.ticket_types.all() if ticket_type.is_active]


class OrganizerEventSchema(EventDetailSchema):
    created_at: AwareDatetime
    updated_at: AwareDatetime
    ticket_types: list[OrganizerTicketTypeSchema]  # type: ignore[assignment]

    @staticmethod
    def resolve_ticket_types(obj: Event) -> list[TicketType]:
        return list(obj.ticket_types.all())


class TicketTypeCreateSchema(Schema):
    name: OneToTwoFiftyFiveString
    description: StrippedString = ""
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field(settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    total_quantity: int = Field(..., ge=1)
    max_per_order: int = Field(10, ge=1)
    sales_start: AwareDatetime | None = None
    sales_end: AwareDatetime | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_sales_window(self) -> t.Self:
        """Sales must end after they start."""
        if self.sales_start and self.sales_end and self.sales_end <= self.sales_start:
            raise ValueError("sales_end must be after sales_start.")
        return self


class TicketTypeUpdateSchema(Schema):
    name: OneToTwoFiftyFiveString | None = None
    description: StrippedString | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    total_quantity: int | None = Field(None, ge=1)
    max_per_order: int | None = Field(None, ge=1)
    sales_start: AwareDatetime | None = None
    sales_end: AwareDatetime | None = None
    is_active: bool | None = None


class EventCreateSchema(Schema):
    title: OneToTwoFiftyFiveString
    description: StrippedString = ""
    category: EventCategory
    venue_name: OneToTwoFiftyFiveString
    venue_address: StrippedString = ""
    city: StrippedString = Field(..., min_length=1, max_length=100)
    start_datetime: AwareDatetime
    end_datetime: AwareDatetime
    image_url: str = Field("", max_length=500)
    ticket_types: list[TicketTypeCreateSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> t.Self:
        """The event must end after it starts."""
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime.")
        return self


class EventUpdateSchema(Schema):
    title: OneToTwoFiftyFiveString | None = None
    description: StrippedString | None = None
    category: EventCategory | None = None
    venue_name: OneToTwoFiftyFiveString | None = None
    venue_address: StrippedString | None = None
    city: StrippedString | None = Field(None, min_length=1, max_length=100)
    start_datetime: AwareDatetime | None = None
    end_datetime: AwareDatetime | None = None
    image_url: str | None = Field(None, max_length=500)


class EventStatusChangeSchema(Schema):
    status: EventStatus


class EventStatusResponseSchema(Schema):
    id: UUID
    status: EventStatus
    allowed_transitions: list[str]


class TicketTypeAnalyticsSchema(Schema):
    id: UUID
    name: str
    price: Decimal
    total_quantity: int
    sold_quantity: int
    reserved_quantity: int
    available: int
    revenue: Decimal


class EventAnalyticsSchema(Schema):
    event_id: UUID
    status: EventStatus
    tickets_sold: int
    tickets_issued: int
    checked_in: int
    gross_revenue: Decimal
    discounts: Decimal
    platform_fees: Decimal
    processing_fees: Decimal
    orders_count: int
    orders_by_status: dict[str, int]
    ticket_types: list[TicketTypeAnalyticsSchema]
