"""Checkout, reservation, order and ticket schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import UUID4, AwareDatetime, EmailStr, Field, field_validator

from accounts.validators import normalize_phone_number, validate_phone_number
from common.schema import StrippedString
from events.models import InventoryReservation, Order, Ticket

from .event import EventListSchema


class AttendeeSchema(Schema):
    name: StrippedString = Field("", max_length=255)
    email: EmailStr | None = None
    phone: StrippedString = Field("", max_length=20)


class ReservationCreateSchema(Schema):
    event_id: UUID
    ticket_type_id: UUID
    quantity: int = Field(..., ge=1)


class ReservationSchema(ModelSchema):
    reservation_id: UUID4
    event_id: UUID4
    ticket_type_id: UUID4

    class Meta:
        model = InventoryReservation
        fields = ["quantity", "status", "expires_at"]


class AvailabilitySchema(Schema):
    ticket_type_id: UUID
    available: int
    can_reserve: bool


class QuoteRequestSchema(ReservationCreateSchema):
    promo_code: StrippedString | None = None
    customer_email: EmailStr | None = None


class QuoteSchema(Schema):
    unit_price: Decimal
    quantity: int
    gross_amount: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    platform_fee: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    currency: str


class CheckoutSchema(Schema):
    event_id: UUID
    ticket_type_id: UUID
    quantity: int = Field(..., ge=1)
    customer_email: EmailStr
    customer_name: StrippedString = Field("", max_length=255)
    customer_phone: StrippedString = Field("", max_length=20)
    promo_code: StrippedString | None = Field(None, max_length=50)
    reservation_id: UUID | None = None
    attendees: list[AttendeeSchema] = Field(default_factory=list)

    @field_validator("customer_phone")
    @classmethod
    def clean_phone(cls, value: str) -> str:
        """Nigerian numbers are normalized to +234."""
        if not value:
            return value
        validate_phone_number(value)
        return normalize_phone_number(value)


class TicketSchema(ModelSchema):
    id: UUID4
    event_id: UUID4
    ticket_type_name: str

    class Meta:
        model = Ticket
        fields = [
            "ticket_number",
            "qr_code",
            "attendee_name",
            "attendee_email",
            "attendee_phone",
            "status",
            "transferred_from",
            "transferred_at",
            "checked_in_at",
            "created_at",
        ]

    @staticmethod
    def resolve_ticket_type_name(obj: Ticket) -> str:
        return obj.ticket_type.name


class UserTicketSchema(TicketSchema):
    event: EventListSchema
    order_number: str

    @staticmethod
    def resolve_order_number(obj: Ticket) -> str:
        return obj.order.order_number


class OrderSchema(ModelSchema):
    id: UUID4
    event_id: UUID4
    event_title: str
    promo_code: str | None = None

    class Meta:
        model = Order
        fields = [
            "order_number",
            "customer_email",
            "customer_name",
            "customer_phone",
            "subtotal",
            "discount_amount",
            "platform_fee",
            "processing_fee",
            "total_amount",
            "currency",
            "status",
            "payment_status",
            "payment_reference",
            "paid_at",
            "failure_reason",
            "created_at",
        ]

    @staticmethod
    def resolve_event_title(obj: Order) -> str:
        return obj.event.title

    @staticmethod
    def resolve_promo_code(obj: Order) -> str | None:
        return obj.promo_code.code if obj.promo_code else None


class OrderDetailSchema(OrderSchema):
    tickets: list[TicketSchema]
    reservation_expires_at: AwareDatetime | None = None

    @staticmethod
    def resolve_tickets(obj: Order) -> list[Ticket]:
        return list(obj.tickets.select_related("ticket_type"))

    @staticmethod
    def resolve_reservation_expires_at(obj: Order) -> datetime | None:
        reservation = InventoryReservation.objects.filter(order=obj).first()
        return reservation.expires_at if reservation else None


class TicketTransferSchema(Schema):
    recipient_email: EmailStr
    recipient_name: StrippedString | None = Field(None, max_length=255)


class CheckInSchema(Schema):
    ticket_number: StrippedString = Field(..., min_length=1, max_length=40)
