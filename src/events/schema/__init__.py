"""Events schema package."""

from .event import (
    EventAnalyticsSchema,
    EventCreateSchema,
    EventDetailSchema,
    EventListSchema,
    EventStatusChangeSchema,
    EventStatusResponseSchema,
    EventUpdateSchema,
    OrganizerEventSchema,
    OrganizerTicketTypeSchema,
    TicketTypeAnalyticsSchema,
    TicketTypeCreateSchema,
    TicketTypeSchema,
    TicketTypeUpdateSchema,
)
from .order import (
    AttendeeSchema,
    AvailabilitySchema,
    CheckInSchema,
    CheckoutSchema,
    OrderDetailSchema,
    OrderSchema,
    QuoteRequestSchema,
    QuoteSchema,
    ReservationCreateSchema,
    ReservationSchema,
    TicketSchema,
    TicketTransferSchema,
    UserTicketSchema,
)
from .promo import (
    PromoCodeCreateSchema,
    PromoCodeSchema,
    PromoCodeUpdateSchema,
    PromoValidateSchema,
    PromoValidationSchema,
)
from .waitlist import WaitlistEntrySchema, WaitlistJoinSchema

__all__ = [
    # Events and ticket types
    "EventAnalyticsSchema",
    "EventCreateSchema",
    "EventDetailSchema",
    "EventListSchema",
    "EventStatusChangeSchema",
    "EventStatusResponseSchema",
    "EventUpdateSchema",
    "OrganizerEventSchema",
    "OrganizerTicketTypeSchema",
    "TicketTypeAnalyticsSchema",
    "TicketTypeCreateSchema",
    "TicketTypeSchema",
    "TicketTypeUpdateSchema",
    # Checkout, orders and tickets
    "AttendeeSchema",
    "AvailabilitySchema",
    "CheckInSchema",
    "CheckoutSchema",
    "OrderDetailSchema",
    "OrderSchema",
    "QuoteRequestSchema",
    "QuoteSchema",
    "ReservationCreateSchema",
    "ReservationSchema",
    "TicketSchema",
    "TicketTransferSchema",
    "UserTicketSchema",
    # Promo codes
    "PromoCodeCreateSchema",
    "PromoCodeSchema",
    "PromoCodeUpdateSchema",
    "PromoValidateSchema",
    "PromoValidationSchema",
    # Waitlist
    "WaitlistEntrySchema",
    "WaitlistJoinSchema",
]
