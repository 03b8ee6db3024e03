# src/events/filters.py

from uuid import UUID

from django.db.models import Q
from ninja import Field, FilterSchema
from pydantic import AwareDatetime

from events.models import EventCategory, EventStatus, OrderStatus


class EventFilterSchema(FilterSchema):
    category: EventCategory | None = None
    city: str | None = Field(None, q="city__iexact")  # type: ignore[call-overload]
    search: str | None = None
    start_date: AwareDatetime | None = Field(None, q="start_datetime__gte")  # type: ignore[call-overload]
    end_date: AwareDatetime | None = Field(None, q="start_datetime__lte")  # type: ignore[call-overload]
    featured: bool | None = Field(None, q="is_featured")  # type: ignore[call-overload]

    def filter_search(self, search: str | None) -> Q:
        """Match the title, description, venue or city."""
        if not search:
            return Q()
        return (
            Q(title__icontains=search)
            | Q(description__icontains=search)
            | Q(venue_name__icontains=search)
            | Q(city__icontains=search)
        )


class OrganizerEventFilterSchema(FilterSchema):
    status: EventStatus | None = None
    search: str | None = Field(None, q="title__icontains")  # type: ignore[call-overload]


class OrderFilterSchema(FilterSchema):
    status: OrderStatus | None = None
    event_id: UUID | None = None
    search: str | None = None

    def filter_search(self, search: str | None) -> Q:
        """Match the order number, customer e-mail or name."""
        if not search:
            return Q()
        return (
            Q(order_number__icontains=search)
            | Q(customer_email__icontains=search)
            | Q(customer_name__icontains=search)
        )
