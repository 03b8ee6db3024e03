import typing as t
from uuid import UUID

from django.db.models import QuerySet
from ninja import Query
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate

from common.authentication import OPTIONAL_AUTH
from common.controllers import UserAwareController
from common.throttling import WriteThrottle
from events import filters, models, schema
from events.service import event_service, inventory_service, waitlist_service


@api_controller("/events", auth=OPTIONAL_AUTH, tags=["Events"])
class EventController(UserAwareController):
    @route.get("/", url_name="list_events", response=PaginatedResponseSchema[schema.EventListSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def list_events(
        self,
        params: filters.EventFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Event]:
        """Browse published, live and sold out events, newest first by start date.

        Filter by category, city, date range or featured flag, and search titles, descriptions and venues.
        """
        return params.filter(event_service.public_events())

    @route.get("/{id_or_slug}", url_name="get_event", response=schema.EventDetailSchema)
    def get_event(self, id_or_slug: str) -> models.Event:
        """Get an event by id or slug, with its ticket types and live availability."""
        return event_service.get_public_event(id_or_slug)

    @route.get(
        "/{event_id}/availability/{ticket_type_id}",
        url_name="ticket_type_availability",
        response=schema.AvailabilitySchema,
    )
    def availability(self, event_id: UUID, ticket_type_id: UUID, quantity: int = 1) -> dict[str, t.Any]:
        """Check whether `quantity` tickets could be reserved right now."""
        event = event_service.get_public_event(str(event_id))
        ticket_type = event_service.get_ticket_type(event, ticket_type_id)
        available, can_reserve = inventory_service.check_availability(event, ticket_type, quantity)
        return {"ticket_type_id": ticket_type.id, "available": available, "can_reserve": can_reserve}

    @route.post(
        "/{event_id}/waitlist",
        url_name="join_waitlist",
        response={200: schema.WaitlistEntrySchema, 201: schema.WaitlistEntrySchema},
        throttle=WriteThrottle(),
    )
    def join_waitlist(
        self, event_id: UUID, payload: schema.WaitlistJoinSchema
    ) -> tuple[int, models.WaitlistEntry]:
        """Join the waitlist of a sold out event or ticket type.

        Joining again with the same e-mail returns the existing entry with status 200.
        """
        event = event_service.get_public_event(str(event_id))
        entry, created = waitlist_service.join(
            event,
            payload.email,
            ticket_type_id=payload.ticket_type_id,
            phone=payload.phone,
            quantity=payload.quantity,
        )
        return (201 if created else 200), entry
