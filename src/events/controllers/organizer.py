"""Organizer dashboard: events, ticket types, orders, check-in, waitlist and promo codes."""

import typing as t
from uuid import UUID

from django.db.models import QuerySet
from ninja import Query
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate

from accounts.models import Role
from common.authentication import AUTH
from common.controllers import UserAwareController
from common.permissions import HasRole
from common.throttling import WriteThrottle
from events import filters, models, schema
from events.controllers.permissions import EventOwnerPermission
from events.service import (
    analytics_service,
    event_service,
    order_service,
    promo_service,
    ticket_service,
    waitlist_service,
)
from events.service.status import Actor, allowed_targets


@api_controller(
    "/organizer/events",
    auth=AUTH,
    permissions=[HasRole(Role.ORGANIZER)],
    tags=["Organizer"],
)
class OrganizerEventsController(UserAwareController):
    @route.get("/", url_name="organizer_list_events", response=PaginatedResponseSchema[schema.OrganizerEventSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def list_events(
        self,
        params: filters.OrganizerEventFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Event]:
        """All of your events, in any status."""
        return params.filter(event_service.organizer_events(self.user()))

    @route.post(
        "/",
        url_name="organizer_create_event",
        response={201: schema.OrganizerEventSchema},
        throttle=WriteThrottle(),
    )
    def create_event(self, payload: schema.EventCreateSchema) -> tuple[int, models.Event]:
        """Create a DRAFT event, optionally with its ticket types."""
        return 201, event_service.create_event(self.user(), payload)


@api_controller(
    "/organizer/events/{event_id}",
    auth=AUTH,
    permissions=[HasRole(Role.ORGANIZER), EventOwnerPermission()],
    tags=["Organizer"],
)
class OrganizerEventController(UserAwareController):
    def get_one(self, event_id: UUID) -> models.Event:
        """Get the event and check it belongs to the caller."""
        return t.cast(models.Event, self.get_object_or_exception(models.Event, pk=event_id))

    @route.get("", url_name="organizer_get_event", response=schema.OrganizerEventSchema)
    def get_event(self, event_id: UUID) -> models.Event:
        return self.get_one(event_id)

    @route.put("", url_name="organizer_update_event", response=schema.OrganizerEventSchema, throttle=WriteThrottle())
    def update_event(self, event_id: UUID, payload: schema.EventUpdateSchema) -> models.Event:
        """Update event details. Cancelled and completed events are read-only."""
        return event_service.update_event(self.get_one(event_id), payload)

    @route.delete("", url_name="organizer_delete_event", response={204: None})
    def delete_event(self, event_id: UUID) -> tuple[int, None]:
        """Delete a DRAFT event without orders."""
        event_service.delete_event(self.get_one(event_id))
        return 204, None

    @route.get("/status", url_name="organizer_event_status", response=schema.EventStatusResponseSchema)
    def get_status(self, event_id: UUID) -> dict[str, t.Any]:
        """The current status and the statuses you may move the event to."""
        event = self.get_one(event_id)
        return {"id": event.id, "status": event.status, "allowed_transitions": allowed_targets(event.status)}

    @route.post("/status", url_name="organizer_change_event_status", response=schema.EventStatusResponseSchema)
    def change_status(self, event_id: UUID, payload: schema.EventStatusChangeSchema) -> dict[str, t.Any]:
        """Move the event through its lifecycle.

        DRAFT -> PUBLISHED -> LIVE -> SOLD_OUT / COMPLETED, and CANCELLED from any open status.
        Returns 400 with the allowed statuses when the transition is not permitted.
        """
        event = event_service.change_status(self.get_one(event_id), payload.status, Actor.ORGANIZER)
        return {"id": event.id, "status": event.status, "allowed_transitions": allowed_targets(event.status)}

    @route.post(
        "/ticket-types",
        url_name="organizer_create_ticket_type",
        response={201: schema.OrganizerTicketTypeSchema},
        throttle=WriteThrottle(),
    )
    def create_ticket_type(
        self, event_id: UUID, payload: schema.TicketTypeCreateSchema
    ) -> tuple[int, models.TicketType]:
        return 201, event_service.create_ticket_type(self.get_one(event_id), payload)

    @route.put(
        "/ticket-types/{ticket_type_id}",
        url_name="organizer_update_ticket_type",
        response=schema.OrganizerTicketTypeSchema,
        throttle=WriteThrottle(),
    )
    def update_ticket_type(
        self, event_id: UUID, ticket_type_id: UUID, payload: schema.TicketTypeUpdateSchema
    ) -> models.TicketType:
        """Update a ticket type. The total cannot go below the tickets already sold or reserved."""
        event = self.get_one(event_id)
        ticket_type = event_service.get_ticket_type(event, ticket_type_id)
        return event_service.update_ticket_type(event, ticket_type, payload)

    @route.delete("/ticket-types/{ticket_type_id}", url_name="organizer_delete_ticket_type", response={204: None})
    def delete_ticket_type(self, event_id: UUID, ticket_type_id: UUID) -> tuple[int, None]:
        event = self.get_one(event_id)
        event_service.delete_ticket_type(event, event_service.get_ticket_type(event, ticket_type_id))
        return 204, None

    @route.get("/analytics", url_name="organizer_event_analytics", response=schema.EventAnalyticsSchema)
    def analytics(self, event_id: UUID) -> dict[str, t.Any]:
        """Tickets sold per type, revenue, fees, orders and check-ins."""
        return analytics_service.event_analytics(self.get_one(event_id))

    @route.get("/orders", url_name="organizer_event_orders", response=PaginatedResponseSchema[schema.OrderSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def list_orders(
        self,
        event_id: UUID,
        params: filters.OrderFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Order]:
        return params.filter(order_service.orders_for_event(self.get_one(event_id)).select_related("event"))

    @route.post("/check-in", url_name="organizer_check_in", response=schema.TicketSchema)
    def check_in(self, event_id: UUID, payload: schema.CheckInSchema) -> models.Ticket:
        """Check a ticket in by its number. Returns 409 if it was already used."""
        return ticket_service.check_in(self.get_one(event_id), payload.ticket_number)

    @route.get(
        "/waitlist",
        url_name="organizer_event_waitlist",
        response=PaginatedResponseSchema[schema.WaitlistEntrySchema],
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_waitlist(self, event_id: UUID) -> QuerySet[models.WaitlistEntry]:
        return waitlist_service.entries_for_event(self.get_one(event_id))


@api_controller(
    "/organizer/promo-codes",
    auth=AUTH,
    permissions=[HasRole(Role.ORGANIZER)],
    tags=["Organizer"],
)
class OrganizerPromoCodeController(UserAwareController):
    @route.get("/", url_name="organizer_list_promo_codes", response=PaginatedResponseSchema[schema.PromoCodeSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def list_promo_codes(self) -> QuerySet[models.PromoCode]:
        """Codes on your events and the global codes you created."""
        return promo_service.list_for_organizer(self.user())

    @route.post("/", url_name="organizer_create_promo_code", response={201: schema.PromoCodeSchema})
    def create_promo_code(self, payload: schema.PromoCodeCreateSchema) -> tuple[int, models.PromoCode]:
        """Create a code for one of your events, or for all of them when no event is given."""
        return 201, promo_service.create_promo_code(self.user(), payload)

    @route.get("/{promo_code_id}", url_name="organizer_get_promo_code", response=schema.PromoCodeSchema)
    def get_promo_code(self, promo_code_id: UUID) -> models.PromoCode:
        return promo_service.get_for_organizer(self.user(), promo_code_id)

    @route.put("/{promo_code_id}", url_name="organizer_update_promo_code", response=schema.PromoCodeSchema)
    def update_promo_code(self, promo_code_id: UUID, payload: schema.PromoCodeUpdateSchema) -> models.PromoCode:
        promo_code = promo_service.get_for_organizer(self.user(), promo_code_id)
        return promo_service.update_promo_code(self.user(), promo_code, payload)

    @route.delete("/{promo_code_id}", url_name="organizer_delete_promo_code", response={204: None})
    def delete_promo_code(self, promo_code_id: UUID) -> tuple[int, None]:
        promo_service.delete_promo_code(promo_service.get_for_organizer(self.user(), promo_code_id))
        return 204, None
