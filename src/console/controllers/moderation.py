"""Event moderation and order management."""

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
from console import schema, service
from events import filters
from events.models import Event, EventStatus, Order
from events.schema import EventStatusResponseSchema, OrderDetailSchema, OrderSchema
from events.service import event_service, order_service
from events.service.status import Actor, allowed_targets


@api_controller("/console/events", auth=AUTH, permissions=[HasRole(Role.ADMIN)], tags=["Console"])
class ConsoleEventController(UserAwareController):
    @route.get("/", url_name="console_list_events", response=PaginatedResponseSchema[schema.AdminEventSchema])
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_events(self, status: EventStatus | None = None, search: str | None = None) -> QuerySet[Event]:
        return service.list_events(status, search)

    @route.get("/{event_id}", url_name="console_get_event", response=schema.AdminEventSchema)
    def get_event(self, event_id: UUID) -> Event:
        return service.get_event(event_id)

    @route.post("/{event_id}/status", url_name="console_moderate_event", response=EventStatusResponseSchema)
    def moderate(self, event_id: UUID, payload: schema.EventModerationSchema) -> dict[str, t.Any]:
        """Force an event into any status. Completed and cancelled events cannot be changed."""
        event = event_service.change_status(service.get_event(event_id), payload.status, Actor.ADMIN)
        return {
            "id": event.id,
            "status": event.status,
            "allowed_transitions": allowed_targets(event.status, Actor.ADMIN),
        }

    @route.post("/{event_id}/featured", url_name="console_feature_event", response=schema.AdminEventSchema)
    def set_featured(self, event_id: UUID, payload: schema.FeaturedSchema) -> Event:
        return event_service.set_featured(service.get_event(event_id), payload.is_featured)


@api_controller("/console/orders", auth=AUTH, permissions=[HasRole(Role.ADMIN)], tags=["Console"])
class ConsoleOrderController(UserAwareController):
    @route.get("/", url_name="console_list_orders", response=PaginatedResponseSchema[OrderSchema])
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_orders(
        self,
        params: filters.OrderFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[Order]:
        """Search by order number, customer e-mail or name."""
        return params.filter(service.list_orders())

    @route.get("/{order_id}", url_name="console_get_order", response=OrderDetailSchema)
    def get_order(self, order_id: UUID) -> Order:
        return service.get_order(order_id)

    @route.post("/{order_id}/status", url_name="console_change_order_status", response=OrderDetailSchema)
    def change_status(self, order_id: UUID, payload: schema.OrderStatusChangeSchema) -> Order:
        """Mark an order cancelled or refunded. Tickets are voided and seats return to sale.

        The refund itself is settled with the payment processor outside the platform.
        """
        return order_service.cancel_order(service.get_order(order_id), status=payload.status, reason=payload.reason)
