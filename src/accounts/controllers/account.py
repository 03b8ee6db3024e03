"""This module contains the controllers for the signed-in user's account."""

from django.db.models import QuerySet
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate

from accounts import schema
from accounts.models import OrganizerProfile, Role, User
from accounts.service import account as account_service
from common.authentication import AUTH
from common.controllers import UserAwareController
from common.permissions import HasRole
from events import models as event_models
from events import schema as event_schema
from events.service import order_service, ticket_service


@api_controller("/account", auth=AUTH, tags=["Account"])
class AccountController(UserAwareController):
    @route.get("/me", url_name="me", response=schema.MeSchema)
    def me(self) -> User:
        """The signed-in user with roles and profiles."""
        return self.user()

    @route.put("/me", url_name="update_profile", response=schema.MeSchema)
    def update_profile(self, payload: schema.ProfileUpdateSchema) -> User:
        """Update your name, phone and buyer profile."""
        return account_service.update_profile(self.user(), payload)

    @route.get("/me/tickets", url_name="my_tickets", response=PaginatedResponseSchema[event_schema.UserTicketSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def my_tickets(self) -> QuerySet[event_models.Ticket]:
        """Tickets from your paid orders and tickets transferred to your e-mail."""
        return ticket_service.tickets_for_user(self.user())

    @route.get("/me/orders", url_name="my_orders", response=PaginatedResponseSchema[event_schema.OrderSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def my_orders(self, status: event_models.OrderStatus | None = None) -> QuerySet[event_models.Order]:
        """Your orders, including guest orders placed with your e-mail."""
        qs = order_service.orders_for_user(self.user())
        if status:
            qs = qs.filter(status=status)
        return qs

    @route.get(
        "/organizer-profile",
        url_name="get_organizer_profile",
        response=schema.OrganizerProfileSchema,
        permissions=[HasRole(Role.ORGANIZER)],
    )
    def get_organizer_profile(self) -> OrganizerProfile:
        return account_service.get_organizer_profile(self.user())

    @route.put(
        "/organizer-profile",
        url_name="update_organizer_profile",
        response=schema.OrganizerProfileSchema,
        permissions=[HasRole(Role.ORGANIZER)],
    )
    def update_organizer_profile(self, payload: schema.OrganizerProfileUpdateSchema) -> OrganizerProfile:
        """Update your business details. Verification status is managed by admins."""
        profile = account_service.get_organizer_profile(self.user())
        return account_service.update_organizer_profile(profile, payload)
