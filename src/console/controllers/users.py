from uuid import UUID

from django.db.models import QuerySet
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate

from accounts.models import OrganizerProfile, Role, User
from common.authentication import AUTH
from common.controllers import UserAwareController
from common.permissions import HasRole
from console import schema, service


@api_controller("/console/users", auth=AUTH, permissions=[HasRole(Role.ADMIN)], tags=["Console"])
class ConsoleUserController(UserAwareController):
    @route.get("/", url_name="console_list_users", response=PaginatedResponseSchema[schema.AdminUserSchema])
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_users(self, role: Role | None = None, search: str | None = None) -> QuerySet[User]:
        """Search by e-mail, name or phone, optionally limited to holders of a role."""
        return service.list_users(role, search)

    @route.get("/{user_id}", url_name="console_get_user", response=schema.AdminUserSchema)
    def get_user(self, user_id: UUID) -> User:
        return service.get_user(user_id)

    @route.post("/{user_id}/suspend", url_name="console_suspend_user", response=schema.AdminUserSchema)
    def suspend_user(self, user_id: UUID) -> User:
        """Lock the account. The user's data is kept and their sessions stop working."""
        return service.suspend_user(self.user(), service.get_user(user_id))

    @route.post("/{user_id}/unsuspend", url_name="console_unsuspend_user", response=schema.AdminUserSchema)
    def unsuspend_user(self, user_id: UUID) -> User:
        return service.unsuspend_user(self.user(), service.get_user(user_id))

    @route.post("/{user_id}/roles", url_name="console_grant_role", response=schema.AdminUserSchema)
    def grant_role(self, user_id: UUID, payload: schema.RoleChangeSchema) -> User:
        """Grant a role. The user picks it up on their next login."""
        return service.grant_role(self.user(), service.get_user(user_id), payload.role)

    @route.delete("/{user_id}/roles/{role}", url_name="console_revoke_role", response=schema.AdminUserSchema)
    def revoke_role(self, user_id: UUID, role: Role) -> User:
        return service.revoke_role(self.user(), service.get_user(user_id), role)


@api_controller("/console/organizers", auth=AUTH, permissions=[HasRole(Role.ADMIN)], tags=["Console"])
class ConsoleOrganizerController(UserAwareController):
    @route.get(
        "/", url_name="console_list_organizers", response=PaginatedResponseSchema[schema.AdminOrganizerSchema]
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_organizers(
        self, verification_status: OrganizerProfile.VerificationStatus | None = None, search: str | None = None
    ) -> QuerySet[OrganizerProfile]:
        return service.list_organizers(verification_status, search)

    @route.get("/{organizer_id}", url_name="console_get_organizer", response=schema.AdminOrganizerSchema)
    def get_organizer(self, organizer_id: UUID) -> OrganizerProfile:
        return service.get_organizer(organizer_id)

    @route.post(
        "/{organizer_id}/verification", url_name="console_set_verification", response=schema.AdminOrganizerSchema
    )
    def set_verification(self, organizer_id: UUID, payload: schema.VerificationChangeSchema) -> OrganizerProfile:
        """Verify or suspend an organizer. Suspended organizers cannot publish events or request payouts."""
        return service.set_verification(self.user(), service.get_organizer(organizer_id), payload.verification_status)
