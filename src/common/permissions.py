import typing as t

from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission


def request_roles(request: HttpRequest) -> list[str]:
    """Return the roles the caller holds.

    Session-authenticated requests use the roles cached in the session; token-authenticated
    requests read them from the database.
    """
    if session_data := getattr(request, "session_data", None):
        return list(session_data.roles)
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return []
    return t.cast(list[str], user.role_names())


class HasRole(BasePermission):
    """Require the caller to hold a role."""

    def __init__(self, role: str) -> None:
        """Store the role."""
        self.role = role

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Check the caller's roles."""
        return self.role in request_roles(request)
