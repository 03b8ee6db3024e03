import typing as t

from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission

from accounts.models import Role
from common.permissions import request_roles
from events import models


class EventOwnerPermission(BasePermission):
    """Object permission for organizer routes: the event's organizer, or an admin."""

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Must implement abstract method. This is due to an error in Ninja Extra.

        This Method will be ignored, only has_object_permission will be called.
        """
        return True

    def has_object_permission(self, request: HttpRequest, controller: ControllerBase, obj: t.Any) -> bool:
        """Check ownership of an event, or of the event a related object belongs to."""
        event = obj if isinstance(obj, models.Event) else obj.event
        if event.organizer_id == request.user.id:
            return True
        return Role.ADMIN in request_roles(request)
