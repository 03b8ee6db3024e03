import typing as t

from django.contrib.auth.models import AnonymousUser
from ninja_extra import ControllerBase

if t.TYPE_CHECKING:
    from accounts.models import User


class UserAwareController(ControllerBase):
    def maybe_user(self) -> "User | AnonymousUser":
        """Get the user for this request."""
        return t.cast("User | AnonymousUser", self.context.request.user)  # type: ignore[union-attr]

    def user(self) -> "User":
        """Get the user for this request."""
        return t.cast("User", self.context.request.user)  # type: ignore[union-attr]

    def client_ip(self) -> str | None:
        """The caller's IP, honouring X-Forwarded-For."""
        request = self.context.request  # type: ignore[union-attr]
        if forwarded := request.META.get("HTTP_X_FORWARDED_FOR"):
            return str(forwarded.split(",")[0].strip())
        return request.META.get("REMOTE_ADDR")

    def user_agent(self) -> str:
        """The caller's user agent."""
        return str(self.context.request.META.get("HTTP_USER_AGENT", ""))  # type: ignore[union-attr]
