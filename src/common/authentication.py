"""Authentication classes for the API.

The session cookie issued at login is the primary credential. Bearer JWTs issued alongside it are
accepted as a fallback for API clients that cannot hold cookies.
"""

import typing as t

import structlog
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.http import HttpRequest
from ninja.security import APIKeyCookie
from ninja_jwt.authentication import JWTAuth
from ninja_jwt.exceptions import AuthenticationFailed

logger = structlog.get_logger(__name__)


class SessionAuth(APIKeyCookie):
    """Authenticate with the opaque session id stored in the ``session`` cookie.

    Missing, unknown, expired and idle sessions all yield ``None`` so that the next
    authenticator in the chain gets a chance. On success the request carries the user,
    the session id and the cached ``SessionData``.
    """

    param_name = settings.SESSION_STORE_COOKIE_NAME

    def __init__(self) -> None:
        """Session cookies are SameSite=Strict, so no extra CSRF token is required."""
        super().__init__(csrf=False)

    def authenticate(self, request: HttpRequest, key: str | None) -> t.Any:
        """Resolve the session and load its user."""
        from accounts.models import User
        from accounts.service import session_store

        if not key:
            return None
        data = session_store.validate_session(key)
        if data is None:
            return None
        user = User.objects.filter(pk=data.user_id, is_active=True).first()
        if user is None or user.is_locked():
            logger.warning("session_user_unavailable", user_id=str(data.user_id))
            session_store.delete_session(key)
            return None
        request.user = user
        request.session_id = key  # type: ignore[attr-defined]
        request.session_data = data  # type: ignore[attr-defined]
        structlog.contextvars.bind_contextvars(user_id=str(user.pk))
        return user


class BearerAuth(JWTAuth):
    """JWT authentication used when no session cookie is present."""

    def authenticate(self, request: HttpRequest, token: str) -> t.Any:
        """Authenticate the token and mark the request as sessionless."""
        user = super().authenticate(request, token)
        if user.is_locked():
            raise AuthenticationFailed("Account is locked.")
        structlog.contextvars.bind_contextvars(user_id=str(user.pk))
        request.session_id = None  # type: ignore[attr-defined]
        request.session_data = None  # type: ignore[attr-defined]
        return user


class OptionalAuth(BearerAuth):
    """Bearer authentication that lets anonymous requests through.

    Usage:
        @route.post("/orders", auth=OPTIONAL_AUTH)
        def create_order(self, payload): ...
    """

    def __call__(self, request: HttpRequest) -> t.Any | None:
        """Fall back to ``AnonymousUser`` when there is no Authorization header."""
        if not request.headers.get(self.header):
            request.user = AnonymousUser()
            request.session_id = None  # type: ignore[attr-defined]
            request.session_data = None  # type: ignore[attr-defined]
            return request.user
        return super().__call__(request)


AUTH = [SessionAuth(), BearerAuth()]
OPTIONAL_AUTH = [SessionAuth(), OptionalAuth()]
