"""Authentication service layer: session cookies and JWT pairs."""

import structlog
from django.conf import settings
from django.http import HttpResponse
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from ninja_jwt.exceptions import TokenError
from ninja_jwt.tokens import RefreshToken

from accounts import schema
from accounts.models import User
from accounts.service import session_store

logger = structlog.get_logger(__name__)


def get_token_pair_for_user(user: User) -> schema.TokenPairSchema:
    """Issue a JWT pair carrying the user's email and roles."""
    token = RefreshToken.for_user(user)
    token.payload.update(
        {
            "sub": str(user.id),
            "email": user.email,
            "roles": user.role_names(),
        }
    )
    logger.info("token_pair_generated", user_id=str(user.id))
    return schema.TokenPairSchema(access=str(token.access_token), refresh=str(token))  # type: ignore[attr-defined]


def refresh_access_token(refresh: str) -> schema.AccessTokenSchema:
    """Exchange a refresh token for a new access token."""
    try:
        token = RefreshToken(refresh)  # type: ignore[arg-type]
    except TokenError as e:
        logger.warning("token_refresh_failed", error=str(e))
        raise HttpError(401, str(_("Invalid or expired refresh token."))) from e
    return schema.AccessTokenSchema(access=str(token.access_token))


def start_session(user: User, *, ip_address: str | None, user_agent: str) -> str:
    """Create a server-side session for a freshly authenticated user."""
    return session_store.create_session(
        user_id=user.id,
        email=user.email,
        roles=user.role_names(),
        ip_address=ip_address or "",
        user_agent=user_agent,
    )


def set_session_cookie(response: HttpResponse, session_id: str) -> HttpResponse:
    """Attach the session cookie: HttpOnly, SameSite=Strict, eight hours."""
    response.set_cookie(
        settings.SESSION_STORE_COOKIE_NAME,
        session_id,
        max_age=settings.SESSION_STORE_DEFAULT_TTL_SECONDS,
        httponly=True,
        secure=settings.SESSION_STORE_COOKIE_SECURE,
        samesite="Strict",
        path="/",
    )
    return response


def clear_session_cookie(response: HttpResponse) -> HttpResponse:
    """Remove the session cookie from the browser."""
    response.delete_cookie(settings.SESSION_STORE_COOKIE_NAME, path="/", samesite="Strict")
    return response
