"""Server-side session store.

Sessions live in the Django cache (Redis in production) under ``sess:<id>``. The id is a
64-character hex string handed to the browser in an HttpOnly cookie. Organizer sessions expire
after two hours of inactivity, everyone else after eight.
"""

import secrets
import typing as t
from datetime import datetime
from uuid import UUID

import structlog
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone
from pydantic import BaseModel

from accounts.models import Role

logger = structlog.get_logger(__name__)


class SessionData(BaseModel):
    user_id: UUID
    email: str
    roles: list[str]
    active_role: str | None = None
    created_at: int
    last_activity: int
    ip_address: str = ""
    user_agent: str = ""


def _now() -> int:
    return int(timezone.now().timestamp())


def _key(session_id: str) -> str:
    return f"{settings.SESSION_STORE_KEY_PREFIX}:{session_id}"


def ttl_for_roles(roles: t.Iterable[str]) -> int:
    """Organizer sessions are short-lived."""
    if Role.ORGANIZER in roles:
        return t.cast(int, settings.SESSION_STORE_ORGANIZER_TTL_SECONDS)
    return t.cast(int, settings.SESSION_STORE_DEFAULT_TTL_SECONDS)


def _save(session_id: str, data: SessionData) -> None:
    cache.set(_key(session_id), data.model_dump(mode="json"), timeout=ttl_for_roles(data.roles))


def generate_session_id() -> str:
    """A cryptographically secure 64-hex-character id."""
    return secrets.token_hex(32)


def create_session(
    *,
    user_id: UUID,
    email: str,
    roles: list[str],
    ip_address: str = "",
    user_agent: str = "",
) -> str:
    """Store a new session and return its id."""
    session_id = generate_session_id()
    now = _now()
    roles = roles or [Role.BUYER.value]
    data = SessionData(
        user_id=user_id,
        email=email,
        roles=roles,
        active_role=Role.BUYER.value if Role.BUYER in roles else roles[0],
        created_at=now,
        last_activity=now,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    _save(session_id, data)
    logger.info("session_created", user_id=str(user_id), roles=roles)
    return session_id


def get_session(session_id: str) -> SessionData | None:
    """Load a session, or ``None`` if it does not exist or has expired."""
    raw = cache.get(_key(session_id))
    if raw is None:
        return None
    return SessionData.model_validate(raw)


def touch(session_id: str) -> SessionData | None:
    """Record activity and extend the TTL, at most once per debounce window."""
    data = get_session(session_id)
    if data is None:
        return None
    now = _now()
    if now - data.last_activity < settings.SESSION_STORE_ACTIVITY_DEBOUNCE_SECONDS:
        return data
    data.last_activity = now
    _save(session_id, data)
    return data


def validate_session(session_id: str) -> SessionData | None:
    """Load a session for an incoming request.

    Sessions idle for longer than their role TTL are deleted. Valid sessions are touched.
    """
    data = get_session(session_id)
    if data is None:
        return None
    if _now() - data.last_activity > ttl_for_roles(data.roles):
        logger.info("session_idle_expired", user_id=str(data.user_id))
        delete_session(session_id)
        return None
    return touch(session_id)


def update_active_role(session_id: str, role: str) -> SessionData | None:
    """Switch the active role. The role must be one the session holds.

    Raises:
        ValueError: if the session does not hold the role.
    """
    data = get_session(session_id)
    if data is None:
        return None
    if role not in data.roles:
        raise ValueError(f"Session does not hold the {role} role.")
    data.active_role = role
    _save(session_id, data)
    logger.info("session_role_switched", user_id=str(data.user_id), active_role=role)
    return data


def update_roles(session_id: str, roles: list[str]) -> SessionData | None:
    """Replace the cached roles; the TTL is recomputed from the new roles."""
    data = get_session(session_id)
    if data is None:
        return None
    data.roles = roles
    if data.active_role not in roles:
        data.active_role = roles[0] if roles else None
    _save(session_id, data)
    return data


def delete_session(session_id: str) -> None:
    """Remove a session."""
    cache.delete(_key(session_id))


def session_datetime(timestamp: int) -> datetime:
    """Convert a stored epoch timestamp to an aware datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.get_current_timezone())
