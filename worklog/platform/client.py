"""Backend platform client helpers with beginner-friendly guidance.

Every row, login and uploaded screenshot lives on the hosted platform. This
module is the only place that builds SDK clients, and the only place that
turns SDK failures into our own ``PlatformError`` so routers can react to one
exception type.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from supabase import Client, ClientOptions, PostgrestAPIError, StorageException, create_client

from ..core.config import settings

logger = logging.getLogger(__name__)


class PlatformNotConfigured(RuntimeError):
    """Raised when the platform URL or anon key is missing."""


class PlatformError(Exception):
    """A platform call failed; ``action`` names what we were trying to do."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(f"{action}: {message}")
        self.action = action
        self.message = message


def _ensure_configured() -> None:
    if not settings.platform_configured:
        raise PlatformNotConfigured("SUPABASE_URL and SUPABASE_ANON_KEY must be set")


def create_anon_client() -> Client:
    """Client that acts as the anonymous role (sign-in, sign-up, token checks)."""

    _ensure_configured()
    options = ClientOptions(auto_refresh_token=False, persist_session=False)
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=options)


def create_user_client(access_token: str) -> Client:
    """Client whose table and storage calls run as the signed-in user.

    Row-level security on the platform keys off the bearer token, so every
    query made through this client only sees the caller's own rows.
    """

    _ensure_configured()
    options = ClientOptions(
        headers={"Authorization": f"Bearer {access_token}"},
        auto_refresh_token=False,
        persist_session=False,
    )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=options)


def _error_message(exc: Exception) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__


def call(fn: Callable[..., Any], *args: Any, action: str, **kwargs: Any) -> Any:
    """Invoke an SDK function and translate transport/API errors."""

    try:
        return fn(*args, **kwargs)
    except (PostgrestAPIError, StorageException, httpx.HTTPError) as exc:
        raise PlatformError(action, _error_message(exc)) from exc


def execute(query: Any, *, action: str) -> Any:
    """Run a query builder and return the response payload."""

    response = call(query.execute, action=action)
    return getattr(response, "data", None)


def fetch_rows(query: Any, *, action: str) -> list[dict[str, Any]]:
    data = execute(query, action=action)
    if not data:
        return []
    if isinstance(data, dict):
        return [data]
    return [dict(row) for row in data]


def fetch_one(query: Any, *, action: str) -> dict[str, Any] | None:
    rows = fetch_rows(query.limit(1), action=action)
    return rows[0] if rows else None


def get_anon_platform() -> Client:
    """FastAPI dependency for routes that run before anyone is signed in."""

    return create_anon_client()


__all__ = [
    "PlatformError",
    "PlatformNotConfigured",
    "call",
    "create_anon_client",
    "create_user_client",
    "execute",
    "fetch_one",
    "fetch_rows",
    "get_anon_platform",
]
