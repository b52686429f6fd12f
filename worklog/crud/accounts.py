"""Sign-in, sign-up and session helpers on top of the platform's auth API."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

import httpx
from supabase import AuthError

from ..platform.client import PlatformError, execute
from .admins import create_admin_profile, get_active_admin

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
ADMIN_ACCESS_DENIED = "Access denied. This account is not authorized as an admin."


class AuthenticationError(ValueError):
    """Credentials were rejected or the account may not use this area."""


@dataclass
class AuthSession:
    user_id: str
    email: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    created_at: str | None = None
    is_admin: bool = False

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token and self.refresh_token)

    def to_session(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_session(cls, data: Any) -> "AuthSession | None":
        if not isinstance(data, dict) or not data.get("user_id"):
            return None
        fields = {name: data.get(name) for name in cls.__dataclass_fields__}
        fields["is_admin"] = bool(fields.get("is_admin"))
        return cls(**fields)


def _error_text(exc: Exception) -> str:
    message = getattr(exc, "message", None)
    return message if isinstance(message, str) and message else str(exc)


def _clean_email(email: str | None) -> str:
    cleaned = (email or "").strip().lower()
    if not cleaned or "@" not in cleaned:
        raise AuthenticationError("Please enter a valid email address.")
    return cleaned


def _timestamp(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value) if value else None


def _session_from_response(response: Any) -> AuthSession | None:
    user = getattr(response, "user", None)
    if user is None:
        return None
    session = getattr(response, "session", None)
    return AuthSession(
        user_id=str(user.id),
        email=getattr(user, "email", None),
        access_token=getattr(session, "access_token", None),
        refresh_token=getattr(session, "refresh_token", None),
        expires_in=getattr(session, "expires_in", None),
        created_at=_timestamp(getattr(user, "created_at", None)),
    )


def _auth_call(action: str, fn, *args: Any) -> Any:
    try:
        return fn(*args)
    except AuthError as exc:
        raise AuthenticationError(_error_text(exc)) from exc
    except httpx.HTTPError as exc:
        raise PlatformError(action, str(exc)) from exc


def friendly_signup_error(message: str) -> str:
    """Turn the platform's sign-up rejections into something a person can act on."""

    lowered = (message or "").lower()
    if "already registered" in lowered or "already exists" in lowered:
        return "An account with this email already exists. Please try logging in instead."
    if "password" in lowered:
        return "Password does not meet requirements. Please use a stronger password."
    if "email" in lowered:
        return "Please enter a valid email address."
    return f"Signup failed: {message}"


def validate_new_password(password: str, confirm_password: str | None = None) -> None:
    if confirm_password is not None and password != confirm_password:
        raise AuthenticationError("Passwords do not match")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthenticationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def sign_in(client: Any, email: str, password: str) -> AuthSession:
    email = _clean_email(email)
    if not password:
        raise AuthenticationError("Password is required")
    response = _auth_call(
        "auth.sign_in",
        client.auth.sign_in_with_password,
        {"email": email, "password": password},
    )
    session = _session_from_response(response)
    if session is None or not session.has_tokens:
        raise AuthenticationError("Sign-in did not return a session")
    session.is_admin = get_active_admin(client, session.user_id) is not None
    logger.info(
        "auth.signed_in",
        extra={"extra_data": {"user_id": session.user_id, "is_admin": session.is_admin}},
    )
    return session


def sign_up(client: Any, email: str, password: str, confirm_password: str | None = None) -> AuthSession:
    """Create an account, then let the platform seed the user's profile rows.

    The seeding RPC is best-effort: a failure is logged and the account stays
    usable. ``access_token`` is empty when the platform wants the address
    confirmed before the first sign-in.
    """

    email = _clean_email(email)
    validate_new_password(password, confirm_password)
    try:
        response = _auth_call("auth.sign_up", client.auth.sign_up, {"email": email, "password": password})
    except AuthenticationError as exc:
        raise AuthenticationError(friendly_signup_error(str(exc))) from exc
    session = _session_from_response(response)
    if session is None:
        raise AuthenticationError("User creation failed - no user data returned")
    try:
        result = execute(
            client.rpc("complete_user_signup", {"user_uuid": session.user_id}),
            action="auth.complete_signup",
        )
    except PlatformError as exc:
        logger.warning(
            "auth.complete_signup_failed",
            extra={"extra_data": {"user_id": session.user_id, "error": exc.message}},
        )
    else:
        logger.info(
            "auth.signed_up",
            extra={"extra_data": {"user_id": session.user_id, "signup_result": result}},
        )
    return session


def sign_up_admin(
    client: Any,
    email: str,
    password: str,
    confirm_password: str,
    company_name: str,
) -> AuthSession:
    email = _clean_email(email)
    validate_new_password(password, confirm_password)
    company = (company_name or "").strip()
    if not company:
        raise AuthenticationError("Company name is required")
    try:
        response = _auth_call("auth.sign_up", client.auth.sign_up, {"email": email, "password": password})
    except AuthenticationError as exc:
        raise AuthenticationError(friendly_signup_error(str(exc))) from exc
    session = _session_from_response(response)
    if session is None:
        raise AuthenticationError("User creation failed - no user data returned")
    try:
        create_admin_profile(client, session.user_id, company)
    except (ValueError, PlatformError) as exc:
        message = exc.message if isinstance(exc, PlatformError) else str(exc)
        if not message.startswith("Admin creation failed"):
            message = f"Admin creation failed: {message}"
        raise AuthenticationError(message) from exc
    session.is_admin = True
    logger.info("auth.admin_signed_up", extra={"extra_data": {"user_id": session.user_id}})
    return session


def sign_in_admin(client: Any, email: str, password: str) -> AuthSession:
    session = sign_in(client, email, password)
    if not session.is_admin:
        sign_out(client, session.access_token)
        raise AuthenticationError(ADMIN_ACCESS_DENIED)
    return session


def sign_out(client: Any, access_token: str | None) -> None:
    """Revoke the refresh tokens behind ``access_token``; failures only get logged."""

    if not access_token:
        return
    try:
        client.auth.admin.sign_out(access_token)
    except (AuthError, httpx.HTTPError) as exc:
        logger.warning("auth.sign_out_failed", extra={"extra_data": {"error": _error_text(exc)}})


def refresh(client: Any, refresh_token: str) -> AuthSession:
    if not refresh_token:
        raise AuthenticationError("Refresh token is required")
    response = _auth_call("auth.refresh", client.auth.refresh_session, refresh_token)
    session = _session_from_response(response)
    if session is None or not session.has_tokens:
        raise AuthenticationError("Session could not be refreshed")
    return session


def user_from_token(client: Any, access_token: str) -> AuthSession:
    """Ask the platform who owns ``access_token``."""

    response = _auth_call("auth.get_user", client.auth.get_user, access_token)
    user = getattr(response, "user", None)
    if user is None:
        raise AuthenticationError("Invalid token")
    return AuthSession(
        user_id=str(user.id),
        email=getattr(user, "email", None),
        access_token=access_token,
        created_at=_timestamp(getattr(user, "created_at", None)),
    )


__all__ = [
    "ADMIN_ACCESS_DENIED",
    "AuthSession",
    "AuthenticationError",
    "friendly_signup_error",
    "refresh",
    "sign_in",
    "sign_in_admin",
    "sign_out",
    "sign_up",
    "sign_up_admin",
    "user_from_token",
    "validate_new_password",
]
