from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
EXPIRY_LEEWAY = timedelta(seconds=30)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None


class TokenPayload(BaseModel):
    """Claims the platform puts in its access tokens that we care about."""

    sub: str
    exp: datetime
    iat: datetime | None = None
    email: str | None = None
    role: str | None = None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _validate(claims: dict[str, Any]) -> TokenPayload:
    try:
        return TokenPayload.model_validate(claims)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc


def decode_access_token(token: str) -> TokenPayload:
    """Verify signature, audience and expiry with the shared platform secret."""

    secret = settings.SUPABASE_JWT_SECRET
    if not secret:
        raise ValueError("Token verification secret is not configured")
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    return _validate(decoded)


def read_unverified_claims(token: str) -> TokenPayload:
    """Peek at a token we already trust (e.g. one stored in the signed session)."""

    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    return _validate(claims)


def token_expired(token: str, *, now: datetime | None = None) -> bool:
    try:
        payload = read_unverified_claims(token)
    except ValueError:
        return True
    current = now or _now()
    return payload.exp - EXPIRY_LEEWAY <= current
