"""Session mirror of the hourly rate so pages do not hit the platform on every render."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import Depends, Request

from ..crud.preferences import get_hourly_rate, parse_hourly_rate, save_hourly_rate
from .auth import AuthContext, current_user, get_platform

RATE_SESSION_KEY = "hourly_rate"


def remembered_rate(request: Request) -> Decimal | None:
    raw = request.session.get(RATE_SESSION_KEY)
    if raw is None:
        return None
    try:
        return parse_hourly_rate(raw)
    except ValueError:
        request.session.pop(RATE_SESSION_KEY, None)
        return None


def remember_rate(request: Request, rate: Decimal) -> None:
    request.session[RATE_SESSION_KEY] = str(rate)


def hourly_rate(
    request: Request,
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
) -> Decimal:
    """Mirror first, then the remote preferences row, then the configured default."""

    cached = remembered_rate(request) if ctx.scheme == "session" else None
    if cached is not None:
        return cached
    rate = get_hourly_rate(client, ctx.user_id)
    if ctx.scheme == "session":
        remember_rate(request, rate)
    return rate


def update_hourly_rate(request: Request, client: Any, ctx: AuthContext, value: Any) -> Decimal:
    rate = save_hourly_rate(client, ctx.user_id, value)
    if ctx.scheme == "session":
        remember_rate(request, rate)
    return rate
