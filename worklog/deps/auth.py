from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.config import settings
from ..core.security import decode_access_token, token_expired
from ..crud.accounts import AuthenticationError, AuthSession, refresh, user_from_token
from ..crud.admins import get_active_admin
from ..middlewares import principal_ctx_var
from ..platform.client import create_user_client, get_anon_platform

logger = logging.getLogger(__name__)

SESSION_KEY = "auth"


class AuthContext:
    def __init__(
        self,
        *,
        user_id: str,
        email: str | None,
        access_token: str,
        scheme: str,
        is_admin: bool | None = None,
    ) -> None:
        self.user_id = user_id
        self.email = email
        self.access_token = access_token
        self.scheme = scheme
        # None until someone asks; bearer tokens do not carry the admin flag.
        self.is_admin = is_admin

    @property
    def subject(self) -> str:
        return f"{self.scheme}:{self.user_id}"


def _unauthorized(detail: str = "Authorization required") -> None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def read_session(request: Request) -> AuthSession | None:
    return AuthSession.from_session(request.session.get(SESSION_KEY))


def store_session(request: Request, session: AuthSession) -> None:
    request.session[SESSION_KEY] = session.to_session()


def clear_session(request: Request) -> None:
    request.session.clear()


def _fresh_session(request: Request, session: AuthSession, anon: Any) -> AuthSession:
    """Swap an expired access token for a new one using the stored refresh token."""

    if session.access_token and not token_expired(session.access_token):
        return session
    if not session.refresh_token:
        clear_session(request)
        _unauthorized("Session expired")
    try:
        renewed = refresh(anon, session.refresh_token)
    except AuthenticationError as exc:
        logger.info("auth.refresh_failed", extra={"extra_data": {"user_id": session.user_id, "error": str(exc)}})
        clear_session(request)
        _unauthorized("Session expired")
    renewed.is_admin = session.is_admin
    store_session(request, renewed)
    logger.info("auth.session_refreshed", extra={"extra_data": {"user_id": renewed.user_id}})
    return renewed


def _bearer_context(token: str, anon: Any) -> AuthContext:
    if settings.SUPABASE_JWT_SECRET:
        try:
            payload = decode_access_token(token)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
        return AuthContext(user_id=payload.sub, email=payload.email, access_token=token, scheme="jwt")
    try:
        owner = user_from_token(anon, token)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return AuthContext(user_id=owner.user_id, email=owner.email, access_token=token, scheme="jwt")


async def current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    anon: Any = Depends(get_anon_platform),
) -> AuthContext:
    """Resolve the caller from a bearer token or the signed session cookie."""

    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() != "bearer" or not credentials:
            _unauthorized("Bearer token required")
        context = _bearer_context(credentials, anon)
        request.state.token_subject = context.user_id
        _set_principal(request, context.subject)
        return context

    session = read_session(request)
    if session is None:
        _unauthorized()
    session = _fresh_session(request, session, anon)
    context = AuthContext(
        user_id=session.user_id,
        email=session.email,
        access_token=session.access_token or "",
        scheme="session",
        is_admin=session.is_admin,
    )
    _set_principal(request, context.subject)
    return context


def get_platform(ctx: AuthContext = Depends(current_user)):
    """Platform client acting as the signed-in user, so row-level security applies."""

    return create_user_client(ctx.access_token)


def _resolve_admin_flag(ctx: AuthContext, client: Any) -> bool:
    if ctx.is_admin is None:
        ctx.is_admin = get_active_admin(client, ctx.user_id) is not None
    return ctx.is_admin


async def require_admin(
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
) -> AuthContext:
    if not _resolve_admin_flag(ctx, client):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return ctx


async def require_member_page(request: Request, ctx: AuthContext = Depends(current_user)) -> AuthContext:
    """Gate for the personal tracking pages; admins are sent to their own dashboard."""

    if ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": "/admin/dashboard"})
    return ctx


async def require_admin_page(
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
) -> AuthContext:
    if not _resolve_admin_flag(ctx, client):
        raise HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": "/"})
    return ctx
