from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..core.security import TokenPair
from ..crud.accounts import AuthenticationError, AuthSession, refresh, sign_in, sign_out, sign_up
from ..crud.admins import get_active_admin
from ..deps.auth import AuthContext, current_user, get_platform
from ..platform.client import get_anon_platform
from ..schemas.auth import LoginRequest, RefreshRequest, SignupRequest, SignupResponse, TokenResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _token_response(session: AuthSession) -> TokenResponse:
    pair = TokenPair(
        access_token=session.access_token or "",
        refresh_token=session.refresh_token or "",
        expires_in=session.expires_in,
    )
    return TokenResponse(
        **pair.model_dump(),
        user_id=session.user_id,
        email=session.email,
        is_admin=session.is_admin,
    )


@router.post("/login", response_model=TokenResponse, summary="Exchange email and password for tokens")
def api_login(payload: LoginRequest, anon: Any = Depends(get_anon_platform)):
    try:
        session = sign_in(anon, payload.email, payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return _token_response(session)


@router.post("/signup", response_model=SignupResponse, status_code=201, summary="Create a tracking account")
def api_signup(payload: SignupRequest, anon: Any = Depends(get_anon_platform)):
    try:
        session = sign_up(anon, payload.email, payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return SignupResponse(
        user_id=session.user_id,
        email=session.email,
        confirmation_required=not session.has_tokens,
    )


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def api_refresh(payload: RefreshRequest, anon: Any = Depends(get_anon_platform)):
    try:
        session = refresh(anon, payload.refresh_token)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return _token_response(session)


@router.post("/logout", status_code=204, response_class=Response)
def api_logout(ctx: AuthContext = Depends(current_user), anon: Any = Depends(get_anon_platform)):
    sign_out(anon, ctx.access_token)
    return Response(status_code=204)


@router.get("/me", summary="Who the bearer token belongs to")
def api_me(ctx: AuthContext = Depends(current_user), client: Any = Depends(get_platform)):
    if ctx.is_admin is None:
        ctx.is_admin = get_active_admin(client, ctx.user_id) is not None
    return {"user_id": ctx.user_id, "email": ctx.email, "is_admin": ctx.is_admin}
