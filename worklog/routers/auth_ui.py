from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.jinja import get_templates
from ..crud.accounts import (
    AuthenticationError,
    sign_in,
    sign_in_admin,
    sign_out,
    sign_up,
    sign_up_admin,
)
from ..deps.auth import clear_session, read_session, store_session
from ..platform.client import get_anon_platform

router = APIRouter()
templates = get_templates()

ADMIN_HOME = "/admin/dashboard"
CONFIRM_EMAIL_NOTICE = "Account created. Check your email to confirm it, then sign in."


def safe_next(value: str | None, default: str = "/") -> str:
    """Only follow local paths after sign-in."""

    if not value or not value.startswith("/") or value[1:2] in ("/", "\\"):
        return default
    return value


def _render(request: Request, template: str, status_code: int = 200, **context: Any):
    context.setdefault("error", "")
    context.setdefault("notice", "")
    context.setdefault("email", "")
    return templates.TemplateResponse(request, template, context, status_code=status_code)


def _home_for(is_admin: bool, next_path: str | None = None) -> str:
    if is_admin:
        return ADMIN_HOME
    target = safe_next(next_path)
    return "/" if target.startswith("/admin") else target


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, next: str = "/"):
    session = read_session(request)
    if session:
        return RedirectResponse(url=_home_for(session.is_admin, next), status_code=302)
    return _render(request, "login.html", next=safe_next(next))


@router.post("/login", response_class=HTMLResponse)
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
    anon: Any = Depends(get_anon_platform),
):
    try:
        session = sign_in(anon, email, password)
    except AuthenticationError as exc:
        return _render(request, "login.html", status_code=401, next=safe_next(next), email=email, error=str(exc))
    store_session(request, session)
    return RedirectResponse(url=_home_for(session.is_admin, next), status_code=302)


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    if read_session(request):
        return RedirectResponse(url="/", status_code=302)
    return _render(request, "register.html")


@router.post("/register", response_class=HTMLResponse)
def register_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    anon: Any = Depends(get_anon_platform),
):
    try:
        session = sign_up(anon, email, password, confirm_password)
    except AuthenticationError as exc:
        return _render(request, "register.html", status_code=400, email=email, error=str(exc))
    if not session.has_tokens:
        return _render(request, "login.html", next="/", email=session.email or email, notice=CONFIRM_EMAIL_NOTICE)
    store_session(request, session)
    return RedirectResponse(url="/", status_code=302)


@router.get("/admin/login", response_class=HTMLResponse)
def admin_login_page(request: Request):
    session = read_session(request)
    if session and session.is_admin:
        return RedirectResponse(url=ADMIN_HOME, status_code=302)
    return _render(request, "admin_login.html")


@router.post("/admin/login", response_class=HTMLResponse)
def admin_login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    anon: Any = Depends(get_anon_platform),
):
    try:
        session = sign_in_admin(anon, email, password)
    except AuthenticationError as exc:
        return _render(request, "admin_login.html", status_code=401, email=email, error=str(exc))
    store_session(request, session)
    return RedirectResponse(url=ADMIN_HOME, status_code=302)


@router.get("/admin/signup", response_class=HTMLResponse)
def admin_signup_page(request: Request):
    return _render(request, "admin_signup.html", company_name="")


@router.post("/admin/signup", response_class=HTMLResponse)
def admin_signup_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    company_name: str = Form(""),
    anon: Any = Depends(get_anon_platform),
):
    try:
        session = sign_up_admin(anon, email, password, confirm_password, company_name)
    except AuthenticationError as exc:
        return _render(
            request,
            "admin_signup.html",
            status_code=400,
            email=email,
            company_name=company_name,
            error=str(exc),
        )
    if not session.has_tokens:
        return _render(request, "admin_login.html", email=session.email or email, notice=CONFIRM_EMAIL_NOTICE)
    store_session(request, session)
    return RedirectResponse(url=ADMIN_HOME, status_code=302)


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request, anon: Any = Depends(get_anon_platform)):
    session = read_session(request)
    target = "/admin/login" if session and session.is_admin else "/login"
    if session:
        sign_out(anon, session.access_token)
    clear_session(request)
    return RedirectResponse(url=target, status_code=302)
