"""Application wiring for the Worklog dashboard.

This module brings together configuration, middleware, HTML templates, the
JSON API routers and error handling. Reading it top to bottom shows *what*
pieces exist, *when* they are attached (at import time), and *how* a request
travels through them:

1. ``RequestIdMiddleware`` tags the request and logs it once it completes.
2. ``SessionMiddleware`` decodes the signed cookie that remembers who is
   signed in (user id, email, platform tokens, admin flag).
3. A router handles the request. Every stored row lives on the hosted
   platform, so handlers build a platform client scoped to the caller.
4. Exception handlers turn errors into the JSON ``ErrorEnvelope`` shape or,
   for browsers hitting a protected page, a redirect to the sign-in form.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import (
    http_exception_handler,
    platform_error_handler,
    platform_not_configured_handler,
    validation_exception_handler,
)
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .platform.client import PlatformError, PlatformNotConfigured

app = FastAPI(title=settings.APP_NAME)

# ``mount`` glues the /static URL path to the stylesheet folder.
app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

# ---------- Middleware ----------
# Starlette runs the most recently added middleware first, so the request id
# wraps everything, including session decoding.
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.APP_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=settings.SESSION_HTTPS_ONLY,
)
if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(RequestIdMiddleware)

# ---------- Routers ----------
# Sign-in, registration and logout pages (no session required)
from .routers import auth_ui as auth_ui_router  # noqa: E402

app.include_router(auth_ui_router.router)

# Personal tracking pages (session required, admins are redirected away)
from .routers import ui as ui_router  # noqa: E402

app.include_router(ui_router.router)

# Admin pages (session required, active admin profile required)
from .routers import admin_ui as admin_ui_router  # noqa: E402

app.include_router(admin_ui_router.router)

# JSON API (bearer token or session)
from .routers import api_auth as api_auth_router  # noqa: E402
from .routers import api_entries as api_entries_router  # noqa: E402
from .routers import api_admin as api_admin_router  # noqa: E402

app.include_router(api_auth_router.router)
app.include_router(api_entries_router.router)
app.include_router(api_admin_router.router)

# ---------- Exception handling ----------
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(PlatformError, platform_error_handler)
app.add_exception_handler(PlatformNotConfigured, platform_not_configured_handler)


__all__ = ["app"]
