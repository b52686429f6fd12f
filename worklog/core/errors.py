from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..platform.client import PlatformError, PlatformNotConfigured

logger = logging.getLogger(__name__)


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept and not request.url.path.startswith("/api")


def _login_path(request: Request) -> str:
    return "/admin/login" if request.url.path.startswith("/admin") else "/login"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    location = (getattr(exc, "headers", None) or {}).get("Location")
    if location and 300 <= exc.status_code < 400:
        return RedirectResponse(url=location, status_code=exc.status_code)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED and _wants_html(request):
        login = _login_path(request)
        if not request.url.path.startswith(login):
            return RedirectResponse(url=f"{login}?next={request.url.path}", status_code=302)
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    else:
        try:
            message = HTTPStatus(exc.status_code).phrase
        except ValueError:
            message = "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    errors = []
    for error in exc.errors():
        item = {k: v for k, v in error.items() if k in {"loc", "msg", "type"}}
        item["loc"] = [str(part) for part in item.get("loc", ())]
        errors.append(item)
    return errors


async def platform_error_handler(request: Request, exc: PlatformError):
    logger.warning(
        "platform.error",
        extra={"extra_data": {"action": exc.action, "error": exc.message, "path": request.url.path}},
    )
    return ErrorEnvelope(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code="platform_error",
        message=exc.message,
        details={"action": exc.action},
    )


async def platform_not_configured_handler(request: Request, exc: PlatformNotConfigured):
    return ErrorEnvelope(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="platform_not_configured",
        message=str(exc),
    )
