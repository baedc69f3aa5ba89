"""
Domain error type and the FastAPI handlers that turn errors into responses.

Every error leaves the API as `{"error": str, "code"?: str, "details"?: any}`.
`details` is only included outside production.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"

# Request fields with a dedicated validation code.
_FIELD_CODES: dict[str, tuple[str, str]] = {
    "email": ("Invalid email", "INVALID_EMAIL"),
    "password": ("Invalid password", "INVALID_PASSWORD"),
    "ip": ("Invalid IP address", "INVALID_IP"),
    "ids": ("Invalid ids", "INVALID_IDS"),
}


class AppError(Exception):
    def __init__(
        self,
        status_code: int,
        message: str,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details


def unauthorized() -> AppError:
    return AppError(status.HTTP_401_UNAUTHORIZED, "Unauthorized", "UNAUTHORIZED")


def is_unique_violation(exc: BaseException) -> bool:
    # asyncpg.UniqueViolationError carries the SQLSTATE as a class attribute.
    return getattr(exc, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE


def conflict_from_unique_violation(exc: BaseException) -> AppError:
    text = " ".join(
        str(part)
        for part in (
            getattr(exc, "constraint_name", None),
            getattr(exc, "detail", None),
            exc,
        )
        if part
    ).lower()
    if "email" in text:
        return AppError(status.HTTP_409_CONFLICT, "Email already registered", "EMAIL_EXISTS", details=str(exc))
    return AppError(status.HTTP_409_CONFLICT, "Conflict", "CONFLICT", details=str(exc))


def _payload(settings: Settings, message: str, code: str | None = None, details: Any = None) -> dict:
    body: dict[str, Any] = {"error": message or "Error"}
    if code:
        body["code"] = code
    if details is not None and not settings.is_production:
        body["details"] = details
    return body


def _log_meta(request: Request) -> str:
    user = getattr(request.state, "user", None)
    user_id = getattr(user, "id", None)
    return f"method={request.method} path={request.url.path} user_id={user_id}"


def _validation_error(exc: RequestValidationError) -> tuple[str, str, list[dict]]:
    errors = exc.errors()
    details = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in errors
    ]

    if any(err.get("type") == "json_invalid" for err in errors):
        return "Invalid JSON", "INVALID_JSON", details

    for err in errors:
        loc = [part for part in err.get("loc", ()) if part not in ("body", "path", "query")]
        if loc and loc[0] in _FIELD_CODES:
            message, code = _FIELD_CODES[str(loc[0])]
            return message, code, details

    return "Invalid request body", "VALIDATION_ERROR", details


def install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("app_error status=%s code=%s %s message=%s", exc.status_code, exc.code, _log_meta(request), exc.message)
        else:
            logger.info("app_error status=%s code=%s %s", exc.status_code, exc.code, _log_meta(request))
        return JSONResponse(
            status_code=exc.status_code,
            content=_payload(settings, exc.message, exc.code, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message, code, details = _validation_error(exc)
        logger.info("validation_error code=%s %s", code, _log_meta(request))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_payload(settings, message, code, details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.info("http_error status=%s %s", exc.status_code, _log_meta(request))
        return JSONResponse(
            status_code=exc.status_code,
            content=_payload(settings, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        if is_unique_violation(exc):
            conflict = conflict_from_unique_violation(exc)
            logger.info("unique_violation code=%s %s", conflict.code, _log_meta(request))
            return JSONResponse(
                status_code=conflict.status_code,
                content=_payload(settings, conflict.message, conflict.code, conflict.details),
            )

        logger.exception("unhandled_error %s", _log_meta(request))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_payload(settings, "Internal Server Error", "INTERNAL_ERROR", str(exc) or type(exc).__name__),
        )
