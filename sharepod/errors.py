"""JSON error envelope for the share API.

Every failure renders as ``{code, message, details, request_id}`` so clients
can branch on ``code`` (for example ``access_code_required`` versus
``password_invalid``) without parsing messages.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from sharepod.services.exceptions import ShareError

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", None) or "unknown")


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: object = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": _request_id(request),
        },
    )


def _json_safe(value):
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, UploadFile):
        return value.filename or "upload"
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def register_error_handlers(app) -> None:
    @app.exception_handler(ShareError)
    async def share_error_handler(request: Request, exc: ShareError):
        if exc.status_code >= 500:
            logger.error(
                "share_error code=%s path=%s message=%s",
                exc.code,
                request.url.path,
                exc.message,
                extra={"request_id": _request_id(request)},
            )
        return error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    # FastAPI's HTTPException subclasses Starlette's, so this covers both.
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        if isinstance(detail, dict):
            return error_response(
                request,
                exc.status_code,
                detail.get("code", f"http_{exc.status_code}"),
                detail.get("message", "Request failed"),
                detail.get("details"),
            )
        message = detail if isinstance(detail, str) and detail else "Request failed"
        return error_response(request, exc.status_code, f"http_{exc.status_code}", message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # pydantic puts raw inputs and exception objects in "input" and "ctx"
        errors = [
            {
                key: _json_safe(value) if key in ("input", "ctx") else value
                for key, value in error.items()
            }
            for error in exc.errors()
        ]
        return error_response(request, 422, "validation_error", "Validation error", errors)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error method=%s path=%s",
            request.method,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        return error_response(request, 500, "internal_error", "Internal server error")
