"""
Global Exception Handlers for InboxDesk

Every error leaves the API in the same envelope:

{
    "success": false,
    "error": "Inbox not found",
    "code": "INBOX_NOT_FOUND",
    "details": {...}            # optional
}
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inboxdesk.exceptions import ErrorCode, InboxDeskError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str | ErrorCode,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the standard error envelope."""
    body: dict[str, Any] = {
        "success": False,
        "error": message,
        "code": error_code.value if isinstance(error_code, ErrorCode) else error_code,
    }
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def get_http_error_code(status_code: int) -> ErrorCode:
    """Map HTTP status codes to error codes for plain HTTPExceptions."""
    error_code_map = {
        400: ErrorCode.VALIDATION_FAILED,
        401: ErrorCode.AUTH_REQUIRED,
        403: ErrorCode.PERMISSION_DENIED,
        404: ErrorCode.RESOURCE_NOT_FOUND,
        409: ErrorCode.DUPLICATE_RESOURCE,
        422: ErrorCode.VALIDATION_FAILED,
        502: ErrorCode.UPSTREAM_ERROR,
    }
    return error_code_map.get(status_code, ErrorCode.INTERNAL_ERROR)


def _caller_id(request: Request) -> str | None:
    caller = getattr(request.state, "caller", None)
    return caller.actor_id if caller is not None else None


async def inboxdesk_exception_handler(request: Request, exc: InboxDeskError) -> JSONResponse:
    """Render typed application errors."""
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc.message}",
            extra={"actor": _caller_id(request), "path": request.url.path, "details": exc.details},
        )
    else:
        logger.info(
            f"{type(exc).__name__}: {exc.message}",
            extra={"status_code": exc.status_code, "path": request.url.path},
        )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details or None,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(
        f"HTTPException: {exc.detail}",
        extra={"status_code": exc.status_code, "path": request.url.path},
    )
    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=get_http_error_code(exc.status_code),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | PydanticValidationError
) -> JSONResponse:
    """Request-shape errors are client errors: 400 with per-field messages."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({"field": field, "message": error["msg"], "type": error["type"]})

    logger.info(f"Validation error on {request.url.path}", extra={"errors": errors})

    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation error",
        error_code=ErrorCode.VALIDATION_FAILED,
        details={"validation_errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log with context; never expose internals to the client."""
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=exc,
        extra={
            "actor": _caller_id(request),
            "path": request.url.path,
            "method": request.method,
            "path_params": dict(request.path_params),
        },
    )
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code=ErrorCode.INTERNAL_ERROR,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(InboxDeskError, inboxdesk_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info("Exception handlers registered successfully")
