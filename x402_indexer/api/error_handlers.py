"""Error Handlers — map indexer failures onto the read API's JSON error envelope.

Invariants:
    - Every non-2xx body has the shape {"error": {code, message, category, severity, ...}}
    - 503 responses carry Retry-After when the error knows how long to wait
    - Unhandled exceptions answer INTERNAL_ERROR; the traceback stays in the logs

Design Decisions:
    - Bad query/path parameters answer 400, not FastAPI's default 422
    - Log level follows the status: 4xx warning, 5xx error
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from x402_indexer.core.errors import ErrorCategory, ErrorSeverity, IndexerError

logger = logging.getLogger(__name__)

# request-part prefixes FastAPI puts in front of a parameter's loc
_PARAM_SOURCES = {"query", "path", "header", "body"}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IndexerError, handle_indexer_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_indexer_error(request: Request, exc: IndexerError) -> JSONResponse:
    ctx = exc.context
    logger.log(
        logging.WARNING if exc.http_status < 500 else logging.ERROR,
        f"{exc.code} on {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "workflow_id": ctx.workflow_id,
            "block_number": ctx.block_number,
        },
    )
    headers = None
    if exc.http_status == status.HTTP_503_SERVICE_UNAVAILABLE and ctx.retry_after_ms:
        headers = {"Retry-After": str(math.ceil(ctx.retry_after_ms / 1000))}
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [_param_error(e) for e in exc.errors()]
    logger.warning(
        f"Rejected parameters on {request.url.path}: "
        f"{', '.join(d['field'] for d in details)}",
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request parameters",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.WARNING.value,
                "details": details,
            },
        },
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        exc_info=exc,
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )


def _param_error(error: dict) -> dict:
    """One validation error as {field, location, message}. Drops the source prefix from loc."""
    loc = [str(part) for part in error.get("loc", ())]
    location = loc[0] if loc and loc[0] in _PARAM_SOURCES else None
    field = ".".join(loc[1:] if location else loc) or "request"
    return {"field": field, "location": location, "message": error.get("msg", "")}
