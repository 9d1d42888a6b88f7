"""Error Handlers — every failure leaves the API as a MarketplaceError envelope.

Invariants:
    - Ledger, session and validation failures keep their own code and HTTP status
    - A malformed request body is reported exactly like a rejected argument
      (VALIDATION_ERROR, first offending field) plus per-field details
    - Anything else becomes INTERNAL_ERROR; the exception text stays in the log

Design Decisions:
    - One _respond() for all three layers, so clients parse a single shape
    - Handlers are plain module functions registered by exception type
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.core.errors import (
    ErrorCategory, ErrorSeverity, MarketplaceError, ValidationError,
)

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    _log(request, exc)
    return _respond(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed body: surfaces as the same ValidationError the client raises."""
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    first = details[0] if details else {"field": "body", "message": "Invalid request data"}
    error = ValidationError(first["message"], first["field"])
    _log(request, error)
    return _respond(error, details=details)


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}",
        exc_info=exc,
    )
    error = MarketplaceError(
        "An unexpected error occurred", "INTERNAL_ERROR",
        ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
    )
    return _respond(error)


def _respond(error: MarketplaceError, details: list[dict] | None = None) -> JSONResponse:
    content = error.to_response()
    if isinstance(error, ValidationError):
        content["error"]["field"] = error.field
    if details is not None:
        content["error"]["details"] = details
    return JSONResponse(status_code=error.http_status, content=content)


def _log(request: Request, error: MarketplaceError) -> None:
    quiet = error.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)
    (logger.warning if quiet else logger.error)(
        f"{error.code} on {request.url.path}: {error.message}",
        extra={
            "error_code": error.code,
            "identity": error.context.identity,
            "tx_hash": error.context.tx_hash,
        },
    )
