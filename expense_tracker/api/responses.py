"""
Response shaping for the HTTP layer.

Success bodies are ``{"message": ..., "data": ...}``. Error bodies carry
``message`` and, when there is one, ``error`` (the underlying cause) and
``errors`` (a per-field map).
"""

from typing import Any, Optional

import structlog
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from expense_tracker.audit import AuditLogger
from expense_tracker.flows import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ResetTokenError,
    UpstreamServiceError,
)
from expense_tracker.services.storage import DuplicateError
from expense_tracker.validation import PayloadValidationError


logger = structlog.get_logger(__name__)


def ok(message: str, data: Any = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"message": message, "data": data}),
    )


def _body(message: str, error: Optional[str] = None, errors: Optional[dict] = None) -> dict:
    body: dict[str, Any] = {"message": message}
    if error:
        body["error"] = error
    if errors:
        body["errors"] = errors
    return body


async def error_response(
    exc: Exception,
    message: str = "Internal server error",
    audit_logger: Optional[AuditLogger] = None,
) -> JSONResponse:
    """
    Translate an exception raised by a flow into an error response.

    Args:
        exc: The exception caught at the handler boundary
        message: Message used for unexpected errors (500)
        audit_logger: Records unexpected errors as system_error events
    """
    if isinstance(exc, PayloadValidationError):
        code, body = status.HTTP_400_BAD_REQUEST, _body(exc.message, errors=exc.errors)
    elif isinstance(exc, NotFoundError):
        code, body = status.HTTP_404_NOT_FOUND, _body(str(exc))
    elif isinstance(exc, (ConflictError, ResetTokenError)):
        code, body = status.HTTP_400_BAD_REQUEST, _body(exc.message, exc.error)
    elif isinstance(exc, DuplicateError):
        code, body = status.HTTP_400_BAD_REQUEST, _body("Duplicate record", str(exc))
    elif isinstance(exc, AuthenticationError):
        code, body = status.HTTP_401_UNAUTHORIZED, _body(exc.message, exc.error)
    elif isinstance(exc, UpstreamServiceError):
        code, body = status.HTTP_502_BAD_GATEWAY, _body(exc.message, exc.error)
    else:
        logger.error(
            "request_failed",
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=exc,
        )
        if audit_logger:
            await audit_logger.log_error(type(exc).__name__, str(exc), details={"message": message})
        code, body = status.HTTP_500_INTERNAL_SERVER_ERROR, _body(message, str(exc) or type(exc).__name__)

    return JSONResponse(status_code=code, content=jsonable_encoder(body))
