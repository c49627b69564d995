"""
Service exceptions and the middleware that turns them into JSON.

Services raise a ``ServiceError`` subclass; routes never catch them. The
middleware below wraps the whole downstream stack, so anything raised by
a route, a dependency or a service arrives here and is answered with one
body shape::

    {"error": "<code>", "message": "...", "error_id": "1f2e3d4c",
     "details": {...}, "timestamp": "2024-03-01T09:00:00+00:00"}

The ``error_id`` is also written to the log line, so a user-reported id
can be matched to the server log.

    ====================  ===  ========================================
    NotFoundError         404  card, card set or access request absent
    AuthorizationError    403  access policy denied the actor
    ConflictError         409  generation already running, lost races
    ValidationError       422  bad rating, document or generated pairs
    LLMError              502  provider still failing after retries
    ====================  ===  ========================================

``HTTPException`` passes through untouched for FastAPI's own handler.
Anything else is logged with its traceback and answered with a generic
500; the exception name and traceback are only exposed in debug mode.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Body of every error answered by the middleware."""

    error: str
    message: str
    error_id: str
    details: Optional[dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_response(self, status_code: int) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=self.model_dump(mode="json", exclude_none=True),
        )


class ServiceError(Exception):
    """
    Base class for errors raised by the service layer.

    Subclasses fix ``status_code`` and ``error_code``; either can still be
    overridden per instance, e.g. ``ServiceError("DB down", status_code=503)``.
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "not_found"


class AuthorizationError(ServiceError):
    """The acting user lacks the access level the operation needs."""

    status_code = 403
    error_code = "forbidden"


class ConflictError(ServiceError):
    """
    The operation collides with work already in flight.

    Raised for a second card generation on the same set and for insert
    races that keep failing after a re-read.
    """

    status_code = 409
    error_code = "conflict"


class ValidationError(ServiceError):
    status_code = 422
    error_code = "validation_error"


class LLMError(ServiceError):
    """Card generation could not get a usable reply from the provider."""

    status_code = 502
    error_code = "llm_error"


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        error_id = uuid4().hex[:8]
        where = {"error_id": error_id, "method": request.method, "path": request.url.path}

        try:
            return await call_next(request)
        except HTTPException:
            raise
        except ServiceError as e:
            level = logging.ERROR if e.status_code >= 500 else logging.INFO
            logger.log(
                level,
                f"[{error_id}] {request.method} {request.url.path} -> "
                f"{e.status_code} {e.error_code}: {e.message}",
                extra={**where, "error_code": e.error_code, "details": e.details},
            )
            body = ErrorResponse(
                error=e.error_code,
                message=e.message,
                error_id=error_id,
                details=e.details,
            )
            return body.to_response(e.status_code)
        except Exception as e:
            trace = traceback.format_exc()
            logger.error(
                f"[{error_id}] {request.method} {request.url.path} crashed: "
                f"{type(e).__name__}: {e}",
                extra={**where, "traceback": trace},
            )
            details = None
            if self.debug:
                details = {"exception": type(e).__name__, "message": str(e), "traceback": trace}
            body = ErrorResponse(
                error="internal_server_error",
                message="An unexpected error occurred",
                error_id=error_id,
                details=details,
            )
            return body.to_response(500)


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """Install ErrorHandlingMiddleware on ``app``."""
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")
