"""
Middleware Package

Provides FastAPI middleware and the service exception hierarchy.

Usage:
    from intellicard.middleware import setup_error_handling, NotFoundError

    setup_error_handling(app, debug=settings.DEBUG)
"""

from intellicard.middleware.error_handling import (
    AuthorizationError,
    ConflictError,
    ErrorHandlingMiddleware,
    LLMError,
    NotFoundError,
    ServiceError,
    ValidationError,
    setup_error_handling,
)

__all__ = [
    "setup_error_handling",
    "ErrorHandlingMiddleware",
    "ServiceError",
    "LLMError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
]
