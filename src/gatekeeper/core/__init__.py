"""Core services and cross-cutting concerns."""

from gatekeeper.core.errors import (
    AppException,
    RateLimitError,
    ServiceUnavailableError,
    UnauthorizedError,
    register_exception_handlers,
)


__all__ = [
    # Errors
    "AppException",
    "RateLimitError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "register_exception_handlers",
]
