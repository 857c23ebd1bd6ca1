"""Error handling module with RFC 7807 Problem Details."""

from gatekeeper.core.errors.exceptions import (
    AppException,
    RateLimitError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from gatekeeper.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    build_rate_limit_response,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AppException",
    # Handlers
    "FieldError",
    "ProblemDetail",
    "RateLimitError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "build_rate_limit_response",
    "register_exception_handlers",
]
