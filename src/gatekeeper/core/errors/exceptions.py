"""Domain exceptions for the application.

These exceptions represent request-level failures and are converted to
HTTP responses by the exception handlers. Most render as RFC 7807
Problem Details; ``RateLimitError`` renders the structured 429 payload
that rate-limited clients already understand.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class UnauthorizedError(AppException):
    """Raised when credentials or tokens are missing, invalid or revoked.

    Callers must not be able to tell an expired token from a forged one,
    so the same message is reused for every token failure.

    Example:
        raise UnauthorizedError("Invalid or expired token", error_code="invalid_token")
    """

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class RateLimitError(AppException):
    """Raised when a caller exceeds its request budget.

    Example:
        raise RateLimitError(retry_after=60)
    """

    message = "Too many requests. Please try again later."
    error_code = "rate_limit_exceeded"
    status_code = 429

    def __init__(
        self,
        message: str | None = None,
        retry_after: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(message=message, details=details, **kwargs)
        self.retry_after = retry_after

    def to_payload(self) -> dict[str, Any]:
        """Build the 429 response body."""
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "error": "Too Many Requests",
            "retryAfter": self.retry_after,
        }


class ServiceUnavailableError(AppException):
    """Raised when a required service is unavailable.

    Example:
        raise ServiceUnavailableError("Authentication is temporarily unavailable")
    """

    message = "Service temporarily unavailable"
    error_code = "service_unavailable"
    status_code = 503
