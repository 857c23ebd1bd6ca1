"""Identity and request tracing middleware.

This module provides middleware for:
- Attaching the caller's identity to requests for rate limiting
- Request tracing with unique IDs
"""

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from gatekeeper.core.auth.backend import extract_bearer_token
from gatekeeper.core.errors import UnauthorizedError


if TYPE_CHECKING:
    from starlette.types import ASGIApp

    from gatekeeper.core.auth.service import TokenAuthority


logger = structlog.get_logger()


class IdentityMiddleware(BaseHTTPMiddleware):
    """Middleware that records who is calling.

    Verifies the bearer access token's signature and expiry (no store
    round trip) and sets ``request.state.user_id`` for the rate limiter.
    Authorization decisions still go through ``get_current_claims``,
    which also checks the blacklist.
    """

    def __init__(self, app: "ASGIApp", authority: "TokenAuthority") -> None:
        super().__init__(app)
        self.authority = authority

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and attach identity if present.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response from the handler
        """
        token = extract_bearer_token(request.headers.get("Authorization"))
        if token:
            try:
                claims = self.authority.verify_access_token(token)
            except UnauthorizedError:
                claims = None

            if claims:
                request.state.user_id = claims.subject_id
                structlog.contextvars.bind_contextvars(user_id=claims.subject_id)

        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds a unique request ID to each request.

    The request ID is added to:
    - request.state.request_id
    - Response header X-Request-ID
    - Structlog context
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and add request ID.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response with X-Request-ID header
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.trace_id = request_id  # Alias for error handler

        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id")

        response.headers["X-Request-ID"] = request_id
        return response
