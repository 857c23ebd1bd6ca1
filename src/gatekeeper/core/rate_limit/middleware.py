"""Rate limiting middleware applied to every request.

Authentication endpoints are limited per client IP with the strict auth
policy; everything else is limited per user (when the identity middleware
recognised one) or per IP with the general policy.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gatekeeper.core.errors import RateLimitError, build_rate_limit_response
from gatekeeper.core.rate_limit.backend import (
    RateLimitDecision,
    RateLimitOutcome,
    RateLimitPolicies,
    RateLimitPolicy,
    SlidingWindowRateLimiter,
)
from gatekeeper.core.utils.network import get_client_ip


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()

GATE_ERROR = "gate_error"


@dataclass(frozen=True)
class GateRecord:
    """What the gate decided for one request, kept on ``request.state.rate_limit``."""

    policy: str
    identifier: str
    outcome: str
    remaining: int | None = None

    @property
    def rejected(self) -> bool:
        return self.outcome == RateLimitOutcome.REJECTED


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware that applies the rate limit policies to all requests.

    Adds X-RateLimit-* headers to every gated response and short-circuits
    rejected requests with a 429. If the limiter itself blows up, the
    request proceeds.
    """

    # Paths to exclude from rate limiting
    EXCLUDED_PATHS: ClassVar[set[str]] = {
        "/health/live",
        "/health/ready",
    }

    def __init__(
        self,
        app: "ASGIApp",
        limiter: SlidingWindowRateLimiter,
        policies: RateLimitPolicies,
        auth_path_prefixes: Iterable[str],
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.policies = policies
        self.auth_path_prefixes = tuple(auth_path_prefixes)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and apply rate limiting.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response with rate limit headers, or a 429
        """
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        policy = self._select_policy(request)
        identifier = self._get_identifier(request, policy)

        try:
            decision = await self.limiter.check_rate_limit(identifier, policy)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "rate_limit_gate_error",
                path=request.url.path,
                policy=policy.name,
                error=str(exc),
            )
            request.state.rate_limit = GateRecord(policy.name, identifier, GATE_ERROR)
            return await call_next(request)

        request.state.rate_limit = GateRecord(
            policy.name, identifier, decision.outcome, decision.remaining
        )
        headers = self._build_headers(decision)

        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                path=request.url.path,
                policy=policy.name,
                identifier=identifier,
            )
            return build_rate_limit_response(
                RateLimitError(retry_after=decision.retry_after),
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

    def _is_auth_path(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.auth_path_prefixes)

    def _select_policy(self, request: Request) -> RateLimitPolicy:
        if self._is_auth_path(request.url.path):
            return self.policies.auth
        return self.policies.general

    def _get_identifier(self, request: Request, policy: RateLimitPolicy) -> str:
        """Extract rate limit identifier from request.

        Auth endpoints are always keyed by IP, before identity is known.
        Other endpoints use the user id set by the identity middleware,
        falling back to the client IP.
        """
        if policy is not self.policies.auth:
            user_id = getattr(request.state, "user_id", None)
            if user_id:
                return str(user_id)

        return get_client_ip(request)

    @staticmethod
    def _build_headers(decision: RateLimitDecision) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": decision.reset_iso,
        }
