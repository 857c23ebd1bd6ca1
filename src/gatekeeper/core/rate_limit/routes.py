"""Rate limit introspection routes."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from gatekeeper.core.rate_limit.backend import (
    RateLimitPolicies,
    SlidingWindowRateLimiter,
)
from gatekeeper.core.utils.network import get_client_ip


router = APIRouter(prefix="/rate-limit", tags=["rate-limit"])


class RateLimitStatusResponse(BaseModel):
    """Current window for the caller under the general policy."""

    identifier: str
    limit: int
    remaining: int
    reset_at: datetime
    allowed: bool
    retry_after: int | None = None


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    """Return the application's rate limiter."""
    return request.app.state.rate_limiter


def get_rate_limit_policies(request: Request) -> RateLimitPolicies:
    """Return the application's rate limit policies."""
    return request.app.state.rate_limit_policies


Limiter = Annotated[SlidingWindowRateLimiter, Depends(get_rate_limiter)]
Policies = Annotated[RateLimitPolicies, Depends(get_rate_limit_policies)]


@router.get(
    "/status",
    response_model=RateLimitStatusResponse,
    summary="Current rate limit status",
    description="Reports the caller's general-policy window without consuming a request.",
)
async def rate_limit_status(
    request: Request,
    limiter: Limiter,
    policies: Policies,
) -> RateLimitStatusResponse:
    """Report the caller's remaining budget."""
    user_id = getattr(request.state, "user_id", None)
    identifier = str(user_id) if user_id else get_client_ip(request)

    decision = await limiter.get_status(identifier, policies.general)

    return RateLimitStatusResponse(
        identifier=identifier,
        limit=decision.limit,
        remaining=decision.remaining,
        reset_at=decision.reset_at,
        allowed=decision.allowed,
        retry_after=decision.retry_after,
    )
