"""Sliding window rate limiter.

Uses sorted sets in the coordination store for an exact sliding window:
every request is a member scored by its timestamp in milliseconds, so the
count always covers exactly the trailing window. Unlike fixed buckets, a
burst straddling a bucket boundary cannot double the effective rate.
"""

import itertools
import math
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

import structlog

from gatekeeper.config import Settings
from gatekeeper.core.cache.store import CoordinationStore
from gatekeeper.core.constants import (
    MILLISECONDS_PER_SECOND,
    RATE_LIMIT_MEMBER_RANDOM_BYTES,
)


logger = structlog.get_logger()


def _now_ms() -> int:
    return int(time.time() * MILLISECONDS_PER_SECOND)


@dataclass(frozen=True)
class RateLimitPolicy:
    """A request budget.

    Attributes:
        name: Policy name used in logs
        max_requests: Requests allowed per window
        window_ms: Window length in milliseconds
        key_prefix: Store key namespace
    """

    name: str
    max_requests: int
    window_ms: int
    key_prefix: str

    @property
    def window_seconds(self) -> int:
        """Window length rounded up to whole seconds."""
        return math.ceil(self.window_ms / MILLISECONDS_PER_SECOND)


@dataclass(frozen=True)
class RateLimitPolicies:
    """The two policies applied by the request gate."""

    general: RateLimitPolicy
    auth: RateLimitPolicy

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitPolicies":
        """Build policies from application settings."""
        return cls(
            general=RateLimitPolicy(
                name="general",
                max_requests=settings.rate_limit_general_requests,
                window_ms=settings.rate_limit_general_window_ms,
                key_prefix=settings.rate_limit_general_prefix,
            ),
            auth=RateLimitPolicy(
                name="auth",
                max_requests=settings.rate_limit_auth_requests,
                window_ms=settings.rate_limit_auth_window_ms,
                key_prefix=settings.rate_limit_auth_prefix,
            ),
        )


class RateLimitOutcome(StrEnum):
    """Why a decision was reached."""

    ALLOWED = "allowed"
    REJECTED = "rejected"
    STORE_ERROR = "store_error"


@dataclass
class RateLimitDecision:
    """Result of a rate limit check.

    ``reset_time`` is an epoch timestamp in milliseconds.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: int | None = None
    outcome: RateLimitOutcome = RateLimitOutcome.ALLOWED

    @property
    def reset_at(self) -> datetime:
        """Reset time as an aware UTC datetime."""
        seconds, millis = divmod(self.reset_time, MILLISECONDS_PER_SECOND)
        return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(milliseconds=millis)

    @property
    def reset_iso(self) -> str:
        """Reset time as ISO-8601 with millisecond precision."""
        return self.reset_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SlidingWindowRateLimiter:
    """Store-backed sliding window rate limiter.

    Store failures are fail-open: the caller gets an allow decision tagged
    ``STORE_ERROR`` instead of an exception.
    """

    def __init__(
        self,
        store: CoordinationStore,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            store: Coordination store holding the windows
            clock: Returns the current time in epoch milliseconds
        """
        self.store = store
        self.clock = clock or _now_ms
        self._sequence = itertools.count()

    def _build_key(self, identifier: str, policy: RateLimitPolicy) -> str:
        """Build the store key for an identifier under a policy."""
        return f"{policy.key_prefix}:{identifier}"

    def _new_member(self, now: int) -> str:
        """Build a unique window member.

        Sorted sets deduplicate by member, so two requests in the same
        millisecond must still produce distinct members.
        """
        return (
            f"{now}-{next(self._sequence)}-"
            f"{secrets.token_hex(RATE_LIMIT_MEMBER_RANDOM_BYTES)}"
        )

    def _fail_open(self, policy: RateLimitPolicy, now: int) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            limit=policy.max_requests,
            remaining=policy.max_requests,
            reset_time=now + policy.window_ms,
            outcome=RateLimitOutcome.STORE_ERROR,
        )

    async def check_rate_limit(
        self,
        identifier: str,
        policy: RateLimitPolicy,
    ) -> RateLimitDecision:
        """Record a request and decide whether it is allowed.

        Sliding window algorithm, executed as one atomic batch:
        1. Remove entries scored before (now - window)
        2. Count the remaining entries
        3. Add the current request
        4. Refresh the key TTL to the window length

        Args:
            identifier: User ID or IP address to rate limit
            policy: Budget to apply

        Returns:
            RateLimitDecision with allowed status and metadata
        """
        key = self._build_key(identifier, policy)
        now = self.clock()

        try:
            count = await self.store.record_event(
                key,
                member=self._new_member(now),
                score=now,
                window_start=now - policy.window_ms,
                ttl_seconds=policy.window_seconds,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "rate_limit_check_failed",
                identifier=identifier,
                policy=policy.name,
                error=str(exc),
            )
            return self._fail_open(policy, now)

        allowed = count < policy.max_requests
        return RateLimitDecision(
            allowed=allowed,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - count - 1),
            reset_time=now + policy.window_ms,
            retry_after=None if allowed else policy.window_seconds,
            outcome=RateLimitOutcome.ALLOWED if allowed else RateLimitOutcome.REJECTED,
        )

    async def get_status(
        self,
        identifier: str,
        policy: RateLimitPolicy,
    ) -> RateLimitDecision:
        """Report the current window without recording a request."""
        key = self._build_key(identifier, policy)
        now = self.clock()

        try:
            count = await self.store.count_events(key, window_start=now - policy.window_ms)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "rate_limit_status_failed",
                identifier=identifier,
                policy=policy.name,
                error=str(exc),
            )
            return self._fail_open(policy, now)

        allowed = count < policy.max_requests
        return RateLimitDecision(
            allowed=allowed,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - count),
            reset_time=now + policy.window_ms,
            retry_after=None if allowed else policy.window_seconds,
            outcome=RateLimitOutcome.ALLOWED if allowed else RateLimitOutcome.REJECTED,
        )

    async def reset_limit(self, identifier: str, policy: RateLimitPolicy) -> None:
        """Forget all recorded requests for an identifier.

        Best-effort: failures are logged, not raised.
        """
        key = self._build_key(identifier, policy)
        try:
            await self.store.delete(key)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "rate_limit_reset_failed",
                identifier=identifier,
                policy=policy.name,
                error=str(exc),
            )
            return
        logger.info("rate_limit_reset", identifier=identifier, policy=policy.name)
