"""Tests for the sliding window rate limiter."""

from unittest.mock import AsyncMock

import pytest

from gatekeeper.core.rate_limit import (
    RateLimitDecision,
    RateLimitOutcome,
    RateLimitPolicy,
    SlidingWindowRateLimiter,
)


AUTH_POLICY = RateLimitPolicy(
    name="auth", max_requests=5, window_ms=60_000, key_prefix="rate_limit:auth"
)


class TestRateLimitPolicy:
    """Tests for RateLimitPolicy."""

    def test_window_seconds_rounds_up(self):
        """Partial seconds round up so keys never expire early."""
        policy = RateLimitPolicy("p", 1, 1_500, "p")

        assert policy.window_seconds == 2

    def test_policies_from_settings(self, policies):
        """Defaults are 100/min general and 5/min auth."""
        assert policies.general.max_requests == 100
        assert policies.general.window_ms == 60_000
        assert policies.general.key_prefix == "rate_limit:general"
        assert policies.auth.max_requests == 5
        assert policies.auth.key_prefix == "rate_limit:auth"


class TestSlidingWindowRateLimiter:
    """Tests for SlidingWindowRateLimiter class."""

    def test_build_key(self, limiter):
        """Keys are namespaced by the policy prefix."""
        assert limiter._build_key("203.0.113.1", AUTH_POLICY) == "rate_limit:auth:203.0.113.1"

    def test_members_unique_within_same_millisecond(self, limiter):
        """Two requests in one millisecond never share a member."""
        members = {limiter._new_member(1_000) for _ in range(100)}

        assert len(members) == 100

    async def test_auth_budget_exhausts(self, limiter):
        """Five requests pass with a shrinking budget, the sixth is rejected."""
        remaining = []
        for _ in range(5):
            decision = await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)
            assert decision.allowed is True
            remaining.append(decision.remaining)

        rejected = await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        assert remaining == [4, 3, 2, 1, 0]
        assert rejected.allowed is False
        assert rejected.remaining == 0
        assert rejected.retry_after == 60
        assert rejected.outcome == RateLimitOutcome.REJECTED

    async def test_allowed_decision_metadata(self, limiter, clock):
        """Allowed decisions carry the limit and reset time."""
        decision = await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        assert decision.limit == 5
        assert decision.retry_after is None
        assert decision.reset_time == clock() + 60_000
        assert decision.outcome == RateLimitOutcome.ALLOWED

    async def test_identifiers_are_independent(self, limiter):
        """One client's budget does not affect another's."""
        for _ in range(6):
            await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        decision = await limiter.check_rate_limit("203.0.113.2", AUTH_POLICY)

        assert decision.allowed is True
        assert decision.remaining == 4

    async def test_window_slides(self, limiter, clock):
        """Requests older than the window stop counting."""
        for _ in range(5):
            await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)
            clock.advance(1_000)

        assert not (await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)).allowed

        clock.advance(60_001)
        decision = await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        assert decision.allowed is True
        assert decision.remaining == 4

    async def test_rejected_requests_count(self, limiter, clock):
        """Rejected attempts are recorded and keep the window full."""
        for _ in range(10):
            await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        clock.advance(30_000)
        status = await limiter.get_status("203.0.113.1", AUTH_POLICY)

        assert status.allowed is False
        assert status.remaining == 0

    async def test_entry_at_window_start_still_counts(self, limiter, clock):
        """Only entries strictly older than the window are purged."""
        policy = RateLimitPolicy("tiny", 1, 1_500, "tiny")
        await limiter.check_rate_limit("client", policy)

        clock.advance(1_500)
        decision = await limiter.check_rate_limit("client", policy)

        assert decision.allowed is False

    async def test_key_expires_with_window(self, limiter, store):
        """The window key gets a TTL equal to the window."""
        await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        assert store.ttl("rate_limit:auth:203.0.113.1") == 60

    async def test_fails_open_when_store_down(self, limiter, store, clock):
        """An unreachable store allows the request."""
        store.available = False

        decision = await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        assert decision.allowed is True
        assert decision.remaining == 5
        assert decision.reset_time == clock() + 60_000
        assert decision.outcome == RateLimitOutcome.STORE_ERROR

    async def test_fail_open_does_not_consume_budget(self, limiter, store):
        """Repeated failures keep reporting the full budget."""
        store.available = False
        decisions = [
            await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY) for _ in range(10)
        ]

        assert all(d.allowed and d.remaining == 5 for d in decisions)

        store.available = True
        assert (await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)).remaining == 4

    async def test_fails_open_on_unexpected_error(self):
        """Any store exception is treated as an outage."""
        store = AsyncMock()
        store.record_event.side_effect = RuntimeError("boom")
        limiter = SlidingWindowRateLimiter(store, clock=lambda: 0)

        decision = await limiter.check_rate_limit("client", AUTH_POLICY)

        assert decision.allowed is True
        assert decision.outcome == RateLimitOutcome.STORE_ERROR

    async def test_get_status_does_not_record(self, limiter):
        """get_status reports without consuming budget."""
        await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        first = await limiter.get_status("203.0.113.1", AUTH_POLICY)
        second = await limiter.get_status("203.0.113.1", AUTH_POLICY)

        assert first.remaining == second.remaining == 4

    async def test_reset_limit(self, limiter):
        """reset_limit restores the full budget."""
        for _ in range(6):
            await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)

        await limiter.reset_limit("203.0.113.1", AUTH_POLICY)

        assert (await limiter.check_rate_limit("203.0.113.1", AUTH_POLICY)).allowed

    async def test_reset_limit_swallows_store_errors(self, limiter, store):
        """reset_limit is best-effort."""
        store.available = False

        await limiter.reset_limit("203.0.113.1", AUTH_POLICY)


class TestRateLimitDecision:
    """Tests for decision formatting."""

    @pytest.mark.parametrize(
        ("reset_time", "expected"),
        [
            (1_700_000_060_000, "2023-11-14T22:14:20.000Z"),
            (1_700_000_060_123, "2023-11-14T22:14:20.123Z"),
        ],
    )
    async def test_reset_iso(self, reset_time, expected):
        """reset_iso is ISO-8601 UTC with milliseconds and a Z suffix."""
        decision = RateLimitDecision(allowed=True, limit=5, remaining=4, reset_time=reset_time)

        assert decision.reset_iso == expected
