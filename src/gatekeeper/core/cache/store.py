"""Coordination store interface.

The token authority and the rate limiter share one TTL-capable key-value
store. They depend on this protocol rather than on a Redis client so a
test double with identical semantics can be injected.
"""

from typing import Protocol


class StoreUnavailableError(Exception):
    """Raised when the coordination store cannot be reached in time.

    Never rendered to clients directly. Token operations convert it to a
    503 (fail-closed); rate limiting converts it to an allow decision
    (fail-open).
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Coordination store unavailable during {operation}: {reason}")


class CoordinationStore(Protocol):
    """Operations the gates need from the shared store."""

    async def get(self, key: str) -> str | None:
        """Return the value stored at ``key`` or None."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` at ``key`` expiring after ``ttl_seconds``."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete ``key``; True only if this call removed it."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; return the count."""
        ...

    async def exists(self, key: str) -> bool:
        """Check whether ``key`` is present."""
        ...

    async def record_event(
        self,
        key: str,
        member: str,
        score: int,
        window_start: int,
        ttl_seconds: int,
    ) -> int:
        """Atomically purge, count, insert and refresh a sorted window.

        Removes members scored below ``window_start``, counts what is left,
        adds ``member`` at ``score`` and resets the key TTL.

        Returns:
            Number of members in the window before the insert
        """
        ...

    async def count_events(self, key: str, window_start: int) -> int:
        """Purge members scored below ``window_start`` and count the rest."""
        ...

    async def ping(self) -> bool:
        """Check connectivity."""
        ...
