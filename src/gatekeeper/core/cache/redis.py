"""Redis-backed coordination store.

Provides the async Redis implementation of ``CoordinationStore`` with a
shared connection pool, bounded per-operation timeouts and translation of
transport failures into ``StoreUnavailableError``.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from gatekeeper.core.cache.store import StoreUnavailableError


logger = structlog.get_logger()

SCAN_BATCH_SIZE = 500


def create_pool(
    url: str,
    timeout_seconds: float,
    max_connections: int = 50,
) -> ConnectionPool:
    """Create a Redis connection pool.

    Args:
        url: Redis connection URL
        timeout_seconds: Socket connect/read timeout
        max_connections: Pool size

    Returns:
        Connection pool decoding responses to str
    """
    return ConnectionPool.from_url(
        url,
        max_connections=max_connections,
        decode_responses=True,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


class RedisStore:
    """Coordination store backed by Redis.

    Every operation runs under ``asyncio.timeout`` so a slow server is
    reported exactly like an unreachable one.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        timeout_seconds: float = 2.0,
        prefix: str = "",
    ) -> None:
        """Initialize the store.

        Args:
            pool: Redis connection pool
            timeout_seconds: Upper bound for a single store round trip
            prefix: Prefix for all keys (e.g., "myapp:")
        """
        self.pool = pool
        self.timeout_seconds = timeout_seconds
        self.prefix = prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        timeout_seconds: float = 2.0,
        max_connections: int = 50,
        prefix: str = "",
    ) -> "RedisStore":
        """Build a store with its own connection pool."""
        return cls(
            create_pool(url, timeout_seconds, max_connections),
            timeout_seconds=timeout_seconds,
            prefix=prefix,
        )

    def _key(self, key: str) -> str:
        """Generate prefixed key."""
        return f"{self.prefix}{key}" if self.prefix else key

    @asynccontextmanager
    async def _client(self, operation: str) -> AsyncGenerator[redis.Redis, None]:  # type: ignore[type-arg]
        """Yield a pooled client, translating failures.

        Raises:
            StoreUnavailableError: On Redis errors, socket errors or timeout
        """
        client = redis.Redis(connection_pool=self.pool)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                yield client
        except TimeoutError as exc:
            raise StoreUnavailableError(operation, "timed out") from exc
        except (RedisError, OSError) as exc:
            raise StoreUnavailableError(operation, str(exc)) from exc
        finally:
            await client.aclose()

    async def get(self, key: str) -> str | None:
        """Get a value.

        Args:
            key: Store key

        Returns:
            Stored value or None if not found
        """
        async with self._client("get") as client:
            return await client.get(self._key(key))

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Set a value with expiry.

        Args:
            key: Store key
            value: Value to store
            ttl_seconds: TTL in seconds
        """
        async with self._client("set") as client:
            await client.setex(self._key(key), ttl_seconds, value)

    async def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if this call removed the key, False if it didn't exist
        """
        async with self._client("delete") as client:
            result = await client.delete(self._key(key))
            return result > 0

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern.

        Uses SCAN rather than KEYS so large keyspaces are not blocked.

        Returns:
            Number of keys deleted
        """
        deleted = 0
        async with self._client("delete_pattern") as client:
            batch: list[str] = []
            async for key in client.scan_iter(
                match=self._key(pattern), count=SCAN_BATCH_SIZE
            ):
                batch.append(key)
                if len(batch) >= SCAN_BATCH_SIZE:
                    deleted += await client.delete(*batch)
                    batch = []
            if batch:
                deleted += await client.delete(*batch)
        return deleted

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        async with self._client("exists") as client:
            return await client.exists(self._key(key)) > 0

    async def record_event(
        self,
        key: str,
        member: str,
        score: int,
        window_start: int,
        ttl_seconds: int,
    ) -> int:
        """Record an event in a sliding window.

        Runs ZREMRANGEBYSCORE, ZCARD, ZADD and EXPIRE inside one MULTI/EXEC
        so no other client's write interleaves between purge and insert.

        Returns:
            Number of events in the window before this one
        """
        full_key = self._key(key)
        async with (
            self._client("record_event") as client,
            client.pipeline(transaction=True) as pipe,
        ):
            # Scores strictly below window_start are outside the window
            pipe.zremrangebyscore(full_key, "-inf", f"({window_start}")
            pipe.zcard(full_key)
            pipe.zadd(full_key, {member: score})
            pipe.expire(full_key, ttl_seconds)

            results = await pipe.execute()
        return int(results[1])

    async def count_events(self, key: str, window_start: int) -> int:
        """Purge expired events and count the remaining ones."""
        full_key = self._key(key)
        async with (
            self._client("count_events") as client,
            client.pipeline(transaction=True) as pipe,
        ):
            pipe.zremrangebyscore(full_key, "-inf", f"({window_start}")
            pipe.zcard(full_key)

            results = await pipe.execute()
        return int(results[1])

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        async with self._client("ping") as client:
            return bool(await client.ping())

    async def close(self) -> None:
        """Close the connection pool.

        Call this during application shutdown.
        """
        await self.pool.disconnect()
        logger.info("redis_pool_closed")
