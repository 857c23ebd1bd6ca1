"""Cache module for the shared coordination store.

Provides:
- The ``CoordinationStore`` protocol used by the auth and rate limit gates
- The Redis implementation with connection pooling and bounded timeouts
"""

from gatekeeper.core.cache.redis import RedisStore, create_pool
from gatekeeper.core.cache.store import CoordinationStore, StoreUnavailableError


__all__ = [
    "CoordinationStore",
    "RedisStore",
    "StoreUnavailableError",
    "create_pool",
]
