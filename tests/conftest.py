"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from gatekeeper.config import Settings
from gatekeeper.core.auth import TokenAuthority, TokenConfig
from gatekeeper.core.rate_limit import RateLimitPolicies, SlidingWindowRateLimiter
from gatekeeper.main import create_app
from tests.factories.user import FakeUser, InMemoryIdentityStore, make_user
from tests.fakes import FakeClock, InMemoryStore


TEST_SECRET_KEY = "test-secret-key-that-is-at-least-32-characters"


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment."""
    return Settings(
        _env_file=None,
        secret_key=TEST_SECRET_KEY,
        environment="development",
        log_level="WARNING",
    )


@pytest.fixture
def clock() -> FakeClock:
    """Millisecond clock shared by the store and the limiter."""
    return FakeClock(start_ms=1_700_000_000_000)


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    """Coordination store double."""
    return InMemoryStore(clock)


@pytest.fixture
def user() -> FakeUser:
    """An active user with the default password."""
    return make_user(email="alice@example.com", first_name="Alice", last_name="Smith")


@pytest.fixture
def users(user: FakeUser) -> InMemoryIdentityStore:
    """Identity store seeded with ``user``."""
    return InMemoryIdentityStore(user)


@pytest.fixture
def token_config(settings: Settings) -> TokenConfig:
    """Signing configuration matching ``settings``."""
    return TokenConfig.from_settings(settings)


@pytest.fixture
def authority(
    token_config: TokenConfig,
    store: InMemoryStore,
    users: InMemoryIdentityStore,
) -> TokenAuthority:
    """Token authority wired to the in-memory doubles."""
    return TokenAuthority(token_config, store, users)


@pytest.fixture
def policies(settings: Settings) -> RateLimitPolicies:
    """Default general and auth policies."""
    return RateLimitPolicies.from_settings(settings)


@pytest.fixture
def limiter(store: InMemoryStore, clock: FakeClock) -> SlidingWindowRateLimiter:
    """Rate limiter driven by the fake clock."""
    return SlidingWindowRateLimiter(store, clock=clock)


@pytest.fixture
def app(
    settings: Settings,
    store: InMemoryStore,
    users: InMemoryIdentityStore,
    clock: FakeClock,
) -> FastAPI:
    """Application wired to the in-memory doubles."""
    return create_app(settings, store=store, users=users, clock=clock)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
