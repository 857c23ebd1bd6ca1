"""FastAPI application factory."""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gatekeeper.api import api_router
from gatekeeper.config import Settings, get_settings
from gatekeeper.core.auth import (
    IdentityMiddleware,
    IdentityStore,
    RequestIdMiddleware,
    TokenAuthority,
    TokenConfig,
)
from gatekeeper.core.cache import CoordinationStore, RedisStore
from gatekeeper.core.database import create_engine, create_session_factory
from gatekeeper.core.errors import register_exception_handlers
from gatekeeper.core.logging import RequestLoggingMiddleware, configure_logging
from gatekeeper.core.rate_limit import (
    RateLimitMiddleware,
    RateLimitPolicies,
    SlidingWindowRateLimiter,
)
from gatekeeper.modules.users import UserRepository


logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    yield

    logger.info("application_shutdown")

    store = app.state.store
    if isinstance(store, RedisStore):
        await store.close()

    engine = getattr(app.state, "db_engine", None)
    if engine is not None:
        await engine.dispose()
        logger.info("database_engine_disposed")


def create_app(
    settings: Settings | None = None,
    *,
    store: CoordinationStore | None = None,
    users: IdentityStore | None = None,
    clock: Callable[[], int] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to the environment)
        store: Coordination store (defaults to Redis at ``settings.redis_url``)
        users: Identity store (defaults to the SQLAlchemy user repository)
        clock: Millisecond clock for the rate limiter

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Token authority and request rate governor",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
        # Disable docs in production
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )

    if store is None:
        store = RedisStore.from_url(
            str(settings.redis_url),
            timeout_seconds=settings.store_timeout_seconds,
            max_connections=settings.redis_max_connections,
        )

    if users is None:
        engine = create_engine(settings)
        app.state.db_engine = engine
        users = UserRepository(create_session_factory(engine))

    token_authority = TokenAuthority(TokenConfig.from_settings(settings), store, users)
    rate_limiter = SlidingWindowRateLimiter(store, clock=clock)
    policies = RateLimitPolicies.from_settings(settings)

    app.state.settings = settings
    app.state.store = store
    app.state.token_authority = token_authority
    app.state.rate_limiter = rate_limiter
    app.state.rate_limit_policies = policies

    cors_origins = settings.cors_origins
    if settings.is_development and not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    # Rate limiting runs after identity has been attached
    app.add_middleware(
        RateLimitMiddleware,
        limiter=rate_limiter,
        policies=policies,
        auth_path_prefixes=settings.auth_path_prefixes,
    )
    app.add_middleware(IdentityMiddleware, authority=token_authority)
    app.add_middleware(RequestLoggingMiddleware)

    # Add request ID middleware (outermost, runs first)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(api_router)

    return app
