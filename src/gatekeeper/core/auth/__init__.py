"""Authentication module for JWT tokens and the token authority."""

from gatekeeper.core.auth.backend import (
    TokenConfig,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    extract_bearer_token,
    hash_password,
    verify_password,
)
from gatekeeper.core.auth.dependencies import (
    AccessToken,
    Authority,
    CurrentClaims,
    get_current_claims,
    get_token_authority,
)
from gatekeeper.core.auth.identity import IdentityStore, UserRecord
from gatekeeper.core.auth.middleware import IdentityMiddleware, RequestIdMiddleware
from gatekeeper.core.auth.routes import router as auth_router
from gatekeeper.core.auth.schemas import (
    AccessTokenClaims,
    RefreshTokenClaims,
    SessionBundle,
    UserSummary,
)
from gatekeeper.core.auth.service import TokenAuthority


__all__ = [
    # Dependencies
    "AccessToken",
    # Schemas
    "AccessTokenClaims",
    "Authority",
    "CurrentClaims",
    # Middleware
    "IdentityMiddleware",
    # Identity store
    "IdentityStore",
    "RefreshTokenClaims",
    "RequestIdMiddleware",
    "SessionBundle",
    # Service
    "TokenAuthority",
    "TokenConfig",
    "UserRecord",
    "UserSummary",
    # Routers
    "auth_router",
    # Token utilities
    "create_access_token",
    "create_refresh_token",
    "decode_access_token",
    "decode_refresh_token",
    "extract_bearer_token",
    "get_current_claims",
    "get_token_authority",
    # Password utilities
    "hash_password",
    "verify_password",
]
