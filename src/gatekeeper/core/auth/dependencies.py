"""FastAPI dependencies for authentication.

This module provides FastAPI dependency injection functions for:
- Reaching the application's token authority
- Extracting the bearer token from the Authorization header
- Verifying the access token, including the revocation blacklist
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from gatekeeper.core.auth.backend import extract_bearer_token
from gatekeeper.core.auth.schemas import AccessTokenClaims
from gatekeeper.core.auth.service import TokenAuthority
from gatekeeper.core.errors import UnauthorizedError


def get_token_authority(request: Request) -> TokenAuthority:
    """Return the application's token authority."""
    return request.app.state.token_authority


Authority = Annotated[TokenAuthority, Depends(get_token_authority)]


async def get_access_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the bearer token from the Authorization header.

    Raises:
        UnauthorizedError: If the header is missing or not a Bearer header
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise UnauthorizedError(
            "Missing authentication token",
            error_code="missing_token",
        )
    return token


AccessToken = Annotated[str, Depends(get_access_token)]


async def get_current_claims(
    token: AccessToken,
    authority: Authority,
) -> AccessTokenClaims:
    """Verify the access token and make sure it has not been revoked.

    A blacklisted token gets the same error as an invalid one.

    Raises:
        UnauthorizedError: If the token is invalid, expired or revoked
    """
    claims = authority.verify_access_token(token)

    if await authority.is_access_token_revoked(token):
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="invalid_token",
        )

    return claims


CurrentClaims = Annotated[AccessTokenClaims, Depends(get_current_claims)]
