"""Authentication backend for JWT and password handling.

This module provides core authentication utilities including:
- Password hashing with bcrypt
- JWT access and refresh token creation and verification
- Bearer token extraction from the Authorization header
"""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from gatekeeper.config import Settings
from gatekeeper.core.auth.schemas import AccessTokenClaims, RefreshTokenClaims
from gatekeeper.core.constants import (
    ACCESS_TOKEN_JTI_LENGTH,
    ACCESS_TOKEN_TYPE,
    BCRYPT_ROUNDS,
    REFRESH_TOKEN_TYPE,
)


# Password hashing context using bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


@dataclass(frozen=True)
class TokenConfig:
    """Signing configuration shared by all token operations.

    Attributes:
        secret_key: Shared HMAC secret
        algorithm: JWT signing algorithm
        access_token_ttl: Access token lifetime
        refresh_token_ttl: Refresh token lifetime
    """

    secret_key: str
    algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        """Build the config from application settings."""
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            access_token_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    @property
    def access_token_ttl_seconds(self) -> int:
        """Access token lifetime in whole seconds."""
        return int(self.access_token_ttl.total_seconds())

    @property
    def refresh_token_ttl_seconds(self) -> int:
        """Refresh token lifetime in whole seconds."""
        return int(self.refresh_token_ttl.total_seconds())


class InvalidTokenError(Exception):
    """Raised when a token fails signature, expiry or shape checks."""


# ============================================================
# Password Utilities
# ============================================================


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash of the password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


# ============================================================
# JWT Token Utilities
# ============================================================


def create_access_token(
    config: TokenConfig,
    subject_id: str,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a short-lived JWT access token.

    Args:
        config: Signing configuration
        subject_id: The user's id
        email: The user's email
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT access token
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or config.access_token_ttl)

    to_encode: dict[str, Any] = {
        "sub": subject_id,
        "email": email,
        "iat": now,
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(ACCESS_TOKEN_JTI_LENGTH),
    }

    return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)


def create_refresh_token(
    config: TokenConfig,
    subject_id: str,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a long-lived JWT refresh token.

    Each issuance gets a fresh token id; the caller persists the token
    under that id so it can be rotated or revoked.

    Args:
        config: Signing configuration
        subject_id: The user's id
        expires_delta: Optional custom expiration time

    Returns:
        Tuple of (encoded token, token id)
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or config.refresh_token_ttl)
    token_id = str(uuid4())

    to_encode: dict[str, Any] = {
        "sub": subject_id,
        "jti": token_id,
        "iat": now,
        "exp": expire,
        "type": REFRESH_TOKEN_TYPE,
    }

    token = jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)
    return token, token_id


def _decode(
    config: TokenConfig,
    token: str,
    expected_type: str,
    verify_exp: bool = True,
) -> dict[str, Any]:
    """Decode a token and check its type.

    Raises:
        InvalidTokenError: On any signature, expiry, format or type problem
    """
    try:
        payload = jwt.decode(
            token,
            config.secret_key,
            algorithms=[config.algorithm],
            options={"verify_exp": verify_exp},
        )
    except (JWTError, ValueError) as exc:
        raise InvalidTokenError(str(exc)) from exc

    if payload.get("type") != expected_type:
        raise InvalidTokenError("unexpected token type")
    if not payload.get("sub") or payload.get("exp") is None:
        raise InvalidTokenError("missing required claims")
    return payload


def decode_access_token(config: TokenConfig, token: str) -> AccessTokenClaims:
    """Decode and validate an access token.

    Raises:
        InvalidTokenError: If the token is invalid or expired
    """
    payload = _decode(config, token, ACCESS_TOKEN_TYPE)
    email = payload.get("email")
    if not email:
        raise InvalidTokenError("missing email claim")

    return AccessTokenClaims(
        subject_id=str(payload["sub"]),
        email=email,
        issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        token_id=payload.get("jti"),
    )


def decode_refresh_token(
    config: TokenConfig,
    token: str,
    verify_exp: bool = True,
) -> RefreshTokenClaims:
    """Decode and validate a refresh token.

    Args:
        config: Signing configuration
        token: Encoded refresh token
        verify_exp: Set False to read an expired but authentic token

    Raises:
        InvalidTokenError: If the token is invalid (or expired, when checked)
    """
    payload = _decode(config, token, REFRESH_TOKEN_TYPE, verify_exp=verify_exp)
    token_id = payload.get("jti")
    if not token_id:
        raise InvalidTokenError("missing token id")

    return RefreshTokenClaims(
        subject_id=str(payload["sub"]),
        token_id=token_id,
        issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
    )


def get_unverified_expiry(token: str) -> datetime | None:
    """Read the exp claim without checking the signature.

    Only use on tokens that were already verified.
    """
    try:
        exp = jwt.get_unverified_claims(token).get("exp")
    except JWTError:
        return None
    if exp is None:
        return None
    return datetime.fromtimestamp(exp, tz=UTC)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Args:
        authorization: Raw header value

    Returns:
        The token, or None if the header is absent or not a Bearer header
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        return None
    return token
