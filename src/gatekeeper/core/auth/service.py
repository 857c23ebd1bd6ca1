"""Token authority for login, refresh token rotation and revocation.

Refresh tokens and the access token blacklist live in the coordination
store, never in process memory, so every instance sees the same state.
"""

import math
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog

from gatekeeper.core.auth.backend import (
    InvalidTokenError,
    TokenConfig,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    get_unverified_expiry,
)
from gatekeeper.core.auth.identity import IdentityStore, UserRecord
from gatekeeper.core.auth.schemas import (
    AccessTokenClaims,
    RefreshTokenClaims,
    SessionBundle,
    UserSummary,
)
from gatekeeper.core.cache.store import CoordinationStore, StoreUnavailableError
from gatekeeper.core.constants import (
    BLACKLIST_KEY_PREFIX,
    MIN_BLACKLIST_TTL_SECONDS,
    REFRESH_TOKEN_KEY_PREFIX,
)
from gatekeeper.core.errors import ServiceUnavailableError, UnauthorizedError


logger = structlog.get_logger()


def _invalid_credentials() -> UnauthorizedError:
    return UnauthorizedError("Invalid credentials", error_code="invalid_credentials")


def _invalid_token() -> UnauthorizedError:
    return UnauthorizedError("Invalid or expired token", error_code="invalid_token")


def _account_inactive() -> UnauthorizedError:
    return UnauthorizedError("Account is inactive", error_code="account_inactive")


class TokenAuthority:
    """Issues, verifies, rotates and revokes credential tokens.

    Store failures are fail-closed: they surface as
    ``ServiceUnavailableError`` and never as a successful authentication.
    """

    def __init__(
        self,
        config: TokenConfig,
        store: CoordinationStore,
        users: IdentityStore,
    ) -> None:
        self.config = config
        self.store = store
        self.users = users

    # ============================================================
    # Issuance and verification (no store access)
    # ============================================================

    def issue_access_token(self, user: UserRecord) -> str:
        """Sign a short-lived access token for ``user``."""
        return create_access_token(self.config, str(user.id), user.email)

    def issue_refresh_token(self, user: UserRecord) -> tuple[str, str]:
        """Sign a refresh token for ``user``.

        The caller must persist it with ``store_refresh_token``.

        Returns:
            Tuple of (token, token id)
        """
        return create_refresh_token(self.config, str(user.id))

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """Verify signature and expiry of an access token.

        The blacklist is not consulted; use ``is_access_token_revoked``
        before trusting the token for authorization.

        Raises:
            UnauthorizedError: For any invalid, expired or malformed token
        """
        try:
            return decode_access_token(self.config, token)
        except InvalidTokenError as exc:
            logger.debug("access_token_rejected", reason=str(exc))
            raise _invalid_token() from None

    def verify_refresh_token(self, token: str) -> RefreshTokenClaims:
        """Verify signature and expiry of a refresh token.

        Raises:
            UnauthorizedError: For any invalid, expired or malformed token
        """
        try:
            return decode_refresh_token(self.config, token)
        except InvalidTokenError as exc:
            logger.debug("refresh_token_rejected", reason=str(exc))
            raise _invalid_token() from None

    def read_refresh_token_id(
        self, token: str, subject_id: str | None = None
    ) -> str | None:
        """Read the id of an authentic refresh token, even if expired.

        Args:
            token: Encoded refresh token
            subject_id: When given, the token must belong to this subject

        Returns:
            The token id, or None if the token is not authentic or belongs
            to another subject
        """
        try:
            claims = decode_refresh_token(self.config, token, verify_exp=False)
        except InvalidTokenError:
            return None

        if subject_id is not None and claims.subject_id != subject_id:
            logger.warning(
                "refresh_token_subject_mismatch",
                user_id=subject_id,
                token_id=claims.token_id,
            )
            return None
        return claims.token_id

    # ============================================================
    # Store-backed records
    # ============================================================

    @staticmethod
    def _refresh_key(subject_id: str, token_id: str) -> str:
        return f"{REFRESH_TOKEN_KEY_PREFIX}:{subject_id}:{token_id}"

    @staticmethod
    def _blacklist_key(token: str) -> str:
        return f"{BLACKLIST_KEY_PREFIX}:{token}"

    @asynccontextmanager
    async def _fail_closed(self, operation: str) -> AsyncGenerator[None, None]:
        """Convert store outages into a 503 for token operations."""
        try:
            yield
        except StoreUnavailableError as exc:
            logger.error(
                "token_store_unavailable",
                operation=operation,
                error=exc.reason,
            )
            raise ServiceUnavailableError(
                "Authentication is temporarily unavailable"
            ) from exc

    async def store_refresh_token(
        self, subject_id: str, token_id: str, token: str
    ) -> None:
        """Persist a refresh token record for its full lifetime."""
        async with self._fail_closed("store_refresh_token"):
            await self.store.set(
                self._refresh_key(subject_id, token_id),
                token,
                self.config.refresh_token_ttl_seconds,
            )

    async def get_refresh_token(self, subject_id: str, token_id: str) -> str | None:
        """Fetch the stored refresh token for a record, if still present."""
        async with self._fail_closed("get_refresh_token"):
            return await self.store.get(self._refresh_key(subject_id, token_id))

    async def revoke_refresh_token(self, subject_id: str, token_id: str) -> bool:
        """Delete one refresh token record.

        Returns:
            True if this call removed the record
        """
        async with self._fail_closed("revoke_refresh_token"):
            return await self.store.delete(self._refresh_key(subject_id, token_id))

    async def revoke_all_refresh_tokens(self, subject_id: str) -> int:
        """Delete every refresh token record of a subject.

        Returns:
            Number of records removed
        """
        async with self._fail_closed("revoke_all_refresh_tokens"):
            return await self.store.delete_pattern(
                self._refresh_key(subject_id, "*")
            )

    async def blacklist_access_token(self, token: str, subject_id: str) -> None:
        """Reject ``token`` until the moment it would expire anyway."""
        ttl = self._remaining_lifetime(token)
        async with self._fail_closed("blacklist_access_token"):
            await self.store.set(self._blacklist_key(token), subject_id, ttl)

    async def is_access_token_revoked(self, token: str) -> bool:
        """Check the access token blacklist."""
        async with self._fail_closed("is_access_token_revoked"):
            return await self.store.exists(self._blacklist_key(token))

    def _remaining_lifetime(self, token: str) -> int:
        expires_at = get_unverified_expiry(token)
        if expires_at is None:
            return self.config.access_token_ttl_seconds
        # exp has whole-second precision; round up so the entry outlives the token
        remaining = math.ceil((expires_at - datetime.now(UTC)).total_seconds())
        return max(MIN_BLACKLIST_TTL_SECONDS, remaining)

    # ============================================================
    # Session protocols
    # ============================================================

    async def login(self, email: str, password: str) -> SessionBundle:
        """Authenticate with email and password.

        Unknown email and wrong password produce the same error so the
        response cannot be used to probe for registered accounts.

        Raises:
            UnauthorizedError: If credentials are invalid or the account is inactive
            ServiceUnavailableError: If the coordination store is unreachable
        """
        user = await self.users.find_by_email(email)
        if user is None:
            logger.info("login_failed", reason="unknown_email")
            raise _invalid_credentials()

        if not user.is_active:
            logger.info("login_failed", reason="inactive", user_id=str(user.id))
            raise _account_inactive()

        if not await self.users.verify_password(user, password):
            logger.info("login_failed", reason="bad_password", user_id=str(user.id))
            raise _invalid_credentials()

        try:
            await self.users.update_last_login(str(user.id))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "last_login_update_failed",
                user_id=str(user.id),
                error=str(exc),
            )

        bundle = await self._open_session(user)
        logger.info("login_succeeded", user_id=str(user.id))
        return bundle

    async def rotate_refresh_token(self, presented_token: str) -> SessionBundle:
        """Exchange a refresh token for a new access/refresh pair.

        The old record is deleted before the new pair is issued. If the
        process dies after the delete the user simply logs in again; the
        old token can never be redeemed twice.

        Raises:
            UnauthorizedError: If the token is invalid, rotated, revoked or forged
            ServiceUnavailableError: If the coordination store is unreachable
        """
        claims = self.verify_refresh_token(presented_token)
        key = self._refresh_key(claims.subject_id, claims.token_id)

        async with self._fail_closed("rotate_refresh_token"):
            stored = await self.store.get(key)
        if stored is None or not secrets.compare_digest(stored, presented_token):
            logger.warning(
                "refresh_token_replay_rejected",
                user_id=claims.subject_id,
                token_id=claims.token_id,
            )
            raise _invalid_token()

        user = await self.users.find_by_id(claims.subject_id)
        if user is None:
            raise _invalid_token()
        if not user.is_active:
            raise _account_inactive()

        async with self._fail_closed("rotate_refresh_token"):
            deleted = await self.store.delete(key)
        if not deleted:
            # A concurrent rotation consumed this token first
            logger.warning(
                "refresh_token_replay_rejected",
                user_id=claims.subject_id,
                token_id=claims.token_id,
            )
            raise _invalid_token()

        bundle = await self._open_session(user)
        logger.info(
            "refresh_token_rotated",
            user_id=claims.subject_id,
            old_token_id=claims.token_id,
        )
        return bundle

    async def logout(
        self,
        subject_id: str,
        access_token: str,
        refresh_token_id: str | None = None,
        *,
        revoke_all: bool = True,
    ) -> None:
        """End a session.

        Args:
            subject_id: The user's id
            access_token: The presented access token, blacklisted until expiry
            refresh_token_id: Revoke only this refresh token when known
            revoke_all: Without a token id, revoke every refresh token of the
                user. Pass False when a refresh token was presented but could
                not be read, so a partial context never logs out everywhere.
        """
        await self.blacklist_access_token(access_token, subject_id)

        if refresh_token_id:
            await self.revoke_refresh_token(subject_id, refresh_token_id)
            scope = "session"
        elif revoke_all:
            await self.revoke_all_refresh_tokens(subject_id)
            scope = "all"
        else:
            scope = "access_only"

        logger.info("logout_completed", user_id=subject_id, scope=scope)

    async def _open_session(self, user: UserRecord) -> SessionBundle:
        """Issue and persist a fresh token pair."""
        access_token = self.issue_access_token(user)
        refresh_token, token_id = self.issue_refresh_token(user)
        await self.store_refresh_token(str(user.id), token_id, refresh_token)

        return SessionBundle(
            access_token=access_token,
            expires_in=self.config.access_token_ttl_seconds,
            user=UserSummary(
                id=str(user.id),
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
            ),
            refresh_token=refresh_token,
        )
