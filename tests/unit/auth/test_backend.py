"""Unit tests for auth backend (JWT and password handling)."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import jwt

from gatekeeper.core.auth.backend import (
    InvalidTokenError,
    TokenConfig,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    extract_bearer_token,
    get_unverified_expiry,
    hash_password,
    verify_password,
)


SECRET = "unit-test-secret-key-with-enough-length-1234"


@pytest.fixture
def config() -> TokenConfig:
    return TokenConfig(secret_key=SECRET)


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_returns_bcrypt_hash(self):
        """hash_password should return a bcrypt hash."""
        hashed = hash_password("mysecretpassword")

        assert hashed != "mysecretpassword"
        assert hashed.startswith("$2b$")

    def test_verify_password_correct(self):
        """verify_password should return True for correct password."""
        hashed = hash_password("mysecretpassword")

        assert verify_password("mysecretpassword", hashed) is True

    def test_verify_password_incorrect(self):
        """verify_password should return False for incorrect password."""
        hashed = hash_password("mysecretpassword")

        assert verify_password("wrongpassword", hashed) is False


class TestTokenConfig:
    """Tests for TokenConfig."""

    def test_default_lifetimes(self, config):
        """Access tokens last 15 minutes and refresh tokens 7 days."""
        assert config.access_token_ttl_seconds == 900
        assert config.refresh_token_ttl_seconds == 604800

    def test_from_settings(self, settings):
        """from_settings should copy secret, algorithm and lifetimes."""
        config = TokenConfig.from_settings(settings)

        assert config.secret_key == settings.secret_key
        assert config.algorithm == "HS256"
        assert config.access_token_ttl == timedelta(minutes=15)


class TestAccessTokens:
    """Tests for access token creation and decoding."""

    def test_round_trip_claims(self, config):
        """Decoded claims should carry the subject and email."""
        subject_id = str(uuid4())
        token = create_access_token(config, subject_id, "a@example.com")

        claims = decode_access_token(config, token)

        assert claims.subject_id == subject_id
        assert claims.email == "a@example.com"
        assert claims.token_id
        assert claims.expires_at > datetime.now(UTC)

    def test_tokens_issued_together_differ(self, config):
        """The random jti makes every access token unique."""
        first = create_access_token(config, "user-1", "a@example.com")
        second = create_access_token(config, "user-1", "a@example.com")

        assert first != second

    def test_expired_token_rejected(self, config):
        """An expired access token should not decode."""
        token = create_access_token(
            config, "user-1", "a@example.com", expires_delta=timedelta(seconds=-1)
        )

        with pytest.raises(InvalidTokenError):
            decode_access_token(config, token)

    def test_wrong_secret_rejected(self, config):
        """A token signed with another key should not decode."""
        other = TokenConfig(secret_key="another-secret-key-that-is-long-enough!")
        token = create_access_token(other, "user-1", "a@example.com")

        with pytest.raises(InvalidTokenError):
            decode_access_token(config, token)

    def test_refresh_token_not_accepted_as_access(self, config):
        """A refresh token must not pass as an access token."""
        token, _ = create_refresh_token(config, "user-1")

        with pytest.raises(InvalidTokenError, match="unexpected token type"):
            decode_access_token(config, token)

    def test_missing_email_rejected(self, config):
        """Access tokens without an email claim are malformed."""
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "user-1", "type": "access", "iat": now, "exp": now + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            decode_access_token(config, token)

    def test_garbage_rejected(self, config):
        """Arbitrary strings should not decode."""
        with pytest.raises(InvalidTokenError):
            decode_access_token(config, "not-a-jwt")


class TestRefreshTokens:
    """Tests for refresh token creation and decoding."""

    def test_returns_token_and_id(self, config):
        """create_refresh_token should return the token with its id."""
        token, token_id = create_refresh_token(config, "user-1")

        claims = decode_refresh_token(config, token)

        assert claims.subject_id == "user-1"
        assert claims.token_id == token_id

    def test_each_issuance_has_new_id(self, config):
        """Every refresh token gets a fresh id."""
        _, first = create_refresh_token(config, "user-1")
        _, second = create_refresh_token(config, "user-1")

        assert first != second

    def test_expired_token_readable_without_expiry_check(self, config):
        """verify_exp=False should still read an authentic expired token."""
        token, token_id = create_refresh_token(
            config, "user-1", expires_delta=timedelta(seconds=-10)
        )

        with pytest.raises(InvalidTokenError):
            decode_refresh_token(config, token)

        claims = decode_refresh_token(config, token, verify_exp=False)
        assert claims.token_id == token_id

    def test_access_token_not_accepted_as_refresh(self, config):
        """An access token must not pass as a refresh token."""
        token = create_access_token(config, "user-1", "a@example.com")

        with pytest.raises(InvalidTokenError):
            decode_refresh_token(config, token)


class TestHelpers:
    """Tests for header and claim helpers."""

    def test_get_unverified_expiry(self, config):
        """get_unverified_expiry should read exp without the key."""
        token = create_access_token(config, "user-1", "a@example.com")

        expiry = get_unverified_expiry(token)

        assert expiry is not None
        assert timedelta(minutes=14) < expiry - datetime.now(UTC) <= timedelta(minutes=15)

    def test_get_unverified_expiry_garbage(self):
        """Malformed tokens yield None."""
        assert get_unverified_expiry("garbage") is None

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            (None, None),
            ("", None),
            ("Basic dXNlcjpwYXNz", None),
            ("Bearer", None),
            ("bearer abc", None),
        ],
    )
    def test_extract_bearer_token(self, header, expected):
        """Only a well-formed Bearer header yields a token."""
        assert extract_bearer_token(header) == expected
