"""Authentication schemas for token handling."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from gatekeeper.core.constants import MAX_EMAIL_LENGTH, MAX_PASSWORD_LENGTH


class AccessTokenClaims(BaseModel):
    """Claims carried by a verified access token.

    Attributes:
        subject_id: The user's id
        email: The user's email at issuance
        issued_at: Token issue time
        expires_at: Token expiration time
        token_id: Random per-token id (jti)
    """

    subject_id: str
    email: str
    issued_at: datetime
    expires_at: datetime
    token_id: str | None = None


class RefreshTokenClaims(BaseModel):
    """Claims carried by a verified refresh token.

    Attributes:
        subject_id: The user's id
        token_id: Unique id of this issuance, part of the store key
        issued_at: Token issue time
        expires_at: Token expiration time
    """

    subject_id: str
    token_id: str
    issued_at: datetime
    expires_at: datetime


class UserSummary(BaseModel):
    """Public view of the authenticated user."""

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None


class SessionBundle(BaseModel):
    """Result of a login or a refresh token rotation.

    The refresh token travels in a cookie, never in the response body.
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary
    refresh_token: str = Field(exclude=True, repr=False)


class LoginRequest(BaseModel):
    """Login credentials."""

    email: EmailStr = Field(..., max_length=MAX_EMAIL_LENGTH)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class TokenResponse(BaseModel):
    """Response body for login and refresh."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary


class LogoutResponse(BaseModel):
    """Response body for logout."""

    message: str = "Logged out successfully"


class SessionInfoResponse(BaseModel):
    """Response body describing the caller's access token."""

    subject_id: str
    email: str
    expires_at: datetime
