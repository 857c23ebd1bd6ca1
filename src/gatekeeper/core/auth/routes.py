"""Authentication API routes.

Provides endpoints for:
- Login
- Refresh token rotation
- Logout
- Inspecting the current access token

The refresh token only ever travels in an HttpOnly cookie.
"""

from fastapi import APIRouter, Request, Response

from gatekeeper.config import Settings
from gatekeeper.core.auth.dependencies import AccessToken, Authority, CurrentClaims
from gatekeeper.core.auth.schemas import (
    LoginRequest,
    LogoutResponse,
    SessionBundle,
    SessionInfoResponse,
    TokenResponse,
)
from gatekeeper.core.errors import UnauthorizedError


router = APIRouter(prefix="/auth", tags=["auth"])


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _set_refresh_cookie(request: Request, response: Response, token: str) -> None:
    """Attach the refresh token cookie."""
    settings = _get_settings(request)
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=not settings.is_development,
        samesite="strict",
    )


def _clear_refresh_cookie(request: Request, response: Response) -> None:
    """Expire the refresh token cookie with the flags it was set with."""
    settings = _get_settings(request)
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        httponly=True,
        secure=not settings.is_development,
        samesite="strict",
    )


def _to_response(bundle: SessionBundle) -> TokenResponse:
    return TokenResponse(
        access_token=bundle.access_token,
        token_type=bundle.token_type,
        expires_in=bundle.expires_in,
        user=bundle.user,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    description="Returns an access token and sets the refresh token cookie.",
)
async def login(
    data: LoginRequest,
    authority: Authority,
    request: Request,
    response: Response,
) -> TokenResponse:
    """Login with email and password."""
    bundle = await authority.login(email=data.email, password=data.password)
    _set_refresh_cookie(request, response, bundle.refresh_token)
    return _to_response(bundle)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Rotate refresh token",
    description="Exchanges the refresh token cookie for a new token pair. "
    "The old refresh token stops working immediately.",
)
async def refresh(
    authority: Authority,
    request: Request,
    response: Response,
) -> TokenResponse:
    """Rotate the refresh token."""
    refresh_token = request.cookies.get(_get_settings(request).refresh_cookie_name)
    if not refresh_token:
        raise UnauthorizedError(
            "Refresh token not found",
            error_code="missing_token",
        )

    bundle = await authority.rotate_refresh_token(refresh_token)
    _set_refresh_cookie(request, response, bundle.refresh_token)
    return _to_response(bundle)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Logout",
    description="Revokes the access token and the refresh token of this session. "
    "Without a refresh token cookie, every session of the user is revoked.",
)
async def logout(
    claims: CurrentClaims,
    access_token: AccessToken,
    authority: Authority,
    request: Request,
    response: Response,
) -> LogoutResponse:
    """Logout the current session."""
    refresh_token = request.cookies.get(_get_settings(request).refresh_cookie_name)

    refresh_token_id = None
    if refresh_token:
        refresh_token_id = authority.read_refresh_token_id(
            refresh_token, subject_id=claims.subject_id
        )

    await authority.logout(
        claims.subject_id,
        access_token,
        refresh_token_id,
        revoke_all=refresh_token is None,
    )

    _clear_refresh_cookie(request, response)
    return LogoutResponse()


@router.get(
    "/me",
    response_model=SessionInfoResponse,
    summary="Current session",
    description="Describes the presented access token after checking revocation.",
)
async def get_me(claims: CurrentClaims) -> SessionInfoResponse:
    """Describe the current access token."""
    return SessionInfoResponse(
        subject_id=claims.subject_id,
        email=claims.email,
        expires_at=claims.expires_at,
    )
