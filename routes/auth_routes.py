"""
Authentication endpoints.

POST /auth/register    — create an account, send the verification email
POST /auth/login       — email + password → access/refresh token pair
POST /auth/refresh     — rotate the refresh token
POST /auth/logout      — revoke one refresh session
POST /auth/logout-all  — revoke every refresh session of the caller
GET  /auth/me          — profile of the caller
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from credentials.access import AccessGrant
from dependencies import get_auth_service, get_current_grant
from schemas.dto.requests.auth import (
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
)
from schemas.dto.responses.auth import (
    LoginResponse,
    LogoutAllResponse,
    LogoutResponse,
    RefreshResponse,
    RegisterResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import error_responses
from services.auth_service import AuthService, AuthSession
from shared.ip_utils import get_client_ip

router = APIRouter(
    prefix="/auth", tags=["auth"], responses=error_responses(400, 401, 403, 409)
)


def _token_fields(session: AuthSession) -> dict:
    return {
        "access_token": session.access_token,
        "access_token_expires_at": session.access_expires_at,
        "refresh_token": session.refresh_token,
        "refresh_token_expires_at": session.refresh_expires_at,
    }


@router.post("/register", status_code=201, response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """
    Create a new account.

    Passwords need at least 8 characters with a lowercase letter, an
    uppercase letter and a digit. A verification link valid for 24 hours is
    emailed; ``verification_sent`` is false when the email could not be sent
    (the user can ask for a new link from /email-verification/send).
    """
    result = await service.register(
        body.name,
        body.email,
        body.password,
        user_agent=request.headers.get("User-Agent"),
        ip=get_client_ip(request),
    )
    return RegisterResponse(
        **_token_fields(result.session),
        user=UserProfileResponse.from_user(result.session.user),
        verification_sent=result.verification_sent,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """
    Log in with email and password.

    Only one refresh session is live per account: logging in elsewhere
    ends the previous session.
    """
    session = await service.login(
        body.email,
        body.password,
        user_agent=request.headers.get("User-Agent"),
        ip=get_client_ip(request),
    )
    return LoginResponse(
        **_token_fields(session), user=UserProfileResponse.from_user(session.user)
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    body: RefreshRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> RefreshResponse:
    """Exchange a refresh token for a new pair. The old refresh token stops working."""
    session = await service.refresh(
        body.refresh_token,
        user_agent=request.headers.get("User-Agent"),
        ip=get_client_ip(request),
    )
    return RefreshResponse(**_token_fields(session))


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    body: LogoutRequest,
    service: AuthService = Depends(get_auth_service),
) -> LogoutResponse:
    await service.logout(body.refresh_token)
    return LogoutResponse(success=True)


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    grant: AccessGrant = Depends(get_current_grant),
    service: AuthService = Depends(get_auth_service),
) -> LogoutAllResponse:
    count = await service.logout_all(grant.owner_object_id)
    return LogoutAllResponse(success=True, sessions_revoked=count)


@router.get("/me", response_model=UserProfileResponse)
async def me(
    grant: AccessGrant = Depends(get_current_grant),
    service: AuthService = Depends(get_auth_service),
) -> UserProfileResponse:
    user = await service.get_profile(grant.owner_object_id)
    return UserProfileResponse.from_user(user)
