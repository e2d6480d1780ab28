"""
Response DTOs for authentication endpoints.

UserProfileResponse — user shape used in login/register/me
TokenPairResponse   — access + refresh token pair
LoginResponse       — POST /auth/login  (200)
RegisterResponse    — POST /auth/register  (201)
RefreshResponse     — POST /auth/refresh  (200)
LogoutResponse      — POST /auth/logout  (200)
LogoutAllResponse   — POST /auth/logout-all  (200)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.user import UserDoc


class UserProfileResponse(BaseModel):
    """User profile shape returned in login/register/me."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    email_verified: bool
    phone: Optional[str] = None
    phone_verified: bool
    role: str

    @classmethod
    def from_user(cls, user: UserDoc) -> "UserProfileResponse":
        return cls(
            id=str(user.id),
            name=user.name,
            email=user.email,
            email_verified=user.email_verified,
            phone=user.phone,
            phone_verified=user.phone_verified,
            role=user.role,
        )


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    access_token_expires_at: datetime
    refresh_token: str
    refresh_token_expires_at: datetime
    token_type: str = "Bearer"


class LoginResponse(TokenPairResponse):
    """Response body for POST /auth/login (200)."""

    user: UserProfileResponse


class RegisterResponse(LoginResponse):
    """Response body for POST /auth/register (201)."""

    requires_verification: bool = True
    verification_sent: bool


class RefreshResponse(TokenPairResponse):
    """Response body for POST /auth/refresh (200)."""


class LogoutResponse(BaseModel):
    """Response body for POST /auth/logout (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool


class LogoutAllResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    sessions_revoked: int
