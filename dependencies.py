"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan and
stored on app.state; these providers only hand them out.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from credentials.access import AccessGrant, AccessGrantCodec
from credentials.errors import CredentialError, ExpiredSecret
from errors import AuthenticationError
from services.auth_service import AuthService
from services.email_verification_service import EmailVerificationService
from services.password_change_service import PasswordChangeService
from services.password_reset_service import PasswordResetService
from services.phone_verification_service import PhoneVerificationService


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_access_codec(request: Request) -> AccessGrantCodec:
    return request.app.state.access_codec


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_email_verification_service(request: Request) -> EmailVerificationService:
    return request.app.state.email_verification_service


def get_phone_verification_service(request: Request) -> PhoneVerificationService:
    return request.app.state.phone_verification_service


def get_password_reset_service(request: Request) -> PasswordResetService:
    return request.app.state.password_reset_service


def get_password_change_service(request: Request) -> PasswordChangeService:
    return request.app.state.password_change_service


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_grant(
    request: Request,
    codec: AccessGrantCodec = Depends(get_access_codec),
) -> AccessGrant:
    """Resolve the Bearer access token into an AccessGrant or fail with 401."""
    token = _bearer_token(request)
    if token is None:
        raise AuthenticationError("Authentication required")
    try:
        return codec.decode(token)
    except ExpiredSecret:
        raise AuthenticationError("Access token has expired", details={"expired": True})
    except CredentialError:
        raise AuthenticationError("Invalid access token")
