"""
Password reset and password change endpoints.

POST /password-reset/request     — email a reset link (same answer for any address)
POST /password-reset/validate    — check a reset token without using it
POST /password-reset/reset       — set a new password with a reset token
POST /password-change/generate   — email a 6-digit code (auth)
POST /password-change/verify     — exchange the code for a change grant (auth)
POST /password-change/change     — change the password with the grant (auth)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from credentials.access import AccessGrant
from dependencies import (
    get_current_grant,
    get_password_change_service,
    get_password_reset_service,
)
from schemas.dto.requests.password import (
    ChangePasswordRequest,
    RequestPasswordResetRequest,
    ResetPasswordRequest,
    ValidateResetTokenRequest,
    VerifyPasswordChangeRequest,
)
from schemas.dto.responses.common import MessageResponse, error_responses
from schemas.dto.responses.password import (
    PasswordChangeGrantResponse,
    PasswordChangeOtpResponse,
    ResetTokenValidResponse,
)
from services.password_change_service import PasswordChangeService
from services.password_reset_service import PasswordResetService

reset_router = APIRouter(
    prefix="/password-reset", tags=["password-reset"], responses=error_responses(400)
)
change_router = APIRouter(
    prefix="/password-change",
    tags=["password-change"],
    responses=error_responses(400, 401, 403, 429, 502),
)


@reset_router.post("/request", response_model=MessageResponse)
async def request_password_reset(
    body: RequestPasswordResetRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    message = await service.request(body.email)
    return MessageResponse(success=True, message=message)


@reset_router.post("/validate", response_model=ResetTokenValidResponse)
async def validate_reset_token(
    body: ValidateResetTokenRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> ResetTokenValidResponse:
    info = await service.validate(body.token)
    return ResetTokenValidResponse(valid=True, email=info.email, expires_at=info.expires_at)


@reset_router.post("/reset", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    """
    Set a new password.

    The token works once. Every signed-in session of the account is ended,
    so the user logs in again with the new password.
    """
    await service.reset(body.token, body.new_password)
    return MessageResponse(success=True, message="Password has been reset")


@change_router.post("/generate", response_model=PasswordChangeOtpResponse)
async def generate_password_change_otp(
    grant: AccessGrant = Depends(get_current_grant),
    service: PasswordChangeService = Depends(get_password_change_service),
) -> PasswordChangeOtpResponse:
    sent = await service.request_otp(grant.owner_object_id)
    return PasswordChangeOtpResponse(
        success=True,
        message="Verification code sent to your email",
        expires_at=sent.expires_at,
    )


@change_router.post("/verify", response_model=PasswordChangeGrantResponse)
async def verify_password_change_otp(
    body: VerifyPasswordChangeRequest,
    grant: AccessGrant = Depends(get_current_grant),
    service: PasswordChangeService = Depends(get_password_change_service),
) -> PasswordChangeGrantResponse:
    """
    Check the emailed code.

    Wrong codes answer 400 with ``details.remaining_attempts``; after 5 wrong
    codes the answer is 429 and a new code has to be generated.
    """
    change_grant = await service.verify_otp(grant.owner_object_id, body.otp)
    return PasswordChangeGrantResponse(
        success=True,
        grant_token=change_grant.grant_token,
        expires_at=change_grant.expires_at,
    )


@change_router.post("/change", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    grant: AccessGrant = Depends(get_current_grant),
    service: PasswordChangeService = Depends(get_password_change_service),
) -> MessageResponse:
    await service.change_password(
        grant.owner_object_id,
        body.grant_token,
        body.current_password,
        body.new_password,
    )
    return MessageResponse(success=True, message="Password changed")
