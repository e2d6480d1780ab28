"""
Email and phone verification endpoints.

POST /email-verification/send    — email a new verification link (auth)
POST /email-verification/verify  — confirm the link token (no auth, link is enough)
GET  /email-verification/status  — verification state of the caller (auth)
POST /phone-verification/send    — SMS a 6-digit code (auth)
POST /phone-verification/verify  — confirm the code, 5 attempts (auth)
GET  /phone-verification/status  — phone state of the caller (auth)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from credentials.access import AccessGrant
from dependencies import (
    get_current_grant,
    get_email_verification_service,
    get_phone_verification_service,
)
from schemas.dto.requests.verification import (
    SendPhoneOtpRequest,
    VerifyEmailRequest,
    VerifyPhoneRequest,
)
from schemas.dto.responses.common import error_responses
from schemas.dto.responses.verification import (
    EmailVerificationStatusResponse,
    PhoneOtpSentResponse,
    PhoneVerificationStatusResponse,
    VerificationSentResponse,
    VerifyEmailResponse,
    VerifyPhoneResponse,
)
from services.email_verification_service import EmailVerificationService
from services.phone_verification_service import PhoneVerificationService
from shared.phone import mask_phone

email_router = APIRouter(
    prefix="/email-verification",
    tags=["email-verification"],
    responses=error_responses(400, 401, 403, 409, 429, 502),
)
phone_router = APIRouter(
    prefix="/phone-verification",
    tags=["phone-verification"],
    responses=error_responses(400, 401, 403, 404, 409, 429),
)


@email_router.post("/send", response_model=VerificationSentResponse)
async def send_verification_email(
    grant: AccessGrant = Depends(get_current_grant),
    service: EmailVerificationService = Depends(get_email_verification_service),
) -> VerificationSentResponse:
    """
    Send a fresh verification link.

    Any earlier link stops working. Returns 409 once the email is verified.
    """
    sent = await service.send(grant.owner_object_id)
    return VerificationSentResponse(
        success=True,
        message="Verification email sent",
        expires_at=sent.expires_at,
    )


@email_router.post("/verify", response_model=VerifyEmailResponse)
async def verify_email(
    body: VerifyEmailRequest,
    service: EmailVerificationService = Depends(get_email_verification_service),
) -> VerifyEmailResponse:
    await service.verify(body.token)
    return VerifyEmailResponse(
        success=True, message="Email verified", email_verified=True
    )


@email_router.get("/status", response_model=EmailVerificationStatusResponse)
async def email_verification_status(
    grant: AccessGrant = Depends(get_current_grant),
    service: EmailVerificationService = Depends(get_email_verification_service),
) -> EmailVerificationStatusResponse:
    status = await service.status(grant.owner_object_id)
    return EmailVerificationStatusResponse(
        email=status.email,
        email_verified=status.email_verified,
        pending=status.pending,
    )


@phone_router.post("/send", response_model=PhoneOtpSentResponse)
async def send_phone_otp(
    body: SendPhoneOtpRequest,
    grant: AccessGrant = Depends(get_current_grant),
    service: PhoneVerificationService = Depends(get_phone_verification_service),
) -> PhoneOtpSentResponse:
    """
    Send a 6-digit code to a Vietnamese mobile number.

    Accepts 0xxxxxxxxx, 84xxxxxxxxx and +84xxxxxxxxx. The code expires after
    10 minutes and allows 5 wrong guesses.
    """
    sent = await service.request_otp(grant.owner_object_id, body.phone)
    return PhoneOtpSentResponse(
        success=True,
        phone=sent.phone,
        expires_at=sent.expires_at,
        sms_sent=sent.sms_sent,
    )


@phone_router.post("/verify", response_model=VerifyPhoneResponse)
async def verify_phone(
    body: VerifyPhoneRequest,
    grant: AccessGrant = Depends(get_current_grant),
    service: PhoneVerificationService = Depends(get_phone_verification_service),
) -> VerifyPhoneResponse:
    phone = await service.verify(grant.owner_object_id, body.otp)
    return VerifyPhoneResponse(success=True, phone=mask_phone(phone), phone_verified=True)


@phone_router.get("/status", response_model=PhoneVerificationStatusResponse)
async def phone_verification_status(
    grant: AccessGrant = Depends(get_current_grant),
    service: PhoneVerificationService = Depends(get_phone_verification_service),
) -> PhoneVerificationStatusResponse:
    status = await service.status(grant.owner_object_id)
    return PhoneVerificationStatusResponse(
        phone=mask_phone(status.phone) if status.phone else None,
        phone_verified=status.phone_verified,
    )
