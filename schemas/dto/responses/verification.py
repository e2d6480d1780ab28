"""
Response DTOs for email and phone verification endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class VerificationSentResponse(BaseModel):
    """Response body for POST /email-verification/send (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    expires_at: datetime


class VerifyEmailResponse(BaseModel):
    """Response body for POST /email-verification/verify (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    email_verified: bool


class EmailVerificationStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    email_verified: bool
    pending: bool


class PhoneOtpSentResponse(BaseModel):
    """Response body for POST /phone-verification/send (200).

    ``phone`` is masked; ``sms_sent`` is False when the provider rejected the
    message, in which case the client may request a new code.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    phone: str
    expires_at: datetime
    sms_sent: bool


class VerifyPhoneResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    phone: str
    phone_verified: bool


class PhoneVerificationStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None
    phone_verified: bool
