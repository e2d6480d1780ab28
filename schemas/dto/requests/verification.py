"""
Request DTOs for email and phone verification endpoints.

VerifyEmailRequest    — POST /email-verification/verify
SendPhoneOtpRequest   — POST /phone-verification/send
VerifyPhoneRequest    — POST /phone-verification/verify
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.validators import is_hex_token, is_otp_code


class VerifyEmailRequest(BaseModel):
    """Request body for POST /email-verification/verify.

    ``token`` is the 64-char hex value carried by the emailed link.
    """

    model_config = ConfigDict(populate_by_name=True)

    token: str

    @field_validator("token", mode="after")
    @classmethod
    def _token_format(cls, v: str) -> str:
        if not is_hex_token(v):
            raise ValueError("token must be a 64-character hex string")
        return v


class SendPhoneOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str = Field(min_length=1)


class VerifyPhoneRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    otp: str

    @field_validator("otp", mode="after")
    @classmethod
    def _otp_format(cls, v: str) -> str:
        if not is_otp_code(v):
            raise ValueError("otp must be 6 digits")
        return v
