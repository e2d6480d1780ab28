"""
Request DTOs for password reset and password change endpoints.

RequestPasswordResetRequest  — POST /password-reset/request
ValidateResetTokenRequest    — POST /password-reset/validate
ResetPasswordRequest         — POST /password-reset/reset
VerifyPasswordChangeRequest  — POST /password-change/verify
ChangePasswordRequest        — POST /password-change/change
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from shared.validators import is_hex_token, is_otp_code


def _hex_token(v: str, name: str) -> str:
    if not is_hex_token(v):
        raise ValueError(f"{name} must be a 64-character hex string")
    return v


class RequestPasswordResetRequest(BaseModel):
    """Request body for POST /password-reset/request."""

    model_config = ConfigDict(populate_by_name=True)

    email: str


class ValidateResetTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str

    @field_validator("token", mode="after")
    @classmethod
    def _token_format(cls, v: str) -> str:
        return _hex_token(v, "token")


class ResetPasswordRequest(BaseModel):
    """Request body for POST /password-reset/reset."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    new_password: str

    @field_validator("token", mode="after")
    @classmethod
    def _token_format(cls, v: str) -> str:
        return _hex_token(v, "token")


class VerifyPasswordChangeRequest(BaseModel):
    """Request body for POST /password-change/verify.

    ``otp`` is the 6-digit code emailed by /password-change/generate.
    """

    model_config = ConfigDict(populate_by_name=True)

    otp: str

    @field_validator("otp", mode="after")
    @classmethod
    def _otp_format(cls, v: str) -> str:
        if not is_otp_code(v):
            raise ValueError("otp must be 6 digits")
        return v


class ChangePasswordRequest(BaseModel):
    """Request body for POST /password-change/change."""

    model_config = ConfigDict(populate_by_name=True)

    grant_token: str
    current_password: str
    new_password: str

    @field_validator("grant_token", mode="after")
    @classmethod
    def _grant_token_format(cls, v: str) -> str:
        return _hex_token(v, "grant_token")
