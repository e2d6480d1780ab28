"""
Response DTOs for password reset and password change endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ResetTokenValidResponse(BaseModel):
    """Response body for POST /password-reset/validate (200)."""

    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    email: str
    expires_at: datetime


class PasswordChangeOtpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    expires_at: datetime


class PasswordChangeGrantResponse(BaseModel):
    """Response body for POST /password-change/verify (200).

    ``grant_token`` authorises exactly one call to /password-change/change.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    grant_token: str
    expires_at: datetime
