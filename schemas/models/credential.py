"""
Credential document model.

Maps to the `credentials` MongoDB collection.

One parameterized record type covers refresh sessions, email verification
links, password reset links, password-change OTPs and grants, and phone OTPs.
token_hash stores SHA-256(raw secret); the raw secret is never stored.
consumed flips false → true exactly once (successful use or revocation).
attempts counts failed guesses for OTP purposes and saturates at the limit.
context holds purpose-specific metadata (user agent/IP, target phone).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field

from credentials.policy import Purpose
from schemas.models.base import MongoBaseModel, PyObjectId


class CredentialDoc(MongoBaseModel):
    """Document model for the `credentials` collection."""

    model_config = ConfigDict(use_enum_values=True)

    owner_id: PyObjectId
    purpose: Purpose
    token_hash: str
    created_at: datetime
    expires_at: datetime
    consumed: bool = False
    consumed_at: Optional[datetime] = None
    attempts: int = Field(default=0, ge=0)
    context: dict[str, Any] = Field(default_factory=dict)
