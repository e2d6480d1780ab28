"""
User document model.

Maps to the `users` MongoDB collection.

Only the fields the credential flows read or write are modelled; the rest of
a GreenGrow profile (location, farmer profile, stats) passes through
untouched because the repository updates with $set on named fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict

from schemas.models.base import MongoBaseModel

ROLE_USER = "user"
ROLE_ADMIN = "admin"

STATUS_ACTIVE = "active"
STATUS_BLOCKED = "blocked"


class UserDoc(MongoBaseModel):
    """
    Document model for the `users` collection.

    status values: active, blocked
    role values: user, admin
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    email: str
    password_hash: Optional[str] = None
    role: str = ROLE_USER
    status: str = STATUS_ACTIVE
    email_verified: bool = False
    phone: Optional[str] = None
    phone_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE
