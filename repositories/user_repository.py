"""
MongoDB-backed user repository.

Maps to the `users` collection. Doubles as the PrincipalDirectory the
credential issuer consults before writing anything.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from credentials.policy import Purpose
from credentials.principals import Principal
from errors import ConflictError
from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)

COLLECTION_NAME = "users"


class UserRepository:
    def __init__(self, db) -> None:
        self._col = db[COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        await self._col.create_index([("phone", ASCENDING), ("phone_verified", ASCENDING)])

    async def resolve(self, owner_id: ObjectId) -> Optional[Principal]:
        user = await self.find_by_id(owner_id)
        if user is None:
            return None
        fulfilled = {Purpose.EMAIL_VERIFY} if user.email_verified else set()
        return Principal(
            owner_id=user.id,
            role=user.role,
            is_active=user.is_active,
            fulfilled=frozenset(fulfilled),
        )

    async def find_by_id(self, user_id: ObjectId) -> Optional[UserDoc]:
        data = await self._col.find_one({"_id": ObjectId(user_id)})
        return UserDoc.from_mongo(data)

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        data = await self._col.find_one({"email": email.strip().lower()})
        return UserDoc.from_mongo(data)

    async def find_verified_phone_owner(self, phone: str) -> Optional[UserDoc]:
        data = await self._col.find_one({"phone": phone, "phone_verified": True})
        return UserDoc.from_mongo(data)

    async def create(self, user: UserDoc) -> UserDoc:
        now = datetime.now(timezone.utc)
        user = user.model_copy(
            update={
                "email": user.email.strip().lower(),
                "created_at": user.created_at or now,
                "updated_at": now,
            }
        )
        try:
            result = await self._col.insert_one(user.to_mongo())
        except DuplicateKeyError:
            # Race condition: email was registered between the check and insert
            log.warning("user_create_failed", reason="duplicate_email")
            raise ConflictError("Email is already registered", field="email")
        return user.model_copy(update={"id": result.inserted_id})

    async def update_fields(self, user_id: ObjectId, **fields) -> bool:
        fields["updated_at"] = datetime.now(timezone.utc)
        result = await self._col.update_one(
            {"_id": ObjectId(user_id)}, {"$set": fields}
        )
        return result.matched_count == 1

    async def set_password_hash(self, user_id: ObjectId, password_hash: str) -> bool:
        return await self.update_fields(user_id, password_hash=password_hash)

    async def mark_email_verified(self, user_id: ObjectId) -> bool:
        return await self.update_fields(user_id, email_verified=True)

    async def mark_phone_verified(self, user_id: ObjectId, phone: str) -> bool:
        return await self.update_fields(user_id, phone=phone, phone_verified=True)

    async def touch_last_login(self, user_id: ObjectId) -> bool:
        return await self.update_fields(
            user_id, last_login_at=datetime.now(timezone.utc)
        )
