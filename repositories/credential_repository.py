"""
MongoDB-backed credential store.

Maps to the `credentials` collection. Two partial unique indexes, both
filtered on consumed == false, carry the lifecycle invariants:

- (owner_id, purpose): at most one live credential per owner and purpose
- token_hash: a live secret hash identifies exactly one credential

consume() and record_failed_attempt() are single find_one_and_update calls
whose filters restate the usability conditions, so they act as
compare-and-set operations.

Expired documents are kept for *expired_grace* after expires_at so that
count_recent() still sees credentials issued inside the issue window.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from credentials.errors import (
    ActiveCredentialConflict,
    SecretCollision,
    StorageFailure,
)
from credentials.policy import Purpose
from schemas.models.credential import CredentialDoc
from shared.logging import get_logger

log = get_logger(__name__)

COLLECTION_NAME = "credentials"

ACTIVE_KEY_INDEX = "one_live_per_owner_purpose"
LIVE_HASH_INDEX = "live_token_hash"


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        log.error(
            "credential_store_error",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise StorageFailure(f"credential store {operation} failed") from e


class MongoCredentialStore:
    def __init__(self, db, expired_grace: timedelta = timedelta(0)) -> None:
        self._col = db[COLLECTION_NAME]
        self._expired_grace = expired_grace

    async def ensure_indexes(self) -> None:
        with _storage_errors("ensure_indexes"):
            await self._col.create_index(
                [("owner_id", ASCENDING), ("purpose", ASCENDING)],
                name=ACTIVE_KEY_INDEX,
                unique=True,
                partialFilterExpression={"consumed": False},
            )
            await self._col.create_index(
                [("token_hash", ASCENDING)],
                name=LIVE_HASH_INDEX,
                unique=True,
                partialFilterExpression={"consumed": False},
            )
            await self._col.create_index(
                [("token_hash", ASCENDING), ("purpose", ASCENDING)]
            )
            await self._col.create_index(
                [
                    ("owner_id", ASCENDING),
                    ("purpose", ASCENDING),
                    ("consumed", ASCENDING),
                    ("created_at", DESCENDING),
                ]
            )
            # TTL: MongoDB removes documents once expires_at plus the grace passes
            await self._col.create_index(
                [("expires_at", ASCENDING)],
                expireAfterSeconds=int(self._expired_grace.total_seconds()),
            )

    async def insert_active(self, doc: CredentialDoc) -> CredentialDoc:
        data = doc.to_mongo()
        try:
            result = await self._col.insert_one(data)
        except DuplicateKeyError as e:
            key_pattern = (e.details or {}).get("keyPattern", {})
            if "token_hash" in key_pattern or LIVE_HASH_INDEX in str(e):
                raise SecretCollision() from e
            raise ActiveCredentialConflict() from e
        except PyMongoError as e:
            log.error(
                "credential_store_error",
                operation="insert_active",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageFailure("credential store insert_active failed") from e
        return doc.model_copy(update={"id": result.inserted_id})

    async def revoke_active(
        self, owner_id: ObjectId, purpose: Purpose, now: datetime
    ) -> int:
        with _storage_errors("revoke_active"):
            result = await self._col.update_many(
                {"owner_id": owner_id, "purpose": Purpose(purpose).value, "consumed": False},
                {"$set": {"consumed": True, "consumed_at": now}},
            )
        return result.modified_count

    async def find_by_hash(
        self,
        token_hash: str,
        purpose: Purpose,
        owner_id: Optional[ObjectId] = None,
    ) -> Optional[CredentialDoc]:
        query: dict = {"token_hash": token_hash, "purpose": Purpose(purpose).value}
        if owner_id is not None:
            query["owner_id"] = owner_id
        with _storage_errors("find_by_hash"):
            data = await self._col.find_one(
                query, sort=[("consumed", ASCENDING), ("created_at", DESCENDING)]
            )
        return CredentialDoc.from_mongo(data)

    async def find_by_id(self, credential_id: ObjectId) -> Optional[CredentialDoc]:
        with _storage_errors("find_by_id"):
            data = await self._col.find_one({"_id": credential_id})
        return CredentialDoc.from_mongo(data)

    async def find_pending(
        self, owner_id: ObjectId, purpose: Purpose
    ) -> Optional[CredentialDoc]:
        with _storage_errors("find_pending"):
            data = await self._col.find_one(
                {"owner_id": owner_id, "purpose": Purpose(purpose).value, "consumed": False},
                sort=[("created_at", DESCENDING)],
            )
        return CredentialDoc.from_mongo(data)

    async def consume(
        self,
        credential_id: ObjectId,
        now: datetime,
        max_attempts: Optional[int] = None,
    ) -> Optional[CredentialDoc]:
        query: dict = {
            "_id": credential_id,
            "consumed": False,
            "expires_at": {"$gt": now},
        }
        if max_attempts is not None:
            query["attempts"] = {"$lt": max_attempts}
        with _storage_errors("consume"):
            data = await self._col.find_one_and_update(
                query,
                {"$set": {"consumed": True, "consumed_at": now}},
                return_document=ReturnDocument.AFTER,
            )
        return CredentialDoc.from_mongo(data)

    async def record_failed_attempt(
        self, credential_id: ObjectId, max_attempts: int
    ) -> Optional[CredentialDoc]:
        with _storage_errors("record_failed_attempt"):
            data = await self._col.find_one_and_update(
                {
                    "_id": credential_id,
                    "consumed": False,
                    "attempts": {"$lt": max_attempts},
                },
                {"$inc": {"attempts": 1}},
                return_document=ReturnDocument.AFTER,
            )
        return CredentialDoc.from_mongo(data)

    async def count_active(
        self, owner_id: ObjectId, purpose: Purpose, now: datetime
    ) -> int:
        with _storage_errors("count_active"):
            return await self._col.count_documents(
                {
                    "owner_id": owner_id,
                    "purpose": Purpose(purpose).value,
                    "consumed": False,
                    "expires_at": {"$gt": now},
                }
            )

    async def count_recent(
        self, owner_id: ObjectId, purpose: Purpose, since: datetime
    ) -> int:
        with _storage_errors("count_recent"):
            return await self._col.count_documents(
                {
                    "owner_id": owner_id,
                    "purpose": Purpose(purpose).value,
                    "created_at": {"$gte": since},
                }
            )

    async def delete_expired(self, now: datetime, consumed_before: datetime) -> int:
        with _storage_errors("delete_expired"):
            result = await self._col.delete_many(
                {
                    "$or": [
                        {"expires_at": {"$lte": now}},
                        {"consumed": True, "consumed_at": {"$lte": consumed_before}},
                    ]
                }
            )
        return result.deleted_count
