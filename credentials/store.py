"""CredentialStore protocol: issuer, verifier, rotator and sweeper depend on this.

Implementations must make consume() and record_failed_attempt() conditional
single-document updates, and must reject a second live credential for the
same (owner, purpose) in insert_active().
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from bson import ObjectId

from credentials.policy import Purpose
from schemas.models.credential import CredentialDoc


class CredentialStore(Protocol):
    async def insert_active(self, doc: CredentialDoc) -> CredentialDoc:
        """Insert *doc*; raises SecretCollision or ActiveCredentialConflict."""
        ...

    async def revoke_active(
        self, owner_id: ObjectId, purpose: Purpose, now: datetime
    ) -> int: ...

    async def find_by_hash(
        self,
        token_hash: str,
        purpose: Purpose,
        owner_id: Optional[ObjectId] = None,
    ) -> Optional[CredentialDoc]: ...

    async def find_by_id(self, credential_id: ObjectId) -> Optional[CredentialDoc]: ...

    async def find_pending(
        self, owner_id: ObjectId, purpose: Purpose
    ) -> Optional[CredentialDoc]: ...

    async def consume(
        self,
        credential_id: ObjectId,
        now: datetime,
        max_attempts: Optional[int] = None,
    ) -> Optional[CredentialDoc]: ...

    async def record_failed_attempt(
        self, credential_id: ObjectId, max_attempts: int
    ) -> Optional[CredentialDoc]: ...

    async def count_active(
        self, owner_id: ObjectId, purpose: Purpose, now: datetime
    ) -> int: ...

    async def count_recent(
        self, owner_id: ObjectId, purpose: Purpose, since: datetime
    ) -> int:
        """Credentials of any state created for the key at or after *since*."""
        ...

    async def delete_expired(self, now: datetime, consumed_before: datetime) -> int: ...
