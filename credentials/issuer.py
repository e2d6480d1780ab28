"""
Credential issuer.

issue() generates a raw secret, stores only its hash, and guarantees that
the new credential ends up as the sole live one for its (owner, purpose):

1. resolve the owner through the PrincipalDirectory (not found / blocked /
   already satisfied are refused before anything is written)
2. under the per-key lock: refuse if the purpose's issue limit is already
   reached within the issue window, else revoke every live credential for
   the key and insert the new one
3. the store's active-marker index rejects a second live credential written
   concurrently by another process; the issuer then revokes and retries, so
   the last writer wins
4. a hash collision with another live credential regenerates the secret
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId

from credentials.errors import (
    ActiveCredentialConflict,
    AlreadySatisfied,
    IssueRateLimited,
    OwnerInactive,
    OwnerNotFound,
    SecretCollision,
    StorageFailure,
)
from credentials.locks import KeyedLock
from credentials.policy import LifecycleConfig, Purpose
from credentials.principals import PrincipalDirectory
from credentials.store import CredentialStore
from schemas.models.credential import CredentialDoc
from shared.crypto import hash_secret
from shared.generators import generate_secret
from shared.logging import get_logger, hash_prefix, log_with_context

log = get_logger(__name__)


@dataclass(frozen=True)
class IssuedCredential:
    """The raw secret (deliver it, never store it) and the stored record."""

    raw_secret: str
    credential: CredentialDoc

    @property
    def expires_at(self) -> datetime:
        return self.credential.expires_at


class CredentialIssuer:
    def __init__(
        self,
        store: CredentialStore,
        principals: PrincipalDirectory,
        config: Optional[LifecycleConfig] = None,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        self._store = store
        self._principals = principals
        self._config = config or LifecycleConfig()
        self._locks = locks or KeyedLock()

    async def issue(
        self,
        owner_id: ObjectId,
        purpose: Purpose,
        context: Optional[dict[str, Any]] = None,
    ) -> IssuedCredential:
        purpose = Purpose(purpose)
        policy = self._config.policy_for(purpose)

        clog = log_with_context(log, owner_id=str(owner_id), purpose=purpose.value)

        principal = await self._principals.resolve(owner_id)
        if principal is None:
            clog.warning("credential_issue_refused", reason="owner_not_found")
            raise OwnerNotFound("Owner not found")
        if not principal.is_active:
            clog.warning("credential_issue_refused", reason="owner_inactive")
            raise OwnerInactive("Account is blocked")
        if purpose in principal.fulfilled:
            clog.info("credential_issue_refused", reason="already_satisfied")
            raise AlreadySatisfied(f"{purpose.value} already satisfied")

        async with self._locks.hold((str(owner_id), purpose.value)):
            if policy.issue_limited:
                await self._check_issue_rate(owner_id, purpose, policy.issue_limit, clog)

            for attempt in range(1, self._config.max_secret_collisions + 1):
                raw_secret = generate_secret(policy.secret_format)
                now = self._config.now()
                doc = CredentialDoc(
                    owner_id=owner_id,
                    purpose=purpose,
                    token_hash=hash_secret(raw_secret),
                    created_at=now,
                    expires_at=now + policy.ttl,
                    context=dict(context or {}),
                )

                revoked = await self._store.revoke_active(owner_id, purpose, now)
                try:
                    stored = await self._store.insert_active(doc)
                except SecretCollision:
                    clog.warning("credential_secret_collision", attempt=attempt)
                    continue
                except ActiveCredentialConflict:
                    clog.info("credential_concurrent_issue", attempt=attempt)
                    continue

                clog.info(
                    "credential_issued",
                    credential_id=str(stored.id),
                    token_hash_prefix=hash_prefix(stored.token_hash),
                    revoked_previous=revoked,
                    expires_at=stored.expires_at.isoformat(),
                )
                return IssuedCredential(raw_secret=raw_secret, credential=stored)

        clog.error("credential_issue_failed", reason="retries_exhausted")
        raise StorageFailure("Could not store a new credential")

    async def _check_issue_rate(
        self, owner_id: ObjectId, purpose: Purpose, limit: int, clog
    ) -> None:
        since = self._config.now() - self._config.issue_window
        recent = await self._store.count_recent(owner_id, purpose, since)
        if recent >= limit:
            clog.warning("credential_issue_refused", reason="rate_limited", count=recent)
            raise IssueRateLimited("Too many requests, please try again later")
