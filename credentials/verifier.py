"""
Credential verifier.

Checks run in a fixed order and the first failure decides the error:
existence → not consumed → attempts below limit → not expired.

verify() consumes the credential with a conditional update, so of two
concurrent verifications of the same secret exactly one succeeds.
peek() runs the same checks without writing anything.

For attempt-limited purposes (OTPs) a secret that matches nothing live counts
as a failed attempt against the owner's pending credential, if there is one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId

from credentials.errors import (
    AlreadyConsumed,
    AttemptsExhausted,
    ExpiredSecret,
    InvalidSecret,
)
from credentials.policy import LifecycleConfig, Purpose, PurposePolicy, as_utc
from credentials.store import CredentialStore
from schemas.models.credential import CredentialDoc
from shared.crypto import hash_secret
from shared.logging import get_logger, hash_prefix

log = get_logger(__name__)

GENERIC_INVALID = "Invalid or expired code"


class CredentialVerifier:
    def __init__(
        self,
        store: CredentialStore,
        config: Optional[LifecycleConfig] = None,
    ) -> None:
        self._store = store
        self._config = config or LifecycleConfig()

    async def verify(
        self,
        raw_secret: str,
        purpose: Purpose,
        owner_id: Optional[ObjectId] = None,
    ) -> CredentialDoc:
        """Validate and consume *raw_secret*; returns the consumed credential."""
        purpose = Purpose(purpose)
        policy = self._config.policy_for(purpose)
        doc = await self._lookup(raw_secret, purpose, policy, owner_id)

        now = self._config.now()
        self._check_usable(doc, policy, now)

        consumed = await self._store.consume(doc.id, now, policy.max_attempts)
        if consumed is None:
            # Lost a race with another verify/revoke; report the state we lost to
            current = await self._store.find_by_id(doc.id)
            if current is not None:
                self._check_usable(current, policy, now)
            log.warning(
                "credential_verify_failed",
                purpose=purpose.value,
                credential_id=str(doc.id),
                reason="consume_race_lost",
            )
            raise AlreadyConsumed(GENERIC_INVALID)

        log.info(
            "credential_consumed",
            purpose=purpose.value,
            owner_id=str(consumed.owner_id),
            credential_id=str(consumed.id),
        )
        return consumed

    async def peek(
        self,
        raw_secret: str,
        purpose: Purpose,
        owner_id: Optional[ObjectId] = None,
    ) -> CredentialDoc:
        """Validate *raw_secret* without consuming it or counting attempts."""
        purpose = Purpose(purpose)
        policy = self._config.policy_for(purpose)
        doc = await self._store.find_by_hash(hash_secret(raw_secret), purpose, owner_id)
        if doc is None:
            log.info("credential_peek_failed", purpose=purpose.value, reason="not_found")
            raise InvalidSecret(GENERIC_INVALID)
        self._check_usable(doc, policy, self._config.now())
        return doc

    async def revoke(self, raw_secret: str, purpose: Purpose) -> bool:
        """Consume the credential behind *raw_secret* without using it.

        Returns False when nothing live matched; revoking twice is harmless.
        """
        purpose = Purpose(purpose)
        doc = await self._store.find_by_hash(hash_secret(raw_secret), purpose)
        if doc is None or doc.consumed:
            return False
        revoked = await self._store.consume(doc.id, self._config.now())
        if revoked is not None:
            log.info(
                "credential_revoked",
                purpose=purpose.value,
                owner_id=str(doc.owner_id),
                credential_id=str(doc.id),
            )
        return revoked is not None

    async def revoke_all(self, owner_id: ObjectId, purpose: Purpose) -> int:
        purpose = Purpose(purpose)
        count = await self._store.revoke_active(owner_id, purpose, self._config.now())
        log.info(
            "credentials_revoked",
            owner_id=str(owner_id),
            purpose=purpose.value,
            count=count,
        )
        return count

    async def count_active(self, owner_id: ObjectId, purpose: Purpose) -> int:
        return await self._store.count_active(
            owner_id, Purpose(purpose), self._config.now()
        )

    async def _lookup(
        self,
        raw_secret: str,
        purpose: Purpose,
        policy: PurposePolicy,
        owner_id: Optional[ObjectId],
    ) -> CredentialDoc:
        token_hash = hash_secret(raw_secret)
        doc = await self._store.find_by_hash(token_hash, purpose, owner_id)
        counts_as_miss = policy.attempt_limited and owner_id is not None
        if doc is not None and not (doc.consumed and counts_as_miss):
            return doc

        # For OTPs an old, already used or replaced code is just another wrong guess
        log.info(
            "credential_verify_failed",
            purpose=purpose.value,
            owner_id=str(owner_id) if owner_id else None,
            token_hash_prefix=hash_prefix(token_hash),
            reason="not_found" if doc is None else "not_live",
        )
        if counts_as_miss:
            await self._record_miss(owner_id, purpose, policy)
        raise InvalidSecret(GENERIC_INVALID)

    async def _record_miss(
        self, owner_id: ObjectId, purpose: Purpose, policy: PurposePolicy
    ) -> None:
        """Charge a wrong guess to the owner's pending OTP; always raises."""
        pending = await self._store.find_pending(owner_id, purpose)
        if pending is None or as_utc(pending.expires_at) <= self._config.now():
            raise InvalidSecret(GENERIC_INVALID)

        updated = await self._store.record_failed_attempt(pending.id, policy.max_attempts)
        if updated is None:
            log.warning(
                "credential_verify_failed",
                purpose=purpose.value,
                owner_id=str(owner_id),
                reason="attempts_exhausted",
            )
            raise AttemptsExhausted("Too many attempts, please request a new one")

        remaining = max(policy.max_attempts - updated.attempts, 0)
        log.warning(
            "credential_attempt_failed",
            purpose=purpose.value,
            owner_id=str(owner_id),
            attempts=updated.attempts,
            remaining_attempts=remaining,
        )
        raise InvalidSecret(GENERIC_INVALID, remaining_attempts=remaining)

    def _check_usable(
        self, doc: CredentialDoc, policy: PurposePolicy, now: datetime
    ) -> None:
        if doc.consumed:
            log.info(
                "credential_verify_failed",
                credential_id=str(doc.id),
                reason="already_consumed",
            )
            raise AlreadyConsumed(GENERIC_INVALID)
        if policy.attempt_limited and doc.attempts >= policy.max_attempts:
            log.info(
                "credential_verify_failed",
                credential_id=str(doc.id),
                reason="attempts_exhausted",
            )
            raise AttemptsExhausted("Too many attempts, please request a new one")
        if as_utc(doc.expires_at) <= now:
            log.info(
                "credential_verify_failed",
                credential_id=str(doc.id),
                reason="expired",
            )
            raise ExpiredSecret("Code has expired, please request a new one")
