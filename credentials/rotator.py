"""
Refresh-session rotation.

Ordering is consume-old, then issue-new. If the insert fails after the old
session was consumed the caller gets the error and the user has to log in
again; there is never a window with two live sessions for one owner.
"""

from __future__ import annotations

from typing import Any, Optional

from credentials.errors import AlreadyConsumed, CredentialError
from credentials.issuer import CredentialIssuer, IssuedCredential
from credentials.policy import LifecycleConfig, Purpose
from credentials.store import CredentialStore
from credentials.verifier import GENERIC_INVALID, CredentialVerifier
from shared.logging import get_logger

log = get_logger(__name__)


class RefreshRotator:
    def __init__(
        self,
        store: CredentialStore,
        verifier: CredentialVerifier,
        issuer: CredentialIssuer,
        config: Optional[LifecycleConfig] = None,
    ) -> None:
        self._store = store
        self._verifier = verifier
        self._issuer = issuer
        self._config = config or LifecycleConfig()

    async def rotate(
        self, raw_refresh_secret: str, context: Optional[dict[str, Any]] = None
    ) -> IssuedCredential:
        old = await self._verifier.peek(raw_refresh_secret, Purpose.REFRESH_SESSION)

        consumed = await self._store.consume(old.id, self._config.now())
        if consumed is None:
            log.warning(
                "refresh_rotation_failed",
                owner_id=str(old.owner_id),
                credential_id=str(old.id),
                reason="consumed_concurrently",
            )
            raise AlreadyConsumed(GENERIC_INVALID)

        try:
            issued = await self._issuer.issue(
                old.owner_id, Purpose.REFRESH_SESSION, context
            )
        except CredentialError as e:
            log.error(
                "refresh_rotation_insert_failed",
                owner_id=str(old.owner_id),
                old_credential_id=str(old.id),
                error_kind=e.kind.value,
            )
            raise

        log.info(
            "refresh_rotated",
            owner_id=str(old.owner_id),
            old_credential_id=str(old.id),
            new_credential_id=str(issued.credential.id),
        )
        return issued
