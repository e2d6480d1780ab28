"""
Expiry sweeper.

Deletes credentials whose expires_at has passed, plus consumed credentials
older than the retention window. Both are kept for *expired_grace* so the
issue rate limit can still count them. Verification never relies on this: the
verifier re-checks expires_at on every call, and MongoDB's TTL index on
expires_at removes documents on its own schedule as well.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

from credentials.errors import StorageFailure
from credentials.policy import LifecycleConfig
from credentials.store import CredentialStore
from shared.logging import get_logger

log = get_logger(__name__)


class ExpirySweeper:
    def __init__(
        self,
        store: CredentialStore,
        config: Optional[LifecycleConfig] = None,
        interval_seconds: float = 300.0,
        consumed_retention: timedelta = timedelta(days=1),
        expired_grace: timedelta = timedelta(0),
    ) -> None:
        self._store = store
        self._config = config or LifecycleConfig()
        self._interval = interval_seconds
        self._retention = max(consumed_retention, expired_grace)
        self._grace = expired_grace
        self._stopping = asyncio.Event()

    async def sweep_once(self) -> int:
        now = self._config.now()
        deleted = await self._store.delete_expired(
            now - self._grace, now - self._retention
        )
        if deleted:
            log.info("credentials_swept", deleted=deleted)
        return deleted

    async def run(self) -> None:
        """Sweep every interval until stop() is called.

        Storage failures are logged and the next sweep is attempted on
        schedule; a failed sweep only delays cleanup.
        """
        log.info("credential_sweeper_started", interval_seconds=self._interval)
        while not self._stopping.is_set():
            try:
                await self.sweep_once()
            except StorageFailure as e:
                log.error("credential_sweep_failed", error=str(e))
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        log.info("credential_sweeper_stopped")

    def stop(self) -> None:
        self._stopping.set()
