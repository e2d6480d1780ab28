#!/usr/bin/env python3
"""
Credential Expiry Sweeper Runner

Runs the expiry sweeper as a standalone process, for deployments that start
the API with RUN_SWEEPER=false and several workers.
"""

import asyncio
import os
import sys

# Ensure project root is on the path
ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT_DIR)

from pymongo.asynchronous.mongo_client import AsyncMongoClient  # noqa: E402

from app import build_sweeper  # noqa: E402
from config import AppSettings  # noqa: E402
from repositories.credential_repository import MongoCredentialStore  # noqa: E402
from shared.logging import get_logger  # noqa: E402
from shared.logging_config import setup_logging  # noqa: E402

log = get_logger("start_sweeper")


async def run_sweeper(settings: AppSettings) -> None:
    client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri, tz_aware=True)
    try:
        store = MongoCredentialStore(
            client[settings.db.db_name],
            expired_grace=settings.credentials.issue_window,
        )
        await store.ensure_indexes()
        sweeper = build_sweeper(store, settings, settings.credentials.lifecycle_config())
        await sweeper.run()
    finally:
        await client.close()


def main():
    """Main function to start the expiry sweeper"""
    settings = AppSettings()
    setup_logging(settings.logging)

    try:
        asyncio.run(run_sweeper(settings))
    except KeyboardInterrupt:
        log.info("sweeper_stopped_by_user")
    except Exception as e:
        log.error("sweeper_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
