"""
Logger factory for GreenGrow.

get_logger(): structlog logger, call it with an event name and keyword context
    >>> log = get_logger(__name__)
    >>> log.info("credential_issued", owner_id="...", purpose="email-verify")

log_with_context(): bind fields for every subsequent call on the returned logger
"""

from __future__ import annotations

import structlog
from structlog.stdlib import BoundLogger


def get_logger(name: str) -> BoundLogger:
    return structlog.get_logger(name)


def log_with_context(logger: BoundLogger, **context) -> BoundLogger:
    """Bind context (owner_id, request_id, ...) to a logger."""
    return logger.bind(**context)


def hash_prefix(token_hash: str) -> str:
    """First 12 hex chars of a stored hash, enough to correlate log lines."""
    return token_hash[:12]
