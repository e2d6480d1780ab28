"""
Credential lifecycle error taxonomy.

The core raises these and nothing else; it has no notion of HTTP status
codes. errors.credential_error_to_app_error() translates them at the edge.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CredentialErrorKind(str, Enum):
    OWNER_NOT_FOUND = "owner_not_found"
    OWNER_INACTIVE = "owner_inactive"
    ALREADY_SATISFIED = "already_satisfied"
    INVALID_SECRET = "invalid_secret"
    EXPIRED_SECRET = "expired_secret"
    ALREADY_CONSUMED = "already_consumed"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    ISSUE_RATE_LIMITED = "issue_rate_limited"
    STORAGE_FAILURE = "storage_failure"


class CredentialError(Exception):
    """Base for every failure the lifecycle core reports to its caller."""

    kind: CredentialErrorKind = CredentialErrorKind.STORAGE_FAILURE

    def __init__(
        self,
        message: str = "",
        *,
        remaining_attempts: Optional[int] = None,
    ) -> None:
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value
        self.remaining_attempts = remaining_attempts


class OwnerNotFound(CredentialError):
    kind = CredentialErrorKind.OWNER_NOT_FOUND


class OwnerInactive(CredentialError):
    kind = CredentialErrorKind.OWNER_INACTIVE


class AlreadySatisfied(CredentialError):
    kind = CredentialErrorKind.ALREADY_SATISFIED


class InvalidSecret(CredentialError):
    kind = CredentialErrorKind.INVALID_SECRET


class ExpiredSecret(CredentialError):
    kind = CredentialErrorKind.EXPIRED_SECRET


class AlreadyConsumed(CredentialError):
    kind = CredentialErrorKind.ALREADY_CONSUMED


class AttemptsExhausted(CredentialError):
    kind = CredentialErrorKind.ATTEMPTS_EXHAUSTED

    def __init__(self, message: str = "") -> None:
        super().__init__(message, remaining_attempts=0)


class IssueRateLimited(CredentialError):
    kind = CredentialErrorKind.ISSUE_RATE_LIMITED


class StorageFailure(CredentialError):
    kind = CredentialErrorKind.STORAGE_FAILURE


# Raised by stores to the issuer only; never escape the core.


class SecretCollision(Exception):
    """The secret hash is already held by another live credential."""


class ActiveCredentialConflict(Exception):
    """Another live credential was inserted for the same (owner, purpose)."""
