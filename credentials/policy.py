"""
Credential purposes and their lifecycle policies.

Every stored credential carries exactly one Purpose. The purpose decides the
secret format handed to the user, how long the credential lives, and whether
failed verifications are counted against it, and how many credentials an
owner may be sent within the issue window.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Mapping, Optional


class Purpose(str, Enum):
    REFRESH_SESSION = "refresh-session"
    EMAIL_VERIFY = "email-verify"
    PASSWORD_RESET = "password-reset"
    PASSWORD_CHANGE_OTP = "password-change-otp"
    PASSWORD_CHANGE_GRANT = "password-change-grant"
    PHONE_VERIFY_OTP = "phone-verify-otp"


class SecretFormat(str, Enum):
    HEX_TOKEN = "hex_token"  # 32 random bytes, hex encoded
    NUMERIC_OTP = "numeric_otp"  # 6 digits, 100000-999999


@dataclass(frozen=True)
class PurposePolicy:
    ttl: timedelta
    secret_format: SecretFormat
    max_attempts: Optional[int] = None
    issue_limit: Optional[int] = None

    @property
    def attempt_limited(self) -> bool:
        return self.max_attempts is not None

    @property
    def issue_limited(self) -> bool:
        return self.issue_limit is not None


OTP_MAX_ATTEMPTS = 5
MAX_ISSUES_PER_WINDOW = 3
ISSUE_WINDOW = timedelta(hours=1)

DEFAULT_POLICIES: dict[Purpose, PurposePolicy] = {
    Purpose.REFRESH_SESSION: PurposePolicy(
        ttl=timedelta(days=14), secret_format=SecretFormat.HEX_TOKEN
    ),
    Purpose.EMAIL_VERIFY: PurposePolicy(
        ttl=timedelta(hours=24),
        secret_format=SecretFormat.HEX_TOKEN,
        issue_limit=MAX_ISSUES_PER_WINDOW,
    ),
    Purpose.PASSWORD_RESET: PurposePolicy(
        ttl=timedelta(hours=1),
        secret_format=SecretFormat.HEX_TOKEN,
        issue_limit=MAX_ISSUES_PER_WINDOW,
    ),
    Purpose.PASSWORD_CHANGE_OTP: PurposePolicy(
        ttl=timedelta(minutes=10),
        secret_format=SecretFormat.NUMERIC_OTP,
        max_attempts=OTP_MAX_ATTEMPTS,
        issue_limit=MAX_ISSUES_PER_WINDOW,
    ),
    Purpose.PASSWORD_CHANGE_GRANT: PurposePolicy(
        ttl=timedelta(minutes=10), secret_format=SecretFormat.HEX_TOKEN
    ),
    Purpose.PHONE_VERIFY_OTP: PurposePolicy(
        ttl=timedelta(minutes=10),
        secret_format=SecretFormat.NUMERIC_OTP,
        max_attempts=OTP_MAX_ATTEMPTS,
        issue_limit=MAX_ISSUES_PER_WINDOW,
    ),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LifecycleConfig:
    """Everything the issuer, verifier and rotator need, injected at construction.

    ``clock`` must return timezone-aware UTC datetimes.
    ``max_secret_collisions`` bounds how many times the issuer regenerates a
    secret whose hash is already held by another live credential.
    ``issue_window`` is the sliding window each policy's ``issue_limit`` counts
    issued credentials over.
    """

    policies: Mapping[Purpose, PurposePolicy] = field(
        default_factory=lambda: dict(DEFAULT_POLICIES)
    )
    clock: Callable[[], datetime] = utc_now
    max_secret_collisions: int = 5
    issue_window: timedelta = ISSUE_WINDOW

    def policy_for(self, purpose: Purpose) -> PurposePolicy:
        try:
            return self.policies[Purpose(purpose)]
        except KeyError:
            raise ValueError(f"No policy configured for purpose {purpose!r}")

    def now(self) -> datetime:
        return as_utc(self.clock())


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by pymongo by default) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
