"""
Cryptographic helpers: password hashing and secret hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for credential
secrets. Secrets are high-entropy random values (or attempt-limited OTPs),
so an unsalted digest is enough to make the stored form irreversible while
keeping it queryable.
"""

from __future__ import annotations

import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify *plain_password* against an argon2 *password_hash*.

    Returns:
        ``True`` if the password matches, ``False`` for any failure
        (wrong password, invalid hash, etc.).
    """
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def hash_secret(secret: str) -> str:
    """Return the hex-encoded SHA-256 digest of *secret*.

    Used for refresh tokens, verification/reset links and OTP codes before
    they are stored, so the plaintext is never persisted.

    Args:
        secret: The plaintext secret to hash.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()
