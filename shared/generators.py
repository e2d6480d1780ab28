"""
Random secret generators: pure, side-effect-free functions.

All generators draw from the ``secrets`` module.
"""

from __future__ import annotations

import secrets

from credentials.policy import SecretFormat

OTP_LOW = 100000
OTP_HIGH = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit OTP, uniform over 100000–999999 (no leading zero)."""
    return str(OTP_LOW + secrets.randbelow(OTP_HIGH - OTP_LOW + 1))


def generate_hex_token(num_bytes: int = 32) -> str:
    """Generate a cryptographically secure hex token.

    Args:
        num_bytes: Number of random bytes (default 32, giving 64 hex chars).

    Returns:
        Lowercase hex string of length ``2 * num_bytes``.
    """
    return secrets.token_hex(num_bytes)


def generate_secret(secret_format: SecretFormat) -> str:
    """Generate a raw secret in the format a purpose policy asks for."""
    if SecretFormat(secret_format) is SecretFormat.NUMERIC_OTP:
        return generate_otp_code()
    return generate_hex_token()
