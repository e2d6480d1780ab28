"""
Input validators: framework-agnostic, pure functions.
"""

from __future__ import annotations

import re

_HEX_TOKEN_RE = re.compile(r"[a-f0-9]{64}")
_OTP_RE = re.compile(r"[0-9]{6}")


def password_problems(password: str) -> list[str]:
    """Return the list of unmet password requirements (empty when valid).

    Rules:
    - At least 8 characters
    - Contains a lowercase letter
    - Contains an uppercase letter
    - Contains a digit
    """
    problems: list[str] = []
    if len(password) < 8:
        problems.append("min_length")
    if not re.search(r"[a-z]", password):
        problems.append("lowercase")
    if not re.search(r"[A-Z]", password):
        problems.append("uppercase")
    if not re.search(r"\d", password):
        problems.append("digit")
    return problems


def is_hex_token(value: str) -> bool:
    """True for a 64-char lowercase hex string (32 random bytes)."""
    return bool(_HEX_TOKEN_RE.fullmatch(value))


def is_otp_code(value: str) -> bool:
    """True for exactly six ASCII digits; leading zeros are kept."""
    return bool(_OTP_RE.fullmatch(value))
