"""
Vietnamese phone number normalisation.

Accepts +84 / 84 / 0 prefixes with spaces, dashes or parentheses and
returns the 10-digit local form (e.g. "0912345678").
"""

from __future__ import annotations

import re
from typing import Optional

_SEPARATORS_RE = re.compile(r"[\s\-()]")
_LOCAL_RE = re.compile(r"^0[35789]\d{8}$")


def normalize_vietnamese_phone(phone: Optional[str]) -> Optional[str]:
    """Return the normalised number, or None if *phone* is not a valid mobile number."""
    if not phone:
        return None

    normalized = _SEPARATORS_RE.sub("", phone)
    if normalized.startswith("+84"):
        normalized = "0" + normalized[3:]
    elif normalized.startswith("84") and len(normalized) == 11:
        normalized = "0" + normalized[2:]
    if not normalized.startswith("0"):
        normalized = "0" + normalized

    if not _LOCAL_RE.match(normalized):
        return None
    return normalized


def mask_phone(phone: str) -> str:
    """Keep the last three digits for logs and responses."""
    if len(phone) <= 3:
        return "*" * len(phone)
    return "*" * (len(phone) - 3) + phone[-3:]
