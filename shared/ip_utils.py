"""Client address recorded in refresh-session context."""

from __future__ import annotations

import ipaddress
from typing import Optional

from fastapi import Request

# Set by the reverse proxies GreenGrow runs behind, most specific first
PROXY_HEADERS = ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP")


def _parse_ip(value: str) -> Optional[str]:
    candidate = value.split(",")[0].strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def get_client_ip(request: Request) -> Optional[str]:
    """Best-effort client IP for a request.

    The first proxy header holding a parseable address wins, then the peer
    address. Values that are not IP addresses are skipped, so the session
    context only ever stores a normalised address or nothing.
    """
    for header in PROXY_HEADERS:
        value = request.headers.get(header)
        if value:
            ip = _parse_ip(value)
            if ip is not None:
                return ip

    if request.client and request.client.host:
        return _parse_ip(request.client.host)
    return None
