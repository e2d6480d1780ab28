"""Outbound HTTP for the delivery providers (ZeptoMail, eSMS)."""

import time
from typing import Any
from urllib.parse import urlsplit

import httpx

from shared.logging import get_logger

log = get_logger(__name__)


class HttpClient:
    """Shared httpx.AsyncClient with one timeout and User-Agent for every provider.

    Only the host, status and latency of each call are logged; request bodies
    carry codes and links and never reach the log.
    """

    def __init__(self, timeout: float = 10.0, user_agent: str = "greengrow-credentials") -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": user_agent}
        )

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        host = urlsplit(url).netloc
        started = time.perf_counter()
        try:
            response = await self._client.post(url, **kwargs)
        except httpx.HTTPError as e:
            log.warning(
                "outbound_request_failed", host=host, error_type=type(e).__name__
            )
            raise
        log.debug(
            "outbound_request",
            host=host,
            status=response.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
