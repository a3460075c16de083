"""Single bounded-time GET against a provider's random-contact endpoint."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import httpx

from ..exceptions import FetchError
from ..models import FetchResult
from .http_pool import create_http_client

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store"}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class UpstreamFetcher:
    """Performs one GET and turns every failure mode into ``FetchError``.

    The whole request (connect, headers and body) runs under
    ``asyncio.wait_for`` so a slow upstream is cancelled at ``timeout_ms``
    wall-clock, not per socket read.
    """

    def __init__(
        self,
        timeout_ms: int,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout_ms = timeout_ms
        self.client = client or create_http_client(timeout_ms)

    async def _get(self, url: str) -> httpx.Response:
        return await self.client.get(url, headers=NO_STORE_HEADERS)

    async def fetch(self, url: str, timeout_ms: Optional[int] = None) -> FetchResult:
        timeout_ms = timeout_ms or self.timeout_ms
        started = time.monotonic()

        try:
            response = await asyncio.wait_for(self._get(url), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise FetchError(
                f"timeout after {timeout_ms}ms", elapsed_ms=_elapsed_ms(started)
            ) from exc
        except httpx.TimeoutException as exc:
            raise FetchError(
                f"timeout after {timeout_ms}ms", elapsed_ms=_elapsed_ms(started)
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                f"{exc.__class__.__name__}: {exc}" if str(exc) else exc.__class__.__name__,
                elapsed_ms=_elapsed_ms(started),
            ) from exc

        ms = _elapsed_ms(started)
        status = response.status_code

        if not response.is_success:
            raise FetchError(f"HTTP {status}", http_status=status, elapsed_ms=ms)

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(
                "invalid JSON body", http_status=status, elapsed_ms=ms
            ) from exc

        if not isinstance(payload, dict):
            raise FetchError(
                f"unexpected body type {type(payload).__name__}",
                http_status=status,
                elapsed_ms=ms,
            )

        logger.debug("GET %s -> %s in %sms", url, status, ms)
        return FetchResult(payload=payload, elapsed_ms=ms, http_status=status)
