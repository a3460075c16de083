from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Union

from contact_router.exceptions import FetchError
from contact_router.models import FetchResult


class FixedRandom:
    """Stand-in for ``random.Random`` that replays fixed draws in [0, 1)."""

    def __init__(self, *values: float) -> None:
        self._values: List[float] = list(values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if not self._values:
            raise AssertionError("No more random values available")
        if len(self._values) == 1:
            return self._values[0]
        return self._values.pop(0)


class StubFetcher:
    """Fetcher replaying payloads or ``FetchError``s, recording every URL."""

    def __init__(self, responses: Iterable[Union[Dict[str, Any], Exception]]) -> None:
        self._responses: List[Union[Dict[str, Any], Exception]] = list(responses)
        self.calls: List[str] = []

    async def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        if not self._responses:
            raise AssertionError("No more stub responses available")
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return FetchResult(payload=response, elapsed_ms=5, http_status=200)


def http_error(status: int) -> FetchError:
    return FetchError(f"HTTP {status}", http_status=status, elapsed_ms=3)


def contact_payload(
    ads: Optional[List[Any]] = None,
    normal: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if ads is not None:
        payload["ads"] = {"whatsapp": ads}
    if normal is not None:
        payload["whatsapp"] = normal
    return payload


def run(coro):
    """Helper to run async functions in synchronous tests."""
    return asyncio.run(coro)
