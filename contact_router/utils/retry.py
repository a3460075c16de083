"""Bounded retry loop for upstream contact fetches."""
from __future__ import annotations

import logging
from typing import Protocol

from ..exceptions import ContactRouterError, UpstreamUnavailable, is_retryable_error
from ..models import FetchResult, UpstreamMeta


logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResult: ...


async def fetch_with_retries(
    fetcher: Fetcher,
    url: str,
    meta: UpstreamMeta,
    max_attempts: int = 2,
) -> FetchResult:
    """
    Call ``fetcher.fetch(url)`` up to ``max_attempts`` times, back to back.

    ``meta`` is updated on every attempt (attempt count, last error, status,
    timings) so callers can report it whatever the outcome.

    Raises:
        UpstreamUnavailable: when every attempt failed
    """
    max_attempts = max(1, max_attempts)

    for attempt in range(1, max_attempts + 1):
        meta.attempts = attempt
        try:
            result = await fetcher.fetch(url)
        except ContactRouterError as exc:
            if not is_retryable_error(exc):
                raise
            meta.last_error = exc.message or "unknown"
            meta.status = exc.http_status
            meta.ms = exc.elapsed_ms
            meta.attempt_timings_ms.append(exc.elapsed_ms or 0)
            logger.warning(
                "Attempt %s/%s failed for %s: %s", attempt, max_attempts, url, meta.last_error
            )
            continue

        meta.ms = result.elapsed_ms
        meta.status = result.http_status
        meta.attempt_timings_ms.append(result.elapsed_ms)
        return result

    logger.error(
        "All %s attempts failed for %s. Last error: %s", max_attempts, url, meta.last_error
    )
    raise UpstreamUnavailable(
        f"Upstream fail: {meta.last_error}",
        status=meta.status,
        attempts=meta.attempts,
        provider=meta.upstream_key,
    )
