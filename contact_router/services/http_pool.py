"""
Shared HTTP client for upstream calls.

One ``httpx.AsyncClient`` is created in the app lifespan, kept on
``app.state.http_client`` and closed on shutdown. Every ``UpstreamFetcher``
reuses it, so keep-alive connections are shared across requests.
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 100
MAX_KEEPALIVE = 50


def create_http_client(timeout_ms: int) -> httpx.AsyncClient:
    """Build the pooled client.

    ``UpstreamFetcher`` enforces ``timeout_ms`` as a wall-clock limit; the
    httpx timeouts here use the same value as a per-phase bound.
    """
    seconds = timeout_ms / 1000
    client = httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=MAX_CONNECTIONS,
            max_keepalive_connections=MAX_KEEPALIVE,
            keepalive_expiry=5.0,
        ),
        timeout=httpx.Timeout(seconds, connect=seconds, pool=seconds),
        http2=True,
        follow_redirects=True,
    )
    logger.info(
        "HTTP client ready: max_connections=%s, max_keepalive=%s, timeout=%sms",
        MAX_CONNECTIONS,
        MAX_KEEPALIVE,
        timeout_ms,
    )
    return client


def client_stats(client: httpx.AsyncClient | None) -> dict:
    """Small status block for ``/api/health``."""
    if client is None:
        return {"status": "not_initialized"}
    return {"status": "closed" if client.is_closed else "active"}
