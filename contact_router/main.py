from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .services.contact_service import ContactService
from .services.http_pool import client_stats, create_http_client
from .services.result_cache import ResultCache
from .services.routing_config import get_routing_config
from .services.upstream_fetcher import UpstreamFetcher

settings: Settings = get_settings()

logger = logging.getLogger("contact_router")
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
}

result_cache = ResultCache()


def build_contact_service(app_settings: Settings, http_client: httpx.AsyncClient) -> ContactService:
    routing = get_routing_config(app_settings.routing_config_path)
    fetcher = UpstreamFetcher(app_settings.timeout_ms, client=http_client)
    return ContactService.from_settings(app_settings, routing, fetcher, cache=result_cache)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # === STARTUP ===
    app.state.http_client = create_http_client(settings.timeout_ms)

    # Broken routing files fail here, not on the first request
    app.state.contact_service = build_contact_service(settings, app.state.http_client)
    logger.info(
        "contact-router ready (only_ads=%s, timeout=%sms, attempts=%s, fallback=%s)",
        app.state.contact_service.resolver.only_ads,
        settings.timeout_ms,
        settings.max_retries,
        "on" if settings.fallback_number else "off",
    )

    yield

    # === SHUTDOWN ===
    await app.state.http_client.aclose()
    logger.info("HTTP client closed")


app = FastAPI(title="contact-router API", version="1.0.0", lifespan=lifespan)


@app.middleware("http")
async def no_cache_middleware(request: Request, call_next):
    """Stop browsers and CDNs from caching any response."""
    response = await call_next(request)
    response.headers.update(NO_CACHE_HEADERS)
    return response


def get_contact_service(request: Request) -> ContactService:
    service: Optional[ContactService] = getattr(request.app.state, "contact_service", None)
    if service is None:
        # Lifespan did not run (bare TestClient); build on first use
        http_client = getattr(request.app.state, "http_client", None)
        if http_client is None or http_client.is_closed:
            http_client = create_http_client(settings.timeout_ms)
            request.app.state.http_client = http_client
        service = build_contact_service(settings, http_client)
        request.app.state.contact_service = service
    return service


@app.get("/api/get-random-phone")
async def get_random_phone(
    request: Request,
    mode: Optional[str] = Query(default=None),
    upstream: Optional[str] = Query(default=None),
    agency_id: Optional[str] = Query(default=None),
):
    service = get_contact_service(request)
    response = await service.get_random_phone(mode=mode, upstream=upstream, agency_id=agency_id)
    return JSONResponse(status_code=response.status_code, content=response.body)


@app.get("/api/health")
async def health(request: Request):
    service = get_contact_service(request)
    resolver = service.resolver

    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "only_ads": resolver.only_ads,
        "max_attempts": resolver.max_attempts,
        "fallback_enabled": service.fallback_number is not None,
        "providers": [
            {
                "key": p.key,
                "weight": p.weight,
                "agencies": [a.id for a in p.agencies],
            }
            for p in resolver.config.providers
        ],
        "cache": service.cache.get_stats(),
        "http_client": client_stats(getattr(request.app.state, "http_client", None)),
    }


@app.post("/api/cache/clear")
async def cache_clear(request: Request):
    """Forget the last good number."""
    service = get_contact_service(request)
    service.cache.clear()
    logger.info("Last good cache cleared")
    return {"message": "Cache cleared"}


@app.get("/")
async def root():
    return {"status": "ok"}
