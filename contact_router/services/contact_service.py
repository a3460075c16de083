"""
Contact service - one resolution per request plus the fallback chain.

Fallback tiers:
    fresh resolution -> last good number -> support number -> 503
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import Settings
from ..exceptions import ContactRouterError, InvalidOverride
from ..models import RoutingConfig
from ..routing.resolver import RoutingResolver
from ..routing.weighted_selector import WeightedSelector
from ..utils.phone import mask_phone
from ..utils.retry import Fetcher
from .result_cache import ResultCache

logger = logging.getLogger(__name__)

NO_NUMBER_AVAILABLE = "NO_NUMBER_AVAILABLE"
DEFAULT_MODE = "normal"


@dataclass
class ServiceResponse:
    status_code: int
    body: Dict[str, Any]


def parse_agency_id(raw: Optional[str]) -> Optional[int]:
    """Parse the ``agency_id`` query value; blank means no override."""
    value = (raw or "").strip()
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        raise InvalidOverride("agency_id inválido", field="agency_id") from None
    if not number.is_integer():
        raise InvalidOverride("agency_id inválido", field="agency_id")
    return int(number)


class ContactService:
    """Request handler for ``/api/get-random-phone``."""

    def __init__(
        self,
        resolver: RoutingResolver,
        cache: ResultCache,
        fallback_number: Optional[str] = None,
    ):
        self.resolver = resolver
        self.cache = cache
        self.fallback_number = fallback_number

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        routing: RoutingConfig,
        fetcher: Fetcher,
        cache: Optional[ResultCache] = None,
        selector: Optional[WeightedSelector] = None,
    ) -> "ContactService":
        if selector is None:
            selector = WeightedSelector(random.Random(settings.random_seed))
        resolver = RoutingResolver(
            routing,
            fetcher,
            selector=selector,
            only_ads=settings.only_ads_whatsapp,
            max_attempts=settings.max_retries,
        )
        return cls(resolver, cache or ResultCache(), settings.fallback_number)

    async def get_random_phone(
        self,
        mode: Optional[str] = None,
        upstream: Optional[str] = None,
        agency_id: Optional[str] = None,
    ) -> ServiceResponse:
        started = time.monotonic()
        mode = (mode or DEFAULT_MODE).lower()

        try:
            forced_agency = parse_agency_id(agency_id)
            result = await self.resolver.resolve(
                upstream_key=(upstream or "").strip().lower() or None,
                agency_id=forced_agency,
            )
        except ContactRouterError as exc:
            return self._fallback(exc.message, started)
        except Exception as exc:
            logger.exception("Unexpected error while resolving a number")
            return self._fallback(str(exc) or exc.__class__.__name__, started)

        self.cache.put(result)
        ms = _elapsed_ms(started)
        logger.info(
            "Served %s from %s/%s via %s in %sms",
            mask_phone(result.number),
            result.upstream_key,
            result.agency_id,
            result.chosen_from,
            ms,
        )
        return ServiceResponse(200, result.to_response(mode, ms))

    def _fallback(self, error: str, started: float) -> ServiceResponse:
        cached = self.cache.get()
        if cached is not None:
            logger.warning(
                "Resolution failed (%s); serving last good %s", error, mask_phone(cached.number)
            )
            return ServiceResponse(
                200,
                {
                    "number": cached.number,
                    "cache": True,
                    "last_good_meta": cached.meta(),
                    "error": error,
                    "ms": _elapsed_ms(started),
                },
            )

        if self.fallback_number:
            logger.warning("Resolution failed (%s); serving support fallback", error)
            return ServiceResponse(
                200,
                {
                    "number": self.fallback_number,
                    "fallback": True,
                    "error": error,
                    "ms": _elapsed_ms(started),
                },
            )

        logger.error("No number available: %s", error)
        return ServiceResponse(
            503,
            {
                "error": NO_NUMBER_AVAILABLE,
                "details": error,
                "ms": _elapsed_ms(started),
            },
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
