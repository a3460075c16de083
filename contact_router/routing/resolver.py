"""
Routing Resolver - per-request decision engine

Steps, traversed once per request:
    select_provider -> select_agency -> select_route -> static number
                                                     -> resolve_api

Each selection step takes its own optional override. A forced upstream must
exist; a forced agency id never fails (unknown ids get a placeholder agency
that always goes through the API).

Usage:
    resolver = RoutingResolver(config, fetcher, only_ads=True)
    result = await resolver.resolve(upstream_key="foxy", agency_id=28)
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from ..exceptions import (
    EmptyStaticPool,
    InvalidApiNumber,
    InvalidOverride,
    InvalidStaticNumber,
    NoAdsAvailable,
    NoAgenciesConfigured,
    NoNumbersAvailable,
    NoProvidersConfigured,
)
from ..models import (
    Agency,
    ApiRoute,
    ResolutionResult,
    RouteDecision,
    RoutingConfig,
    StaticRoute,
    UpstreamMeta,
    UpstreamProvider,
)
from ..utils.phone import mask_phone, normalize_phone
from ..utils.retry import Fetcher, fetch_with_retries
from .weighted_selector import WeightedSelector

logger = logging.getLogger(__name__)

SOURCE_ADS = "ads.whatsapp"
SOURCE_NORMAL = "whatsapp"
SOURCE_STATIC = "static"

ROUTE_API = "api"
ROUTE_STATIC = "static"


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def extract_number_lists(payload: Any) -> Tuple[List[Any], List[Any]]:
    """Return ``(ads, normal)`` from a random-contact payload.

    Missing or non-list fields count as empty lists.
    """
    if not isinstance(payload, dict):
        return [], []
    ads = payload.get("ads")
    ads_list = _as_list(ads.get("whatsapp")) if isinstance(ads, dict) else []
    return ads_list, _as_list(payload.get("whatsapp"))


class RoutingResolver:
    """Resolves one number from the routing tree."""

    def __init__(
        self,
        config: RoutingConfig,
        fetcher: Fetcher,
        selector: Optional[WeightedSelector] = None,
        only_ads: bool = True,
        max_attempts: int = 2,
    ):
        self.config = config
        self.fetcher = fetcher
        self.selector = selector or WeightedSelector()
        self.only_ads = config.only_ads if config.only_ads is not None else only_ads
        self.max_attempts = max_attempts

    async def resolve(
        self,
        upstream_key: Optional[str] = None,
        agency_id: Optional[int] = None,
    ) -> ResolutionResult:
        provider = self.select_provider(upstream_key)
        agency = self.select_agency(provider, agency_id)

        route = self.select_route(provider, agency)
        if isinstance(route, StaticRoute):
            logger.debug(
                "Static route for %s/%s -> %s", provider.key, agency.id, mask_phone(route.number)
            )
            return ResolutionResult(
                number=route.number,
                upstream_key=provider.key,
                upstream_base=provider.base,
                agency_id=agency.id,
                agency_name=agency.name,
                chosen_from=SOURCE_STATIC,
                allocation=agency.allocation,
            )

        return await self.resolve_api(provider, agency, route)

    def select_provider(self, forced_key: Optional[str] = None) -> UpstreamProvider:
        if forced_key and forced_key.strip():
            provider = self.config.find_provider(forced_key)
            if provider is None:
                raise InvalidOverride(
                    f"upstream inválido: {forced_key.strip().lower()}", field="upstream"
                )
            return provider

        provider = self.selector.select(self.config.providers)
        if provider is None:
            raise NoProvidersConfigured()
        logger.debug("Selected upstream %s", provider.key)
        return provider

    def select_agency(
        self, provider: UpstreamProvider, forced_id: Optional[int] = None
    ) -> Agency:
        if forced_id is not None:
            agency = provider.find_agency(forced_id)
            if agency is None:
                logger.info(
                    "agency_id %s not listed under %s; using placeholder agency",
                    forced_id,
                    provider.key,
                )
                return Agency.placeholder(forced_id)
            return agency

        agency = self.selector.select(provider.agencies)
        if agency is None:
            raise NoAgenciesConfigured(details={"provider": provider.key})
        logger.debug("Selected agency %s (%s) under %s", agency.id, agency.name, provider.key)
        return agency

    def select_route(self, provider: UpstreamProvider, agency: Agency) -> RouteDecision:
        """Decide api vs static for the agency.

        Agencies without a complete allocation and a static pool always take
        the API path.
        """
        api_route = ApiRoute(api_url=provider.contact_url(agency.id))
        if not agency.has_static_route:
            return api_route

        allocation = agency.allocation
        choice = self.selector.select(
            [(ROUTE_API, allocation.api_weight), (ROUTE_STATIC, allocation.static_weight)],
            weight=lambda c: c[1],
        )
        if choice is None or choice[0] == ROUTE_API:
            return api_route

        picked = self.selector.select(agency.static_numbers)
        if picked is None:
            raise EmptyStaticPool(f"Pool estático vacío para agency {agency.id}")

        phone = normalize_phone(picked.number)
        if not phone:
            raise InvalidStaticNumber(f"Número estático inválido para agency {agency.id}")
        return StaticRoute(number=phone)

    async def resolve_api(
        self,
        provider: UpstreamProvider,
        agency: Agency,
        route: Optional[ApiRoute] = None,
    ) -> ResolutionResult:
        api_url = route.api_url if route else provider.contact_url(agency.id)
        meta = UpstreamMeta(
            upstream_key=provider.key,
            upstream_base=provider.base,
            api_url=api_url,
        )

        fetched = await fetch_with_retries(
            self.fetcher, api_url, meta, max_attempts=self.max_attempts
        )

        ads_list, normal_list = extract_number_lists(fetched.payload)
        raw, source = self._pick_raw_number(ads_list, normal_list, provider.key)

        phone = normalize_phone(raw)
        if not phone:
            raise InvalidApiNumber(provider=provider.key)

        return ResolutionResult(
            number=phone,
            upstream_key=provider.key,
            upstream_base=provider.base,
            agency_id=agency.id,
            agency_name=agency.name,
            chosen_from=source,
            only_ads=self.only_ads,
            allocation=agency.allocation,
            upstream=meta,
            ads_len=len(ads_list),
            normal_len=len(normal_list),
        )

    def _pick_raw_number(
        self, ads_list: List[Any], normal_list: List[Any], provider_key: str
    ) -> Tuple[Any, str]:
        if self.only_ads:
            if not ads_list:
                raise NoAdsAvailable(provider=provider_key)
            return self.selector.choice(ads_list), SOURCE_ADS

        if ads_list:
            return self.selector.choice(ads_list), SOURCE_ADS
        if normal_list:
            return self.selector.choice(normal_list), SOURCE_NORMAL
        raise NoNumbersAvailable(provider=provider_key)
