from __future__ import annotations

import pytest

from contact_router.config import Settings
from contact_router.exceptions import InvalidOverride
from contact_router.routing.resolver import RoutingResolver
from contact_router.routing.weighted_selector import WeightedSelector
from contact_router.services.contact_service import ContactService, parse_agency_id
from contact_router.tests.utils import FixedRandom, StubFetcher, contact_payload, http_error, run

FOXY_URL = "https://api.foxyadminbot.info/api/v1/agency/28/random-contact"


def _service(config, fetcher, cache, rng=None, fallback_number=None, **kwargs) -> ContactService:
    resolver = RoutingResolver(
        config, fetcher, selector=WeightedSelector(rng or FixedRandom(0.0)), **kwargs
    )
    return ContactService(resolver, cache, fallback_number=fallback_number)


class TestParseAgencyId:
    def test_blank_means_no_override(self) -> None:
        assert parse_agency_id(None) is None
        assert parse_agency_id("  ") is None

    def test_numeric(self) -> None:
        assert parse_agency_id(" 28 ") == 28
        assert parse_agency_id("28.0") == 28

    @pytest.mark.parametrize("raw", ["abc", "12.5", "nan", "inf"])
    def test_invalid(self, raw) -> None:
        with pytest.raises(InvalidOverride):
            parse_agency_id(raw)


class TestFreshResponses:
    def test_api_success_shape_and_cache_write(self, api_only_config, result_cache) -> None:
        fetcher = StubFetcher([contact_payload(ads=["11-5555-0000"])])
        service = _service(api_only_config, fetcher, result_cache)

        response = run(service.get_random_phone(mode="VIP"))

        assert response.status_code == 200
        body = response.body
        assert body["number"] == "541155550000"
        assert body["mode"] == "vip"
        assert body["upstream_key"] == "foxy"
        assert body["upstream_base"] == "https://api.foxyadminbot.info/api/v1"
        assert body["agency_id"] == 28
        assert body["agency_name"] == "Ceti"
        assert body["chosen_from"] == "ads.whatsapp"
        assert body["only_ads"] is True
        assert body["allocation"] is None
        assert isinstance(body["ms"], int)
        assert body["upstream"]["attempts"] == 1
        assert body["upstream"]["status"] == 200
        assert body["upstream"]["api_url"] == FOXY_URL
        assert body["upstream"]["last_error"] is None

        assert result_cache.get().number == "541155550000"

    def test_default_mode(self, api_only_config, result_cache) -> None:
        service = _service(api_only_config, StubFetcher([contact_payload(ads=["1155550000"])]), result_cache)
        assert run(service.get_random_phone()).body["mode"] == "normal"

    def test_static_success_omits_only_ads(self, routing_config, result_cache) -> None:
        fetcher = StubFetcher([])
        service = _service(routing_config, fetcher, result_cache, rng=FixedRandom(0.9))

        response = run(service.get_random_phone(upstream="foxy"))

        body = response.body
        assert response.status_code == 200
        assert body["chosen_from"] == "static"
        assert "only_ads" not in body
        assert "upstream" not in body
        assert body["allocation"] == {"api_weight": 30.0, "static_weight": 70.0}
        assert fetcher.calls == []
        assert result_cache.get().result.chosen_from == "static"

    def test_forced_unknown_agency_uses_placeholder(self, routing_config, result_cache) -> None:
        fetcher = StubFetcher([contact_payload(ads=["1155550000"])])
        service = _service(routing_config, fetcher, result_cache)

        body = run(service.get_random_phone(upstream="foxy", agency_id="999")).body

        assert body["agency_id"] == 999
        assert body["agency_name"] == "agency_999"
        assert body["chosen_from"] == "ads.whatsapp"
        assert fetcher.calls == ["https://api.foxyadminbot.info/api/v1/agency/999/random-contact"]


class TestFallbackChain:
    def test_upstream_down_serves_cache(self, api_only_config, result_cache) -> None:
        fetcher = StubFetcher([contact_payload(ads=["1155550000"]), http_error(500)])
        service = _service(api_only_config, fetcher, result_cache, max_attempts=2)

        first = run(service.get_random_phone())
        assert first.status_code == 200

        second = run(service.get_random_phone())

        assert second.status_code == 200
        assert second.body["number"] == "541155550000"
        assert second.body["cache"] is True
        assert second.body["error"] == "Upstream fail: HTTP 500"
        assert second.body["last_good_meta"]["upstream_key"] == "foxy"
        assert second.body["last_good_meta"]["source"] == "ads.whatsapp"
        assert second.body["last_good_meta"]["ads_len"] == 1
        assert "ts" in second.body["last_good_meta"]
        assert "ms" in second.body
        # one success + two failed attempts
        assert len(fetcher.calls) == 3

    def test_failure_does_not_overwrite_cache(self, api_only_config, result_cache) -> None:
        fetcher = StubFetcher([contact_payload(ads=["1155550000"]), contact_payload(ads=[])])
        service = _service(api_only_config, fetcher, result_cache)

        run(service.get_random_phone())
        stored = result_cache.get()
        run(service.get_random_phone())
        run(service.get_random_phone())

        assert result_cache.get() is stored

    def test_no_cache_serves_fallback_number(self, api_only_config, result_cache) -> None:
        fetcher = StubFetcher([http_error(500)])
        service = _service(
            api_only_config, fetcher, result_cache, fallback_number="5491100000000", max_attempts=2
        )

        response = run(service.get_random_phone())

        assert response.status_code == 200
        assert response.body["number"] == "5491100000000"
        assert response.body["fallback"] is True
        assert response.body["error"] == "Upstream fail: HTTP 500"
        assert "cache" not in response.body

    def test_no_cache_no_fallback_is_503(self, api_only_config, result_cache) -> None:
        fetcher = StubFetcher([http_error(500)])
        service = _service(api_only_config, fetcher, result_cache, max_attempts=2)

        response = run(service.get_random_phone())

        assert response.status_code == 503
        assert response.body["error"] == "NO_NUMBER_AVAILABLE"
        assert response.body["details"] == "Upstream fail: HTTP 500"
        assert isinstance(response.body["ms"], int)
        assert len(fetcher.calls) == 2

    def test_invalid_upstream_enters_chain_without_fetching(self, api_only_config, result_cache) -> None:
        fetcher = StubFetcher([])
        service = _service(api_only_config, fetcher, result_cache)

        response = run(service.get_random_phone(upstream="nope"))

        assert response.status_code == 503
        assert response.body["details"] == "upstream inválido: nope"
        assert fetcher.calls == []

    def test_non_numeric_agency_id_enters_chain(self, api_only_config, result_cache) -> None:
        service = _service(api_only_config, StubFetcher([]), result_cache, fallback_number="5491100000000")

        response = run(service.get_random_phone(agency_id="abc"))

        assert response.status_code == 200
        assert response.body["fallback"] is True
        assert response.body["error"] == "agency_id inválido"

    def test_unexpected_error_still_falls_back(self, api_only_config, result_cache) -> None:
        class Broken:
            async def fetch(self, url):
                raise RuntimeError("boom")

        service = _service(api_only_config, Broken(), result_cache)

        response = run(service.get_random_phone())

        assert response.status_code == 503
        assert response.body["details"] == "boom"


def test_from_settings_wires_policy_and_budget(api_only_config, monkeypatch) -> None:
    monkeypatch.setenv("ONLY_ADS_WHATSAPP", "false")
    monkeypatch.setenv("MAX_RETRIES", "3")
    monkeypatch.setenv("RANDOM_SEED", "7")
    settings = Settings(_env_file=None)

    service = ContactService.from_settings(settings, api_only_config, StubFetcher([]))

    assert service.resolver.only_ads is False
    assert service.resolver.max_attempts == 3
    assert service.fallback_number is None
    assert service.cache.get() is None
