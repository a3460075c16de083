"""
Shared pytest fixtures for contact-router tests.

Import fixtures from here instead of defining them in individual test files.
"""
from __future__ import annotations

import os
from typing import Any, Dict

import pytest

# Set test environment before importing application modules
os.environ.setdefault("LOG_LEVEL", "WARNING")

from contact_router.models import RoutingConfig
from contact_router.services.result_cache import ResultCache


# ============================================================================
# Routing Tree Fixtures
# ============================================================================

@pytest.fixture
def routing_dict() -> Dict[str, Any]:
    """Two upstreams, one agency with a 30/70 api/static allocation."""
    return {
        "providers": [
            {
                "key": "ases",
                "base": "https://api.asesadmin.com/api/v1",
                "weight": 70,
                "agencies": [
                    {"id": 28, "name": "Ceti", "weight": 100},
                ],
            },
            {
                "key": "foxy",
                "base": "https://api.foxyadminbot.info/api/v1/",
                "weight": 30,
                "agencies": [
                    {
                        "id": 28,
                        "name": "Ceti",
                        "weight": 100,
                        "allocation": {"api_weight": 30, "static_weight": 70},
                        "static_numbers": [
                            {"number": "11-2345-6781", "weight": 10},
                            {"number": "11-2345-6782", "weight": 10},
                            {"number": "11-2345-6783", "weight": 10},
                            {"number": "11-2345-6784", "weight": 10},
                            {"number": "11-2345-6785", "weight": 10},
                            {"number": "11-2345-6786", "weight": 10},
                        ],
                    },
                ],
            },
        ]
    }


@pytest.fixture
def routing_config(routing_dict) -> RoutingConfig:
    return RoutingConfig.model_validate(routing_dict)


@pytest.fixture
def api_only_config() -> RoutingConfig:
    """Single upstream, single agency, no allocation."""
    return RoutingConfig.model_validate(
        {
            "providers": [
                {
                    "key": "foxy",
                    "base": "https://api.foxyadminbot.info/api/v1",
                    "weight": 100,
                    "agencies": [{"id": 28, "name": "Ceti", "weight": 100}],
                }
            ]
        }
    )


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def result_cache() -> ResultCache:
    return ResultCache()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module level state between tests."""
    yield
    try:
        from contact_router.services.routing_config import reset_routing_config
        reset_routing_config()
    except ImportError:
        pass

    try:
        from contact_router.main import result_cache
        result_cache.clear()
    except ImportError:
        pass
