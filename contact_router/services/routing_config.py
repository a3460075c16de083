"""
Routing tree loader.

The provider/agency/allocation tree lives in a YAML file and is loaded once
at startup. Validation errors stop the process instead of surfacing per
request.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError
from ..models import RoutingConfig

logger = logging.getLogger(__name__)

# Cache for the loaded tree
_routing_cache: Optional[RoutingConfig] = None
_routing_cache_path: Optional[Path] = None


def load_routing_config(path: Path | str) -> RoutingConfig:
    """Parse and validate the routing YAML at ``path``.

    Raises:
        ConfigurationError: if the file is missing, not YAML, or does not match
            the routing schema
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Routing config not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Routing config {path} must be a mapping")

    try:
        config = RoutingConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid routing config {path}",
            details={"errors": e.errors(include_url=False)},
        ) from e

    logger.info(
        "Loaded %s upstreams (%s agencies) from %s",
        len(config.providers),
        sum(len(p.agencies) for p in config.providers),
        path.name,
    )
    return config


def get_routing_config(path: Path | str) -> RoutingConfig:
    """Load once per path and reuse for the process lifetime."""
    global _routing_cache, _routing_cache_path

    path = Path(path)
    if _routing_cache is not None and _routing_cache_path == path:
        return _routing_cache

    _routing_cache = load_routing_config(path)
    _routing_cache_path = path
    return _routing_cache


def reset_routing_config() -> None:
    """Forget the cached tree (tests)."""
    global _routing_cache, _routing_cache_path
    _routing_cache = None
    _routing_cache_path = None
