"""Routing tree and resolution result models."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StaticNumber(BaseModel):
    """A pre-known number usable without any network call."""

    model_config = ConfigDict(frozen=True)

    number: str
    weight: float = 0

    @field_validator("number", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> str:
        # YAML turns unquoted phone numbers into ints
        return str(v) if v is not None else ""


class Allocation(BaseModel):
    """Relative split between the live API and the static pool."""

    model_config = ConfigDict(frozen=True)

    api_weight: float = 0
    static_weight: float = 0

    @property
    def is_complete(self) -> bool:
        return all(
            math.isfinite(w) and w > 0 for w in (self.api_weight, self.static_weight)
        )


class Agency(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    weight: float = 0
    allocation: Optional[Allocation] = None
    static_numbers: List[StaticNumber] = Field(default_factory=list)

    @property
    def has_static_route(self) -> bool:
        """True when both allocation sides are positive and the pool is non-empty.

        Partial allocations fall through to the API path.
        """
        return bool(
            self.allocation is not None
            and self.allocation.is_complete
            and self.static_numbers
        )

    @classmethod
    def placeholder(cls, agency_id: int) -> "Agency":
        """Ad-hoc record for a forced id the provider does not list."""
        return cls(id=agency_id, name=f"agency_{agency_id}")


class UpstreamProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    base: str
    weight: float = 0
    agencies: List[Agency] = Field(default_factory=list)

    @field_validator("base")
    @classmethod
    def strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def find_agency(self, agency_id: int) -> Optional[Agency]:
        return next((a for a in self.agencies if a.id == agency_id), None)

    def contact_url(self, agency_id: int) -> str:
        return f"{self.base}/agency/{agency_id}/random-contact"


class RoutingConfig(BaseModel):
    """The whole provider tree, immutable for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    only_ads: Optional[bool] = None
    providers: List[UpstreamProvider] = Field(default_factory=list)

    def find_provider(self, key: str) -> Optional[UpstreamProvider]:
        wanted = key.strip().lower()
        return next((p for p in self.providers if p.key.lower() == wanted), None)


@dataclass
class FetchResult:
    """One successful upstream response."""
    payload: Dict[str, Any]
    elapsed_ms: int
    http_status: int


@dataclass
class UpstreamMeta:
    """Diagnostics of the API route, returned whatever the outcome."""
    upstream_key: str
    upstream_base: str
    api_url: str
    attempts: int = 0
    last_error: Optional[str] = None
    ms: Optional[int] = None
    status: Optional[int] = None
    attempt_timings_ms: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upstream_key": self.upstream_key,
            "upstream_base": self.upstream_base,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "ms": self.ms,
            "status": self.status,
            "api_url": self.api_url,
            "attempt_timings_ms": list(self.attempt_timings_ms),
        }


@dataclass(frozen=True)
class StaticRoute:
    number: str
    kind: Literal["static"] = "static"


@dataclass(frozen=True)
class ApiRoute:
    api_url: str
    kind: Literal["api"] = "api"


RouteDecision = Union[StaticRoute, ApiRoute]


@dataclass
class ResolutionResult:
    """A freshly resolved number and the path that produced it."""
    number: str
    upstream_key: str
    upstream_base: str
    agency_id: int
    agency_name: str
    chosen_from: str  # ads.whatsapp, whatsapp, static
    only_ads: Optional[bool] = None
    allocation: Optional[Allocation] = None
    upstream: Optional[UpstreamMeta] = None
    ads_len: Optional[int] = None
    normal_len: Optional[int] = None

    def to_response(self, mode: str, ms: int) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "number": self.number,
            "mode": mode,
            "upstream_key": self.upstream_key,
            "upstream_base": self.upstream_base,
            "agency_id": self.agency_id,
            "agency_name": self.agency_name,
            "chosen_from": self.chosen_from,
        }
        if self.only_ads is not None:
            body["only_ads"] = self.only_ads
        body["allocation"] = self.allocation.model_dump() if self.allocation else None
        body["ms"] = ms
        if self.upstream is not None:
            body["upstream"] = self.upstream.to_dict()
        return body

    def to_cache_meta(self, stored_at: datetime) -> Dict[str, Any]:
        return {
            "upstream_key": self.upstream_key,
            "upstream_base": self.upstream_base,
            "agency_id": self.agency_id,
            "agency_name": self.agency_name,
            "source": self.chosen_from,
            "only_ads": self.only_ads,
            "allocation": self.allocation.model_dump() if self.allocation else None,
            "ts": stored_at.isoformat(),
            "upstream": self.upstream.to_dict() if self.upstream else None,
            "ads_len": self.ads_len,
            "normal_len": self.normal_len,
        }


@dataclass(frozen=True)
class CachedResult:
    result: ResolutionResult
    stored_at: datetime

    @property
    def number(self) -> str:
        return self.result.number

    def meta(self) -> Dict[str, Any]:
        return self.result.to_cache_meta(self.stored_at)
