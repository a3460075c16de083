"""
Weighted random selection shared by every routing step.

The same selector picks providers, agencies, the api/static route and static
numbers. Candidates can be any object; the weight is read through a key
function so pydantic models, dicts and plain tuples all work.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Mapping
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_weight(item: Any) -> Any:
    """Read ``weight`` from a mapping key or an attribute."""
    if isinstance(item, Mapping):
        return item.get("weight", 0)
    return getattr(item, "weight", 0)


def _as_weight(value: Any) -> float:
    """Coerce to a usable weight; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(weight) or weight <= 0:
        return 0.0
    return weight


class WeightedSelector:
    """
    Weighted random picker with an injectable random source.

    Passing a seeded ``random.Random`` makes the selection path reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @staticmethod
    def eligible(
        candidates: Optional[Iterable[T]],
        weight: Callable[[T], Any] = default_weight,
    ) -> List[Tuple[T, float]]:
        """Candidates with a positive finite weight, in their given order."""
        return [
            (item, w)
            for item, w in ((item, _as_weight(weight(item))) for item in (candidates or ()))
            if w > 0
        ]

    def select(
        self,
        candidates: Optional[Iterable[T]],
        weight: Callable[[T], Any] = default_weight,
    ) -> Optional[T]:
        """Pick one candidate proportionally to its weight.

        Returns None only when no candidate has a positive weight.
        """
        clean = self.eligible(candidates, weight)
        if not clean:
            return None

        # Relative to the largest weight so the total stays finite
        peak = max(w for _, w in clean)
        scaled = [(item, w / peak) for item, w in clean]
        r = self.rng.random() * sum(w for _, w in scaled)

        for item, w in scaled:
            r -= w
            if r <= 0:
                return item

        # Float rounding can leave r a hair above zero
        return clean[-1][0]

    def choice(self, items: Optional[Sequence[T]]) -> Optional[T]:
        """Unweighted uniform pick."""
        if not items:
            return None
        return items[int(self.rng.random() * len(items))]
