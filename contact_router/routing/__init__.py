"""
Routing Module

Per-request decision engine:
- WeightedSelector: weighted and uniform random picks
- RoutingResolver: provider -> agency -> api/static route -> number
"""

from .weighted_selector import WeightedSelector
from .resolver import RoutingResolver

__all__ = [
    "WeightedSelector",
    "RoutingResolver",
]
