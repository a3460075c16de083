from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..models import CachedResult, ResolutionResult


class ResultCache:
    """
    Single-slot memory of the last successfully resolved number.

    - No expiry: a stale value keeps being served while upstreams are down
    - Whole-entry replacement, last writer wins
    - Lives only as long as the process
    """

    def __init__(self) -> None:
        self._entry: Optional[CachedResult] = None
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def put(self, result: ResolutionResult) -> CachedResult:
        entry = CachedResult(result=result, stored_at=datetime.now(timezone.utc))
        with self._lock:
            self._entry = entry
        return entry

    def get(self) -> Optional[CachedResult]:
        with self._lock:
            entry = self._entry
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
            return entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None
            self.hits = 0
            self.misses = 0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            entry = self._entry
            return {
                "has_value": entry is not None,
                "stored_at": entry.stored_at.isoformat() if entry else None,
                "hits": self.hits,
                "misses": self.misses,
            }
