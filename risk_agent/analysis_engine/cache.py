"""
Time-bounded statistics cache keyed by (category, key).

Each category has its own TTL. Expiry is lazy: an entry older than its TTL
is treated as absent on read and dropped. Writes are last-writer-wins and
store whole immutable values, so two concurrent misses recomputing the same
key is harmless.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from risk_agent.agent_logging import get_logger
from risk_agent.config.settings import CacheTTLs

logger = get_logger(__name__)

MARKET_KEY = "*"


class CacheCategory(str, Enum):
    ADDRESS_HISTORY = "history"
    ADDRESS_STATS = "stats"
    MARKET_STATS = "market"
    USER_STATS = "user"
    VELOCITY_STATS = "velocity"


def ttls_from_config(config: CacheTTLs) -> dict[CacheCategory, float]:
    return {
        CacheCategory.ADDRESS_HISTORY: config.address_history_sec,
        CacheCategory.ADDRESS_STATS: config.address_stats_sec,
        CacheCategory.MARKET_STATS: config.market_stats_sec,
        CacheCategory.USER_STATS: config.user_stats_sec,
        CacheCategory.VELOCITY_STATS: config.velocity_stats_sec,
    }


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    created_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.created_at < ttl


class StatsCache:
    """
    In-memory TTL cache for per-address and market-wide statistics.

    clock defaults to time.monotonic; tests inject a controllable clock.
    """

    def __init__(
        self,
        ttls: Mapping[CacheCategory, float] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttls = dict(ttls) if ttls is not None else ttls_from_config(CacheTTLs())
        missing = [c.value for c in CacheCategory if c not in self._ttls]
        if missing:
            raise ValueError(f"missing TTL for cache categories: {missing}")
        self._clock = clock
        self._entries: dict[tuple[CacheCategory, str], CacheEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: CacheTTLs, *, clock: Callable[[], float] = time.monotonic) -> "StatsCache":
        return cls(ttls_from_config(config), clock=clock)

    def ttl(self, category: CacheCategory) -> float:
        return self._ttls[category]

    def get(self, category: CacheCategory, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get((category, key))
            if entry is None:
                return None
            if not entry.is_fresh(now, self._ttls[category]):
                del self._entries[(category, key)]
                logger.debug("stats_cache_expired", category=category.value, key=key)
                return None
            return entry.value

    def put(self, category: CacheCategory, key: str, value: Any) -> None:
        """Store a fully computed value, replacing any previous entry."""
        entry = CacheEntry(value=value, created_at=self._clock())
        with self._lock:
            self._entries[(category, key)] = entry

    def invalidate(self, category: CacheCategory | None = None, key: str | None = None) -> int:
        """Drop matching entries; returns how many were removed."""
        with self._lock:
            doomed = [
                k for k in self._entries
                if (category is None or k[0] == category) and (key is None or k[1] == key)
            ]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
