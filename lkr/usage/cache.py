"""
In-process TTL cache for cost reports.

Entries live for the process lifetime. Expiry is lazy: a stale entry is
ignored on read and overwritten by the next successful fetch, never evicted.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from lkr.usage.models import CostReport

DEFAULT_TTL_SECONDS = 3600


@dataclass
class CacheEntry:
    report: CostReport
    fetched_at: float


class UsageCache:
    """Thread-safe provider -> CostReport cache."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls) -> UsageCache:
        from lkr.config import get_config

        return cls(ttl_seconds=get_config().usage.cache_ttl_seconds)

    def get(self, provider: str) -> CostReport | None:
        """Return the cached report if it is younger than the TTL."""
        with self._lock:
            entry = self._entries.get(provider)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at < self.ttl_seconds:
            return entry.report
        return None

    def set(self, provider: str, report: CostReport) -> None:
        with self._lock:
            self._entries[provider] = CacheEntry(report=report, fetched_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
