"""
In-memory yield cache.

Created once at process start and handed to the yield service. Holds the
latest snapshot (expires after a TTL) and one historical series per period
(kept for the life of the process).
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional

from treasury_app.domain.models import HistoricalSeries, YieldSnapshot


class YieldCache:
    def __init__(
        self,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl_seconds = ttl_seconds
        self._clock = clock

        self._latest: Optional[YieldSnapshot] = None
        self._latest_at: Optional[float] = None
        self._historical: Dict[str, HistoricalSeries] = {}

        # One refill lock per cache key
        self.latest_lock = asyncio.Lock()
        self._period_locks: Dict[str, asyncio.Lock] = {}

    def get_latest(self) -> Optional[YieldSnapshot]:
        """Latest snapshot if younger than the TTL, else None"""
        if self._latest is None or self._latest_at is None:
            return None
        if self._clock() - self._latest_at >= self._ttl_seconds:
            return None
        return self._latest

    def set_latest(self, snapshot: YieldSnapshot) -> None:
        self._latest = snapshot
        self._latest_at = self._clock()

    def get_historical(self, period: str) -> Optional[HistoricalSeries]:
        return self._historical.get(period)

    def set_historical(self, period: str, series: HistoricalSeries) -> None:
        self._historical[period] = series

    def cached_periods(self) -> list[str]:
        return sorted(self._historical)

    def period_lock(self, period: str) -> asyncio.Lock:
        lock = self._period_locks.get(period)
        if lock is None:
            lock = asyncio.Lock()
            self._period_locks[period] = lock
        return lock
