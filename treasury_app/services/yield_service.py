"""
Yield Service
Latest yield curve and historical series on top of the Treasury feed

- Latest snapshot cached for the cache TTL (1 hour by default)
- Historical series built once per period and cached for the process lifetime
- At most one outstanding fetch per cache key
"""

import asyncio
import calendar
import logging
import time
from datetime import date, timedelta
from typing import Callable, Dict, List, Set, Tuple

from treasury_app.domain.errors import FetchError, InvalidPeriodError, NoDataError
from treasury_app.domain.models import (
    HISTORICAL_PERIODS,
    HISTORICAL_TERMS,
    VALID_TERMS,
    HistoricalSeries,
    HistoricalYieldPoint,
    YieldPoint,
    YieldSnapshot,
)
from treasury_app.infrastructure.cache.yield_cache import YieldCache
from treasury_app.infrastructure.market_data.treasury_feed import FeedEntry, TreasuryFeedClient
from treasury_app.utils.time import today_utc

logger = logging.getLogger(__name__)

# Period -> (years, months, days) to subtract from today
PERIOD_OFFSETS: Dict[str, Tuple[int, int, int]] = {
    "1W": (0, 0, 7),
    "1M": (0, 1, 0),
    "3M": (0, 3, 0),
    "6M": (0, 6, 0),
    "1Y": (1, 0, 0),
    "5Y": (5, 0, 0),
    "10Y": (10, 0, 0),
    "30Y": (30, 0, 0),
}

MONTHLY_SAMPLED_PERIODS = {"30Y"}
WEEKLY_SAMPLED_PERIODS = {"10Y", "5Y"}


def invalid_period_message() -> str:
    return "Invalid period. Must be one of: " + ", ".join(HISTORICAL_PERIODS)


def shift_months(day: date, months: int) -> date:
    """Move `day` by a number of calendar months, clamping to the month's last day"""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def date_range_for_period(period: str, today: date) -> Tuple[date, date]:
    """Inclusive [start, end] for a historical period ending today"""
    if period not in PERIOD_OFFSETS:
        raise InvalidPeriodError(invalid_period_message())
    years, months, days = PERIOD_OFFSETS[period]
    start = shift_months(today, -(years * 12 + months)) - timedelta(days=days)
    return start, today


def downsample(points: List[HistoricalYieldPoint], period: str) -> List[HistoricalYieldPoint]:
    """
    Reduce point density for long periods.

    30Y keeps one point per calendar month, 10Y/5Y one per ISO week; the
    latest date in each bucket wins. Shorter periods pass through.
    """
    if period in MONTHLY_SAMPLED_PERIODS:
        def bucket(d: date):
            return (d.year, d.month)
    elif period in WEEKLY_SAMPLED_PERIODS:
        def bucket(d: date):
            iso = d.isocalendar()
            return (iso[0], iso[1])
    else:
        return points

    buckets: Dict[tuple, HistoricalYieldPoint] = {}
    for point in points:
        key = bucket(point.date)
        existing = buckets.get(key)
        if existing is None or point.date > existing.date:
            buckets[key] = point

    return sorted(buckets.values(), key=lambda p: p.date)


def build_historical_points(
    entries: List[FeedEntry],
    start: date,
    end: date,
) -> List[HistoricalYieldPoint]:
    """Keep entries dated within [start, end] (unparseable dates skipped), oldest first"""
    by_date: Dict[date, HistoricalYieldPoint] = {}
    for entry in entries:
        entry_date = entry.trade_date
        if entry_date is None:
            continue
        if entry_date < start or entry_date > end:
            continue
        by_date[entry_date] = HistoricalYieldPoint(
            date=entry_date,
            ten_year=entry.rate("10Y"),
            five_year=entry.rate("5Y"),
            two_year=entry.rate("2Y"),
        )
    return [by_date[d] for d in sorted(by_date)]


def latest_snapshot(entries: List[FeedEntry]) -> YieldSnapshot:
    """Snapshot of the most recent dated entry"""
    dated = [(entry.trade_date, entry) for entry in entries if entry.trade_date is not None]
    if not dated:
        raise NoDataError("no entries found in treasury feed")

    entry_date, entry = max(dated, key=lambda pair: pair[0])
    return YieldSnapshot(
        date=entry_date,
        yields=[YieldPoint(term=term, rate=entry.rate(term)) for term in VALID_TERMS],
    )


class YieldService:
    """
    Yield Service

    Reads go through the cache first without locking; a miss takes the
    key's lock and re-checks before fetching, so concurrent callers share
    one fetch.
    """

    def __init__(
        self,
        cache: YieldCache,
        feed_client: TreasuryFeedClient,
        today: Callable[[], date] = today_utc,
    ):
        self.cache = cache
        self.feed_client = feed_client
        self._today = today
        self._background_tasks: Set[asyncio.Task] = set()

    async def get_latest_yields(self) -> YieldSnapshot:
        cached = self.cache.get_latest()
        if cached is not None:
            return cached

        async with self.cache.latest_lock:
            # Another caller may have refilled while we waited
            cached = self.cache.get_latest()
            if cached is not None:
                return cached

            year = self._today().year
            logger.info("Latest yields cache miss, fetching %s feed", year)
            entries = await self.feed_client.fetch_year(year)
            snapshot = latest_snapshot(entries)
            self.cache.set_latest(snapshot)

        logger.info("Latest yields refreshed (as of %s)", snapshot.date.isoformat())
        return snapshot

    async def get_historical_yields(self, period: str) -> HistoricalSeries:
        if period not in PERIOD_OFFSETS:
            raise InvalidPeriodError(invalid_period_message())

        cached = self.cache.get_historical(period)
        if cached is not None:
            return cached

        async with self.cache.period_lock(period):
            cached = self.cache.get_historical(period)
            if cached is not None:
                return cached

            logger.info("Historical yields cache miss for %s", period)
            started = time.perf_counter()

            # -----------------------------
            # Date range + per-year fetch
            # -----------------------------
            start, end = date_range_for_period(period, self._today())
            entries = await self.feed_client.fetch_years(start.year, end.year)

            # -----------------------------
            # Filter, trim, downsample
            # -----------------------------
            points = downsample(build_historical_points(entries, start, end), period)
            if not points:
                raise NoDataError(
                    f"no entries found in treasury feed between {start.isoformat()} "
                    f"and {end.isoformat()}"
                )

            series = HistoricalSeries(
                period=period,
                start_date=start,
                end_date=end,
                data=points,
                terms=list(HISTORICAL_TERMS),
            )
            self.cache.set_historical(period, series)

        logger.info(
            "Historical yields for %s cached: %s points in %.2fs",
            period, len(points), time.perf_counter() - started,
        )
        return series

    # ------------------------------------------------------------------
    # Cache warming
    # ------------------------------------------------------------------

    def warm_cache(self) -> List[asyncio.Task]:
        """
        Start one background task per historical period and return immediately.

        The tasks are owned by this service, not by the request or startup
        hook that triggered them. Failures are logged and never raised.
        """
        logger.info("Starting historical yield cache warming for all periods")
        tasks = []
        for period in HISTORICAL_PERIODS:
            task = asyncio.create_task(self._warm_period(period), name=f"warm-yields-{period}")
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
            tasks.append(task)
        return tasks

    async def _warm_period(self, period: str) -> None:
        started = time.perf_counter()
        try:
            await self.get_historical_yields(period)
        except (FetchError, NoDataError) as e:
            logger.error("Failed to warm yield cache for %s: %s", period, e)
            return
        except Exception:
            logger.exception("Unexpected error warming yield cache for %s", period)
            return
        logger.info(
            "Yield cache warmed for %s in %.2fs", period, time.perf_counter() - started
        )

    @property
    def pending_warm_tasks(self) -> int:
        return len(self._background_tasks)

    async def shutdown(self) -> None:
        """Cancel any cache warming still in flight"""
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %s pending cache warming task(s)", len(tasks))
