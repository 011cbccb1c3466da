"""
Cached KPI query service for interactive reads.

Interactive reads go request -> ResultCache -> (on miss) MetricsStore +
KPICalculator -> cached. Live windows use the short KPI TTL, windows that
ended in the past use the longer history TTL, and daily chart series use
the chart TTL.

Example:
    >>> service = KPIQueryService(metrics_store, ResultCache(500), CacheConfig())
    >>> comparison = await service.get_comparison(period_days=30)
    >>> comparison.current_period
    'Last 30 days'
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional

import structlog
from pydantic import BaseModel, Field

from txn_analytics.config.models import CacheConfig, ComparisonConfig
from txn_analytics.interfaces.stores import MetricsStore
from txn_analytics.metrics.kpi import KPICalculator
from txn_analytics.models.stats import KPIComparison, KPISnapshot
from txn_analytics.storage.result_cache import ResultCache, build_cache_key

logger = structlog.get_logger(__name__)


class DailyKPI(BaseModel):
    """KPI snapshot for one calendar day (UTC)."""

    model_config = {"frozen": True, "extra": "forbid"}

    day: date = Field(..., description="Calendar day (UTC)")
    snapshot: KPISnapshot = Field(..., description="KPIs for the day")


class KPIQueryService:
    """
    Read path for KPI snapshots, comparisons and daily series.

    Attributes:
        metrics_store: Source of period statistics.
        cache: Shared result cache.
        cache_config: TTLs and the cache enable switch.
        comparison_config: Default period length and series limits.
        calculator: KPI calculator.
    """

    def __init__(
        self,
        metrics_store: MetricsStore,
        cache: ResultCache,
        cache_config: Optional[CacheConfig] = None,
        comparison_config: Optional[ComparisonConfig] = None,
        calculator: Optional[KPICalculator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.metrics_store = metrics_store
        self.cache = cache
        self.cache_config = cache_config or CacheConfig()
        self.comparison_config = comparison_config or ComparisonConfig()
        self.calculator = calculator or KPICalculator()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _cached(self, key: str, ttl: int, compute):
        if not self.cache_config.enabled:
            return await compute()
        return await self.cache.aget_or_compute(key, ttl, compute)

    async def get_snapshot(self, start: datetime, end: datetime) -> KPISnapshot:
        """
        KPI snapshot for [start, end).

        Args:
            start: Inclusive window start.
            end: Exclusive window end.

        Returns:
            KPISnapshot: Null-safe KPIs for the window.

        Raises:
            ValueError: If start or end is naive, or start is not before end.
            DataUnavailableError: If the metrics store fails (not cached).
        """
        if start.tzinfo is None or end.tzinfo is None:
            raise ValueError(
                f"start ({start}) and end ({end}) must be timezone-aware datetimes"
            )
        if start >= end:
            raise ValueError(f"start ({start}) must be before end ({end})")

        live = end >= self._clock()
        ttl = (
            self.cache_config.kpi_ttl_seconds
            if live
            else self.cache_config.history_ttl_seconds
        )
        key = build_cache_key("kpi_snapshot", start=start, end=end)

        async def _compute() -> KPISnapshot:
            stats = await self.metrics_store.get_period_stats(start, end)
            return self.calculator.compute_snapshot(stats)

        return await self._cached(key, ttl, _compute)

    async def get_comparison(self, period_days: Optional[int] = None) -> KPIComparison:
        """
        Compare the last N days against the N days before them.

        Args:
            period_days: Length of each period; None or < 1 selects the
                configured default (30).

        Returns:
            KPIComparison: Labelled "Last N days" vs "N-2N days ago".

        Raises:
            DataUnavailableError: If the metrics store fails (not cached).
        """
        if period_days is None or period_days < 1:
            period_days = self.comparison_config.default_period_days

        key = build_cache_key("kpi_comparison", period_days=period_days)

        async def _compute() -> KPIComparison:
            now = self._clock()
            current_start = now - timedelta(days=period_days)
            previous_start = now - timedelta(days=period_days * 2)
            current = await self.metrics_store.get_period_stats(current_start, now)
            previous = await self.metrics_store.get_period_stats(
                previous_start, current_start
            )
            logger.debug("kpi_comparison_cache_miss", period_days=period_days)
            return self.calculator.compare(
                current,
                previous,
                current_period=f"Last {period_days} days",
                previous_period=f"{period_days}-{period_days * 2} days ago",
            )

        return await self._cached(key, self.cache_config.kpi_ttl_seconds, _compute)

    async def get_daily_series(self, start_day: date, end_day: date) -> List[DailyKPI]:
        """
        One KPI snapshot per UTC day from start_day to end_day inclusive.

        Raises:
            ValueError: If the range is reversed or longer than the
                configured maximum.
            DataUnavailableError: If the metrics store fails (not cached).
        """
        if end_day < start_day:
            raise ValueError(f"end_day ({end_day}) is before start_day ({start_day})")
        days = (end_day - start_day).days + 1
        if days > self.comparison_config.max_series_days:
            raise ValueError(
                f"Series of {days} days exceeds maximum "
                f"{self.comparison_config.max_series_days}"
            )

        key = build_cache_key("kpi_daily_series", start_day=start_day, end_day=end_day)

        async def _compute() -> List[DailyKPI]:
            series: List[DailyKPI] = []
            for offset in range(days):
                day = start_day + timedelta(days=offset)
                day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
                stats = await self.metrics_store.get_period_stats(
                    day_start, day_start + timedelta(days=1)
                )
                series.append(
                    DailyKPI(day=day, snapshot=self.calculator.compute_snapshot(stats))
                )
            return series

        return await self._cached(key, self.cache_config.chart_ttl_seconds, _compute)
