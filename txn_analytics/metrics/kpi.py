"""
KPI Calculator for period snapshots and period-over-period comparisons.

This module turns raw PeriodStats into null-safe KPI snapshots and computes
per-metric changes between two adjacent windows, with full Decimal precision.

Key Formulas:
    percent_change = (current - previous) / previous * 100
    percent_change = 100 if previous == 0 and current > 0
    percent_change = 0   if previous == 0 and current == 0
    success_rate_change = current_rate - previous_rate   (percentage points)

Rounding is round-half-up to 2 decimals, applied once at the final step.

Classes:
    KPICalculator: Stateless snapshot and comparison calculator
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import structlog

from txn_analytics.models.stats import (
    AMOUNT_FIELDS,
    COUNT_FIELDS,
    METRIC_NAMES,
    KPIComparison,
    KPISnapshot,
    PeriodStats,
)

logger = structlog.get_logger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round_half_up(value: Decimal) -> Decimal:
    """Round to 2 decimals, half away from zero."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percent_change(previous: Decimal, current: Decimal) -> Decimal:
    """
    Relative change from previous to current in percent.

    Never divides by zero: a zero baseline yields 100% when the current
    value is positive and 0% otherwise.

    Args:
        previous: Baseline value (>= 0).
        current: New value (>= 0).

    Returns:
        Decimal: Change rounded to 2 decimals.

    Example:
        >>> percent_change(Decimal("10000"), Decimal("7500"))
        Decimal('-25.00')
    """
    if previous == ZERO:
        return round_half_up(HUNDRED) if current > ZERO else round_half_up(ZERO)
    return round_half_up((current - previous) / previous * HUNDRED)


class KPICalculator:
    """
    Stateless calculator for KPI snapshots and comparisons.

    Pure: the same inputs always produce equal outputs and nothing is
    retained between calls.

    Edge Cases Handled:
        - Absent fields: coerced to zero, never an error
        - Zero previous values: resolved by the 0%/100% convention
        - Success rate: change is an absolute point delta, not relative

    Example:
        >>> calc = KPICalculator()
        >>> comparison = calc.compare(current_stats, previous_stats)
        >>> comparison.changes["total_gtv"]
        Decimal('-25.00')
    """

    def compute_snapshot(self, stats: PeriodStats) -> KPISnapshot:
        """
        Convert raw statistics into a null-safe snapshot.

        Args:
            stats: Aggregates for one window.

        Returns:
            KPISnapshot: Every numeric present, success_rate rounded to 2dp.
        """
        values = self._coerce(stats)
        values["success_rate"] = round_half_up(values["success_rate"])
        return KPISnapshot(**values)

    def compare(
        self,
        current: PeriodStats,
        previous: PeriodStats,
        current_period: Optional[str] = None,
        previous_period: Optional[str] = None,
    ) -> KPIComparison:
        """
        Compare two adjacent windows metric by metric.

        Changes are computed from the unrounded coerced values so rounding
        happens exactly once per metric.

        Args:
            current: Aggregates for the current window.
            previous: Aggregates for the preceding window.
            current_period: Optional label for the current window.
            previous_period: Optional label for the previous window.

        Returns:
            KPIComparison: Snapshots plus a change entry for every metric.

        Example:
            >>> calc.compare(
            ...     PeriodStats(total_gtv=Decimal("7500")),
            ...     PeriodStats(total_gtv=Decimal("10000")),
            ... ).changes["total_gtv"]
            Decimal('-25.00')
        """
        cur = self._coerce(current)
        prev = self._coerce(previous)

        changes: Dict[str, Decimal] = {}
        for metric in METRIC_NAMES:
            if metric == "success_rate":
                changes[metric] = round_half_up(cur[metric] - prev[metric])
            else:
                changes[metric] = percent_change(
                    Decimal(prev[metric]), Decimal(cur[metric])
                )

        logger.debug(
            "kpi_comparison_computed",
            gtv_change=str(changes["total_gtv"]),
            transactions_change=str(changes["total_transactions"]),
            success_rate_change=str(changes["success_rate"]),
        )

        return KPIComparison(
            current=self.compute_snapshot(current),
            previous=self.compute_snapshot(previous),
            changes=changes,
            current_period=current_period,
            previous_period=previous_period,
        )

    @staticmethod
    def _coerce(stats: PeriodStats) -> Dict[str, Any]:
        """Replace absent fields with zero of the right type."""
        values: Dict[str, Any] = {}
        for name in COUNT_FIELDS:
            value = getattr(stats, name)
            values[name] = value if value is not None else 0
        for name in AMOUNT_FIELDS:
            value = getattr(stats, name)
            values[name] = value if value is not None else ZERO
        rate = stats.success_rate
        values["success_rate"] = rate if rate is not None else ZERO
        return values


def create_kpi_calculator() -> KPICalculator:
    """
    Factory function to create a KPICalculator.

    Returns:
        KPICalculator: A new calculator instance.
    """
    return KPICalculator()
