"""
Threshold evaluator for KPI alert conditions.

This module provides the ThresholdEvaluator class which decides whether a
KPI comparison crosses the INFO/WARNING/CRITICAL bands of five independent
conditions:

    REVENUE_DROP      GTV % change             WARNING <= -warning, CRITICAL <= -critical
    FAILED_SPIKE      failed-count % change    WARNING >= +warning, CRITICAL >= +critical
    LOW_SUCCESS_RATE  current success rate     WARNING < warning,  CRITICAL < critical
    HIGH_PENDING      current pending count    WARNING >= warning, CRITICAL >= critical
    HIGH_VOLUME_DAY   current volume           INFO > multiplier x trailing daily mean

Key Features:
    - CRITICAL wins over WARNING, at most one candidate per condition
    - Zero baselines skip the condition instead of synthesizing a change
    - Disabled configuration short-circuits to no candidates
    - Uses Decimal for all comparisons

Example:
    >>> evaluator = ThresholdEvaluator()
    >>> candidates = evaluator.evaluate(comparison, ThresholdConfig())
    >>> [c.alert_type for c in candidates]
    [<AlertType.REVENUE_DROP: 'REVENUE_DROP'>]
"""

from decimal import Decimal
from typing import List, Optional

import structlog

from txn_analytics.config.models import ThresholdBand, ThresholdConfig
from txn_analytics.metrics.kpi import round_half_up
from txn_analytics.models.alerts import AlertSeverity, AlertType, CandidateAlert
from txn_analytics.models.stats import KPIComparison

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

PERIOD_DAY_OVER_DAY = "Today vs Yesterday"
PERIOD_LAST_24H = "Last 24 hours"
PERIOD_CURRENT = "Current"
PERIOD_VS_BASELINE = "Today vs 30-day average"


def _at_least(value: Decimal, band: ThresholdBand) -> Optional[AlertSeverity]:
    """Band check for rising metrics; critical is checked first."""
    if value >= band.critical:
        return AlertSeverity.CRITICAL
    if value >= band.warning:
        return AlertSeverity.WARNING
    return None


def _below(value: Decimal, band: ThresholdBand) -> Optional[AlertSeverity]:
    """Band check for floor metrics; critical is checked first."""
    if value < band.critical:
        return AlertSeverity.CRITICAL
    if value < band.warning:
        return AlertSeverity.WARNING
    return None


def _band_level(band: ThresholdBand, severity: AlertSeverity) -> Decimal:
    return band.critical if severity == AlertSeverity.CRITICAL else band.warning


class ThresholdEvaluator:
    """
    Evaluates KPI comparisons against configured severity bands.

    Stateless and pure: configuration is passed on every call and nothing
    is retained between evaluations. Never raises for data shape; zero
    denominators are already resolved in the comparison.

    Attributes:
        None - this is a stateless evaluator.

    Example:
        >>> evaluator = ThresholdEvaluator()
        >>> evaluator.evaluate(comparison, config, baseline_daily_volume=Decimal("400"))
    """

    def evaluate(
        self,
        comparison: KPIComparison,
        config: ThresholdConfig,
        baseline_daily_volume: Optional[Decimal] = None,
    ) -> List[CandidateAlert]:
        """
        Evaluate all five conditions.

        Args:
            comparison: Current vs previous KPI comparison.
            config: Threshold bands and the global enabled flag.
            baseline_daily_volume: Mean daily transaction count over the
                trailing baseline window. None skips the high volume rule.

        Returns:
            List[CandidateAlert]: Zero or more candidates, one per condition
                at most, in condition order.
        """
        if not config.enabled:
            logger.debug("threshold_evaluation_disabled")
            return []

        candidates: List[CandidateAlert] = []
        for candidate in (
            self._check_revenue_drop(comparison, config),
            self._check_failed_spike(comparison, config),
            self._check_success_rate(comparison, config),
            self._check_pending(comparison, config),
            self._check_high_volume(comparison, config, baseline_daily_volume),
        ):
            if candidate is not None:
                logger.info(
                    "threshold_crossed",
                    alert_type=candidate.alert_type.value,
                    severity=candidate.severity.value,
                    metric_value=str(candidate.metric_value),
                    threshold_value=str(candidate.threshold_value),
                )
                candidates.append(candidate)

        return candidates

    def _check_revenue_drop(
        self,
        comparison: KPIComparison,
        config: ThresholdConfig,
    ) -> Optional[CandidateAlert]:
        current_gtv = comparison.current.total_gtv
        previous_gtv = comparison.previous.total_gtv

        if previous_gtv <= ZERO:
            logger.debug("revenue_check_skipped", reason="no_previous_revenue")
            return None

        change = comparison.change("total_gtv")
        if change >= ZERO:
            return None

        drop = -change
        band = config.revenue_drop
        severity = _at_least(drop, band)
        if severity is None:
            return None

        threshold = _band_level(band, severity)
        reason = (
            f"Revenue dropped by {drop:.1f}% ({severity.value} threshold: {threshold:.1f}%)"
            f". Current: {current_gtv:.2f}, Previous: {previous_gtv:.2f}"
        )
        return CandidateAlert(
            alert_type=AlertType.REVENUE_DROP,
            severity=severity,
            metric_value=drop,
            threshold_value=threshold,
            reason=reason,
            comparison_period=PERIOD_DAY_OVER_DAY,
        )

    def _check_failed_spike(
        self,
        comparison: KPIComparison,
        config: ThresholdConfig,
    ) -> Optional[CandidateAlert]:
        current_failed = comparison.current.failed_count
        previous_failed = comparison.previous.failed_count

        if current_failed == 0 and previous_failed == 0:
            logger.debug("failed_spike_check_skipped", reason="no_failed_transactions")
            return None

        change = comparison.change("failed_count")
        if change <= ZERO:
            return None

        band = config.failed_spike
        severity = _at_least(change, band)
        if severity is None:
            return None

        threshold = _band_level(band, severity)
        reason = (
            f"Failed transactions increased by {change:.1f}% "
            f"({severity.value} threshold: {threshold:.1f}%)"
            f". Current: {current_failed}, Previous: {previous_failed}"
        )
        return CandidateAlert(
            alert_type=AlertType.FAILED_SPIKE,
            severity=severity,
            metric_value=change,
            threshold_value=threshold,
            reason=reason,
            comparison_period=PERIOD_DAY_OVER_DAY,
        )

    def _check_success_rate(
        self,
        comparison: KPIComparison,
        config: ThresholdConfig,
    ) -> Optional[CandidateAlert]:
        current = comparison.current
        rate = current.success_rate

        # An empty window reports 0% without meaning every transaction failed
        if current.total_transactions == 0 and rate == ZERO:
            logger.debug("success_rate_check_skipped", reason="no_transactions")
            return None

        band = config.success_rate
        severity = _below(rate, band)
        if severity is None:
            return None

        threshold = _band_level(band, severity)
        reason = f"Success rate is {rate:.1f}% ({severity.value} threshold: {threshold:.1f}%)"
        return CandidateAlert(
            alert_type=AlertType.LOW_SUCCESS_RATE,
            severity=severity,
            metric_value=rate,
            threshold_value=threshold,
            reason=reason,
            comparison_period=PERIOD_LAST_24H,
        )

    def _check_pending(
        self,
        comparison: KPIComparison,
        config: ThresholdConfig,
    ) -> Optional[CandidateAlert]:
        pending = Decimal(comparison.current.pending_count)

        band = config.pending
        severity = _at_least(pending, band)
        if severity is None:
            return None

        threshold = _band_level(band, severity)
        reason = (
            f"Pending transactions: {pending} ({severity.value} threshold: {threshold})"
        )
        return CandidateAlert(
            alert_type=AlertType.HIGH_PENDING,
            severity=severity,
            metric_value=pending,
            threshold_value=threshold,
            reason=reason,
            comparison_period=PERIOD_CURRENT,
        )

    def _check_high_volume(
        self,
        comparison: KPIComparison,
        config: ThresholdConfig,
        baseline_daily_volume: Optional[Decimal],
    ) -> Optional[CandidateAlert]:
        volume = Decimal(comparison.current.total_transactions)

        if baseline_daily_volume is None or baseline_daily_volume <= ZERO:
            logger.debug("high_volume_check_skipped", reason="no_baseline")
            return None
        if volume == ZERO:
            return None

        if volume <= baseline_daily_volume * config.high_volume_multiplier:
            return None

        mean = round_half_up(baseline_daily_volume)
        above = (volume - baseline_daily_volume) / baseline_daily_volume * HUNDRED
        reason = (
            f"Today's transaction volume ({volume}) is {above:.1f}% higher than "
            f"the {config.baseline_days}-day average ({mean})"
        )
        return CandidateAlert(
            alert_type=AlertType.HIGH_VOLUME_DAY,
            severity=AlertSeverity.INFO,
            metric_value=volume,
            threshold_value=mean,
            reason=reason,
            comparison_period=PERIOD_VS_BASELINE,
        )


def create_threshold_evaluator() -> ThresholdEvaluator:
    """
    Factory function to create a ThresholdEvaluator.

    Returns:
        ThresholdEvaluator: A new evaluator instance.

    Example:
        >>> evaluator = create_threshold_evaluator()
    """
    return ThresholdEvaluator()
