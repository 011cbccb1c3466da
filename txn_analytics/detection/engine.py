"""
Alert engine orchestrating one evaluation cycle per scheduler tick.

This module provides the AlertEngine class which pulls period statistics,
compares adjacent windows, classifies threshold crossings, suppresses
duplicates and hands surviving alerts to the alert sink.

Cycle state machine:
    IDLE -> FETCHING -> EVALUATING -> DEDUPING -> PERSISTING -> IDLE

Any exception aborts the cycle and returns the engine to IDLE. Alerts are
fully built before the first write, so a failure while fetching, evaluating
or deduplicating never persists anything.

Example:
    >>> engine = AlertEngine(
    ...     metrics_store=metrics_store,
    ...     history=alert_store,
    ...     sink=alert_store,
    ...     config=app_config.alerts.thresholds,
    ... )
    >>> alerts = await engine.run_cycle()
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

import structlog

from txn_analytics.config.models import ThresholdConfig
from txn_analytics.detection.dedup import NotificationDeduper
from txn_analytics.detection.evaluator import ThresholdEvaluator
from txn_analytics.interfaces.stores import AlertHistoryLookup, AlertSink, MetricsStore
from txn_analytics.metrics.kpi import KPICalculator
from txn_analytics.models.alerts import Alert

logger = structlog.get_logger(__name__)


class EngineState(str, Enum):
    """Alert cycle states."""

    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    DEDUPING = "deduping"
    PERSISTING = "persisting"


class AlertEngine:
    """
    Runs alert evaluation cycles.

    Attributes:
        metrics_store: Source of period statistics.
        history: Alert history used for deduplication.
        sink: Destination for emitted alerts.
        config: Immutable threshold configuration.
        calculator: KPI calculator.
        evaluator: Threshold evaluator.
        deduper: Duplicate suppression.
        state: Current cycle state.
        cycles_completed: Number of cycles that finished.
        cycles_failed: Number of aborted cycles.
    """

    def __init__(
        self,
        metrics_store: MetricsStore,
        history: AlertHistoryLookup,
        sink: AlertSink,
        config: ThresholdConfig,
        calculator: Optional[KPICalculator] = None,
        evaluator: Optional[ThresholdEvaluator] = None,
        deduper: Optional[NotificationDeduper] = None,
    ) -> None:
        """
        Initialize the AlertEngine.

        Args:
            metrics_store: MetricsStore for period statistics.
            history: AlertHistoryLookup for duplicate checks.
            sink: AlertSink receiving new alerts.
            config: ThresholdConfig passed to every evaluation.
            calculator: Optional KPICalculator (default: new instance).
            evaluator: Optional ThresholdEvaluator (default: new instance).
            deduper: Optional NotificationDeduper (default: new instance).
        """
        self.metrics_store = metrics_store
        self.history = history
        self.sink = sink
        self.config = config
        self.calculator = calculator or KPICalculator()
        self.evaluator = evaluator or ThresholdEvaluator()
        self.deduper = deduper or NotificationDeduper()

        self.state = EngineState.IDLE
        self.cycles_completed = 0
        self.cycles_failed = 0
        self.last_cycle_at: Optional[datetime] = None

        logger.info(
            "alert_engine_initialized",
            enabled=config.enabled,
            window_days=config.window_days,
            baseline_days=config.baseline_days,
            duplicate_window_hours=config.duplicate_window_hours,
        )

    def _transition(self, state: EngineState) -> None:
        logger.debug("alert_engine_state", from_state=self.state.value, to_state=state.value)
        self.state = state

    async def run_cycle(self, now: Optional[datetime] = None) -> List[Alert]:
        """
        Run one evaluation cycle.

        The current window is [now - window, now) and the previous window is
        the adjacent [now - 2 * window, now - window). The high volume
        baseline covers the baseline_days preceding the current window.

        Args:
            now: Cycle time (default: current UTC time).

        Returns:
            List[Alert]: Alerts persisted in this cycle (may be empty).

        Raises:
            RuntimeError: If a cycle is already in progress.
            DataUnavailableError: If a collaborator fails; nothing is
                persisted when the failure precedes the persisting step.
        """
        if self.state != EngineState.IDLE:
            raise RuntimeError(f"Alert cycle already running (state={self.state.value})")

        now = now or datetime.now(timezone.utc)

        if not self.config.enabled:
            logger.debug("alert_cycle_skipped", reason="disabled")
            return []

        window = timedelta(days=self.config.window_days)
        current_start = now - window
        previous_start = current_start - window

        logger.info("alert_cycle_started", now=now.isoformat())

        try:
            self._transition(EngineState.FETCHING)
            current = await self.metrics_store.get_period_stats(current_start, now)
            previous = await self.metrics_store.get_period_stats(previous_start, current_start)
            baseline_volume = await self._baseline_volume(current_start)

            self._transition(EngineState.EVALUATING)
            comparison = self.calculator.compare(current, previous)
            candidates = self.evaluator.evaluate(
                comparison, self.config, baseline_daily_volume=baseline_volume
            )

            self._transition(EngineState.DEDUPING)
            survivors = await self.deduper.filter(
                candidates, self.history, self.config, now=now
            )
            alerts = [Alert.from_candidate(c, created_at=now) for c in survivors]

            self._transition(EngineState.PERSISTING)
            for alert in alerts:
                await self.sink.persist(alert)

        except Exception as e:
            self.cycles_failed += 1
            logger.error(
                "alert_cycle_aborted",
                state=self.state.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        finally:
            self._transition(EngineState.IDLE)

        self.cycles_completed += 1
        self.last_cycle_at = now

        logger.info(
            "alert_cycle_completed",
            candidates=len(candidates),
            suppressed=len(candidates) - len(survivors),
            emitted=len(alerts),
            alert_types=[a.alert_type.value for a in alerts],
        )
        return alerts

    async def _baseline_volume(self, current_start: datetime) -> Optional[Decimal]:
        """
        Mean transaction volume per window over the trailing baseline.

        Returns None when the baseline window holds no transactions.
        """
        baseline_days = self.config.baseline_days
        baseline = await self.metrics_store.get_period_stats(
            current_start - timedelta(days=baseline_days), current_start
        )
        total = baseline.total_transactions or 0
        if total <= 0:
            return None
        return Decimal(total) * self.config.window_days / baseline_days


def create_alert_engine(
    metrics_store: MetricsStore,
    history: AlertHistoryLookup,
    sink: AlertSink,
    config: ThresholdConfig,
) -> AlertEngine:
    """
    Factory function to create an AlertEngine with default components.

    Args:
        metrics_store: Source of period statistics.
        history: Alert history lookup.
        sink: Alert sink.
        config: Threshold configuration.

    Returns:
        AlertEngine: Configured engine.
    """
    return AlertEngine(
        metrics_store=metrics_store,
        history=history,
        sink=sink,
        config=config,
    )
