"""
Shared fixtures and model factories for the txn_analytics test suite.

Factories accept keyword overrides so each test states only the fields it
cares about.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

import pytest

from txn_analytics.config.models import ThresholdBand, ThresholdConfig
from txn_analytics.interfaces.stores import DataUnavailableError, MetricsStore
from txn_analytics.metrics.kpi import KPICalculator
from txn_analytics.models.alerts import (
    Alert,
    AlertSeverity,
    AlertType,
    CandidateAlert,
)
from txn_analytics.models.records import (
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)
from txn_analytics.models.stats import KPIComparison, PeriodStats
from txn_analytics.storage.memory import InMemoryAlertStore, InMemoryMetricsStore

T0 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def make_stats(**overrides) -> PeriodStats:
    """PeriodStats with every field absent unless overridden."""
    return PeriodStats(**overrides)


def make_comparison(
    current: Optional[PeriodStats] = None,
    previous: Optional[PeriodStats] = None,
) -> KPIComparison:
    """Run the real calculator so changes follow the production rules."""
    return KPICalculator().compare(current or make_stats(), previous or make_stats())


def make_config(**overrides) -> ThresholdConfig:
    """ThresholdConfig with default bands."""
    return ThresholdConfig(**overrides)


def make_band(warning, critical) -> ThresholdBand:
    return ThresholdBand(warning=warning, critical=critical)


def make_candidate(
    alert_type: AlertType = AlertType.REVENUE_DROP,
    severity: AlertSeverity = AlertSeverity.WARNING,
    **overrides,
) -> CandidateAlert:
    defaults = dict(
        alert_type=alert_type,
        severity=severity,
        metric_value=Decimal("25.00"),
        threshold_value=Decimal("20"),
        reason="Revenue dropped by 25.0% (warning threshold: 20.0%)",
        comparison_period="Today vs Yesterday",
    )
    defaults.update(overrides)
    return CandidateAlert(**defaults)


def make_alert(
    alert_type: AlertType = AlertType.REVENUE_DROP,
    created_at: datetime = T0,
    **overrides,
) -> Alert:
    defaults = dict(
        alert_type=alert_type,
        severity=AlertSeverity.WARNING,
        title=alert_type.title,
        description="test alert",
        metric_value=Decimal("25.00"),
        threshold_value=Decimal("20"),
        comparison_period="Today vs Yesterday",
        created_at=created_at,
    )
    defaults.update(overrides)
    return Alert(**defaults)


def make_transactions(
    count: int,
    at: datetime,
    amount: str = "100",
    status: TransactionStatus = TransactionStatus.SUCCESS,
    type: TransactionType = TransactionType.PAYIN,
) -> List[TransactionRecord]:
    """`count` identical transactions spaced one second apart from `at`."""
    return [
        TransactionRecord(
            amount=Decimal(amount),
            status=status,
            type=type,
            created_at=at + timedelta(seconds=i),
        )
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FixedMetricsStore(MetricsStore):
    """Returns preset stats per call window; records every window asked for."""

    def __init__(self, current: PeriodStats, previous: PeriodStats, baseline=None):
        self.current = current
        self.previous = previous
        self.baseline = baseline or PeriodStats.empty()
        self.calls: List[tuple] = []

    async def get_period_stats(self, start: datetime, end: datetime) -> PeriodStats:
        self.calls.append((start, end))
        # Call order within a cycle: current, previous, baseline
        index = (len(self.calls) - 1) % 3
        return (self.current, self.previous, self.baseline)[index]


class FailingMetricsStore(MetricsStore):
    async def get_period_stats(self, start: datetime, end: datetime) -> PeriodStats:
        raise DataUnavailableError("metrics down", operation="get_period_stats")


class FakeClock:
    """Controllable datetime source."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeMonotonic:
    """Controllable monotonic seconds source for ResultCache."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def alert_store() -> InMemoryAlertStore:
    return InMemoryAlertStore()


@pytest.fixture
def metrics_store() -> InMemoryMetricsStore:
    return InMemoryMetricsStore()


@pytest.fixture
def threshold_config() -> ThresholdConfig:
    return make_config()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()
