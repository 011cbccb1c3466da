"""Unit tests for ThresholdEvaluator."""

from decimal import Decimal

import pytest

from txn_analytics.detection.evaluator import (
    PERIOD_CURRENT,
    PERIOD_DAY_OVER_DAY,
    PERIOD_LAST_24H,
    PERIOD_VS_BASELINE,
    ThresholdEvaluator,
)
from txn_analytics.models.alerts import AlertSeverity, AlertType
from tests.conftest import make_band, make_comparison, make_config, make_stats


def _evaluate(current, previous, config=None, baseline=None):
    return ThresholdEvaluator().evaluate(
        make_comparison(current, previous),
        config or make_config(),
        baseline_daily_volume=baseline,
    )


def _only(candidates, alert_type):
    matches = [c for c in candidates if c.alert_type == alert_type]
    assert len(matches) <= 1
    return matches[0] if matches else None


# ============================================================================
# Revenue drop
# ============================================================================


class TestRevenueDrop:
    def test_evaluate_revenue_drop_warning(self):
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("7500")),
            make_stats(total_gtv=Decimal("10000")),
        )

        candidate = _only(candidates, AlertType.REVENUE_DROP)
        assert candidate is not None
        assert candidate.severity == AlertSeverity.WARNING
        assert candidate.metric_value == Decimal("25.00")
        assert candidate.threshold_value == Decimal("20")
        assert candidate.comparison_period == PERIOD_DAY_OVER_DAY
        assert candidate.reason == (
            "Revenue dropped by 25.0% (warning threshold: 20.0%). "
            "Current: 7500.00, Previous: 10000.00"
        )

    def test_evaluate_revenue_drop_critical_wins_over_warning(self):
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("5500")),
            make_stats(total_gtv=Decimal("10000")),
        )

        candidate = _only(candidates, AlertType.REVENUE_DROP)
        assert candidate.severity == AlertSeverity.CRITICAL
        assert candidate.threshold_value == Decimal("40")

    def test_evaluate_revenue_drop_exactly_at_warning(self):
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("8000")),
            make_stats(total_gtv=Decimal("10000")),
        )
        assert _only(candidates, AlertType.REVENUE_DROP).severity == AlertSeverity.WARNING

    def test_evaluate_revenue_drop_below_warning_no_alert(self):
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("8500")),
            make_stats(total_gtv=Decimal("10000")),
        )
        assert _only(candidates, AlertType.REVENUE_DROP) is None

    def test_evaluate_revenue_increase_no_alert(self):
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("20000")),
            make_stats(total_gtv=Decimal("10000")),
        )
        assert _only(candidates, AlertType.REVENUE_DROP) is None

    def test_evaluate_revenue_zero_to_zero_never_alerts(self):
        config = make_config(revenue_drop=make_band(0, 0))
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("0")),
            make_stats(total_gtv=Decimal("0")),
            config=config,
        )
        assert _only(candidates, AlertType.REVENUE_DROP) is None

    def test_evaluate_revenue_larger_drop_never_lowers_severity(self):
        previous = make_stats(total_gtv=Decimal("10000"))
        last_rank = -1
        for current_gtv in range(10000, -1, -250):
            candidate = _only(
                _evaluate(make_stats(total_gtv=Decimal(current_gtv)), previous),
                AlertType.REVENUE_DROP,
            )
            rank = candidate.severity.rank if candidate else -1
            assert rank >= last_rank
            last_rank = rank
        assert last_rank == AlertSeverity.CRITICAL.rank


# ============================================================================
# Failed spike
# ============================================================================


class TestFailedSpike:
    def test_evaluate_failed_spike_zero_baseline_is_critical(self):
        candidates = _evaluate(
            make_stats(failed_count=5),
            make_stats(failed_count=0),
        )

        candidate = _only(candidates, AlertType.FAILED_SPIKE)
        assert candidate.severity == AlertSeverity.CRITICAL
        assert candidate.metric_value == Decimal("100.00")
        assert candidate.threshold_value == Decimal("50")
        assert "Current: 5, Previous: 0" in candidate.reason

    def test_evaluate_failed_spike_warning(self):
        candidates = _evaluate(make_stats(failed_count=14), make_stats(failed_count=10))
        candidate = _only(candidates, AlertType.FAILED_SPIKE)
        assert candidate.severity == AlertSeverity.WARNING
        assert candidate.metric_value == Decimal("40.00")

    def test_evaluate_failed_small_increase_no_alert(self):
        candidates = _evaluate(make_stats(failed_count=12), make_stats(failed_count=10))
        assert _only(candidates, AlertType.FAILED_SPIKE) is None

    def test_evaluate_failed_decrease_no_alert(self):
        candidates = _evaluate(make_stats(failed_count=2), make_stats(failed_count=10))
        assert _only(candidates, AlertType.FAILED_SPIKE) is None

    def test_evaluate_failed_both_zero_no_alert(self):
        config = make_config(failed_spike=make_band(0, 0))
        candidates = _evaluate(
            make_stats(failed_count=0), make_stats(failed_count=0), config=config
        )
        assert _only(candidates, AlertType.FAILED_SPIKE) is None


# ============================================================================
# Success rate
# ============================================================================


class TestSuccessRate:
    def test_evaluate_success_rate_critical(self):
        candidates = _evaluate(make_stats(success_rate=Decimal("68.0")), make_stats())

        candidate = _only(candidates, AlertType.LOW_SUCCESS_RATE)
        assert candidate.severity == AlertSeverity.CRITICAL
        assert candidate.metric_value == Decimal("68.00")
        assert candidate.threshold_value == Decimal("70")
        assert candidate.comparison_period == PERIOD_LAST_24H
        assert candidate.reason == "Success rate is 68.0% (critical threshold: 70.0%)"

    def test_evaluate_success_rate_warning(self):
        candidates = _evaluate(
            make_stats(total_transactions=100, success_rate=Decimal("75")), make_stats()
        )
        assert _only(candidates, AlertType.LOW_SUCCESS_RATE).severity == AlertSeverity.WARNING

    def test_evaluate_success_rate_at_floor_no_alert(self):
        candidates = _evaluate(
            make_stats(total_transactions=100, success_rate=Decimal("80")), make_stats()
        )
        assert _only(candidates, AlertType.LOW_SUCCESS_RATE) is None

    def test_evaluate_success_rate_empty_window_skipped(self):
        candidates = _evaluate(make_stats(), make_stats())
        assert _only(candidates, AlertType.LOW_SUCCESS_RATE) is None

    def test_evaluate_success_rate_all_failed_is_critical(self):
        candidates = _evaluate(
            make_stats(total_transactions=10, failed_count=10, success_rate=Decimal("0")),
            make_stats(),
        )
        assert _only(candidates, AlertType.LOW_SUCCESS_RATE).severity == AlertSeverity.CRITICAL


# ============================================================================
# Pending
# ============================================================================


class TestPending:
    @pytest.mark.parametrize(
        "pending,expected",
        [
            (99, None),
            (100, AlertSeverity.WARNING),
            (150, AlertSeverity.WARNING),
            (500, AlertSeverity.CRITICAL),
        ],
    )
    def test_evaluate_pending_bands(self, pending, expected):
        candidates = _evaluate(make_stats(pending_count=pending), make_stats())
        candidate = _only(candidates, AlertType.HIGH_PENDING)
        if expected is None:
            assert candidate is None
        else:
            assert candidate.severity == expected
            assert candidate.metric_value == Decimal(pending)
            assert candidate.comparison_period == PERIOD_CURRENT


# ============================================================================
# High volume day
# ============================================================================


class TestHighVolume:
    def test_evaluate_high_volume_info(self):
        candidates = _evaluate(
            make_stats(total_transactions=700),
            make_stats(total_transactions=650),
            baseline=Decimal("400"),
        )

        candidate = _only(candidates, AlertType.HIGH_VOLUME_DAY)
        assert candidate.severity == AlertSeverity.INFO
        assert candidate.metric_value == Decimal("700")
        assert candidate.threshold_value == Decimal("400.00")
        assert candidate.comparison_period == PERIOD_VS_BASELINE
        assert "75.0% higher than the 30-day average" in candidate.reason

    def test_evaluate_high_volume_at_multiplier_no_alert(self):
        candidates = _evaluate(
            make_stats(total_transactions=600), make_stats(), baseline=Decimal("400")
        )
        assert _only(candidates, AlertType.HIGH_VOLUME_DAY) is None

    def test_evaluate_high_volume_without_baseline_skipped(self):
        candidates = _evaluate(make_stats(total_transactions=10000), make_stats())
        assert _only(candidates, AlertType.HIGH_VOLUME_DAY) is None


# ============================================================================
# General behaviour
# ============================================================================


class TestEvaluateGeneral:
    def test_evaluate_disabled_returns_nothing(self):
        candidates = _evaluate(
            make_stats(total_gtv=Decimal("0"), pending_count=1000, success_rate=Decimal("10")),
            make_stats(total_gtv=Decimal("10000")),
            config=make_config(enabled=False),
        )
        assert candidates == []

    def test_evaluate_returns_conditions_in_fixed_order(self):
        candidates = _evaluate(
            make_stats(
                total_transactions=1000,
                total_gtv=Decimal("1000"),
                failed_count=300,
                pending_count=600,
                success_rate=Decimal("10"),
            ),
            make_stats(total_transactions=100, total_gtv=Decimal("10000"), failed_count=10),
            baseline=Decimal("100"),
        )
        assert [c.alert_type for c in candidates] == [
            AlertType.REVENUE_DROP,
            AlertType.FAILED_SPIKE,
            AlertType.LOW_SUCCESS_RATE,
            AlertType.HIGH_PENDING,
            AlertType.HIGH_VOLUME_DAY,
        ]

    def test_evaluate_quiet_period_no_candidates(self):
        stats = make_stats(
            total_transactions=100,
            failed_count=2,
            pending_count=3,
            total_gtv=Decimal("10000"),
            success_rate=Decimal("95"),
        )
        assert _evaluate(stats, stats, baseline=Decimal("100")) == []
