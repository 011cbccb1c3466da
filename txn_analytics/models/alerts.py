"""
Alert data models for the KPI alerting engine.

This module defines alert-related structures produced by threshold
evaluation and persisted by an alert store.

Models:
    AlertType: The five monitored conditions
    AlertSeverity: Severity levels (critical, warning, info)
    CandidateAlert: Result of threshold evaluation, before deduplication
    Alert: Emitted alert instance
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class AlertType(str, Enum):
    """
    Monitored alert conditions.

    Attributes:
        REVENUE_DROP: GTV fell versus the previous window.
        FAILED_SPIKE: Failed transaction count rose versus the previous window.
        LOW_SUCCESS_RATE: Current success rate is below the configured band.
        HIGH_PENDING: Current pending backlog is above the configured band.
        HIGH_VOLUME_DAY: Volume well above the trailing 30-day daily mean.
    """

    REVENUE_DROP = "REVENUE_DROP"
    FAILED_SPIKE = "FAILED_SPIKE"
    LOW_SUCCESS_RATE = "LOW_SUCCESS_RATE"
    HIGH_PENDING = "HIGH_PENDING"
    HIGH_VOLUME_DAY = "HIGH_VOLUME_DAY"

    @property
    def title(self) -> str:
        """Human-readable alert title."""
        return _TITLES[self]


_TITLES = {
    AlertType.REVENUE_DROP: "Revenue Drop Alert",
    AlertType.FAILED_SPIKE: "Failed Transaction Spike",
    AlertType.LOW_SUCCESS_RATE: "Low Success Rate Alert",
    AlertType.HIGH_PENDING: "High Pending Transactions",
    AlertType.HIGH_VOLUME_DAY: "High Volume Day",
}


class AlertSeverity(str, Enum):
    """
    Alert severity levels.

    Attributes:
        CRITICAL: Severe condition requiring immediate attention.
        WARNING: Elevated condition requiring investigation.
        INFO: Informational, no immediate concern.
    """

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Ordering key: info < warning < critical."""
        return {"info": 0, "warning": 1, "critical": 2}[self.value]


class CandidateAlert(BaseModel):
    """
    Outcome of one threshold rule that crossed a severity band.

    Candidates are not yet alerts: the deduper may still drop them.

    Attributes:
        alert_type: Which condition fired.
        severity: Band that was crossed (CRITICAL wins over WARNING).
        metric_value: The value that was compared (drop magnitude, percent
            change, rate, count or volume depending on the condition).
        threshold_value: The threshold of the crossed band.
        reason: Human-readable explanation.
        comparison_period: Label of the compared windows.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    alert_type: AlertType = Field(..., description="Condition that fired")
    severity: AlertSeverity = Field(..., description="Crossed severity band")
    metric_value: Decimal = Field(..., description="Observed metric value")
    threshold_value: Decimal = Field(..., description="Threshold that was crossed")
    reason: str = Field(..., description="Human-readable reason text")
    comparison_period: str = Field(..., description="Compared windows label")


class Alert(BaseModel):
    """
    Emitted alert record.

    Created by the AlertEngine from a surviving CandidateAlert, immutable
    once emitted. A condition that re-fires after the duplicate window
    produces a new Alert rather than updating an existing one. The only
    state change an alert store applies is marking it read, which yields
    a copy.

    Example:
        >>> alert = Alert.from_candidate(candidate, created_at=now)
        >>> alert.title
        'Revenue Drop Alert'
    """

    model_config = {"frozen": True, "extra": "forbid"}

    alert_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique alert identifier",
    )
    alert_type: AlertType = Field(..., description="Condition that fired")
    severity: AlertSeverity = Field(..., description="Alert severity")
    title: str = Field(..., description="Display title")
    description: str = Field(..., description="Reason text")
    metric_value: Decimal = Field(..., description="Observed metric value")
    threshold_value: Decimal = Field(..., description="Crossed threshold")
    comparison_period: str = Field(..., description="Compared windows label")
    created_at: datetime = Field(..., description="Emission timestamp (UTC)")
    read: bool = Field(default=False, description="Whether the alert was read")

    @classmethod
    def from_candidate(cls, candidate: CandidateAlert, created_at: datetime) -> "Alert":
        """
        Build an Alert from an evaluation candidate.

        Args:
            candidate: The surviving candidate.
            created_at: Emission timestamp.

        Returns:
            Alert: New unread alert.
        """
        return cls(
            alert_type=candidate.alert_type,
            severity=candidate.severity,
            title=candidate.alert_type.title,
            description=candidate.reason,
            metric_value=candidate.metric_value,
            threshold_value=candidate.threshold_value,
            comparison_period=candidate.comparison_period,
            created_at=created_at,
        )
