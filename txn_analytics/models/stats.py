"""
Period statistics and KPI data models.

This module defines the aggregate structures flowing through the KPI engine.
All monetary and percentage values use Decimal for precision.

Models:
    PeriodStats: Raw aggregate snapshot for one [start, end) window
    KPISnapshot: Null-safe KPI values derived from PeriodStats
    KPIComparison: Current/previous snapshots with per-metric changes
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Metric names shared by PeriodStats, KPISnapshot and KPIComparison.changes
COUNT_FIELDS = (
    "total_transactions",
    "pending_count",
    "failed_count",
    "total_users",
    "new_users",
)
AMOUNT_FIELDS = (
    "total_gtv",
    "avg_ticket_size",
    "failed_volume",
)
METRIC_NAMES = (
    "total_users",
    "total_transactions",
    "new_users",
    "pending_count",
    "total_gtv",
    "success_rate",
    "avg_ticket_size",
    "failed_count",
    "failed_volume",
)


def _to_decimal(v: Any) -> Any:
    """Convert int/float inputs to Decimal via str to avoid binary artifacts."""
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return Decimal(str(v))
    return v


class PeriodStats(BaseModel):
    """
    Aggregate transaction and user statistics for one time window.

    Returned by a MetricsStore for a half-open [start, end) window. Every
    field may be absent (None) because the underlying aggregate query
    returns NULL for empty windows; consumers coerce absent values through
    the KPICalculator rather than reading them directly.

    Attributes:
        total_transactions: Number of transactions in the window.
        pending_count: Transactions still pending.
        failed_count: Transactions that failed.
        total_gtv: Gross value of successful payment transactions.
        avg_ticket_size: Mean amount of successful payment transactions.
        failed_volume: Sum of amounts of failed transactions.
        success_rate: Successful transactions as a percentage of all.
        total_users: Users registered before the end of the window.
        new_users: Users registered inside the window.

    Example:
        >>> stats = PeriodStats(
        ...     total_transactions=1200,
        ...     pending_count=14,
        ...     failed_count=36,
        ...     total_gtv=Decimal("184250.00"),
        ...     success_rate=Decimal("95.83"),
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    total_transactions: Optional[int] = Field(
        default=None,
        description="Number of transactions in the window",
        ge=0,
    )
    pending_count: Optional[int] = Field(
        default=None,
        description="Number of pending transactions",
        ge=0,
    )
    failed_count: Optional[int] = Field(
        default=None,
        description="Number of failed transactions",
        ge=0,
    )
    total_gtv: Optional[Decimal] = Field(
        default=None,
        description="Gross value of successful payment transactions",
        ge=Decimal("0"),
    )
    avg_ticket_size: Optional[Decimal] = Field(
        default=None,
        description="Average successful payment amount",
        ge=Decimal("0"),
    )
    failed_volume: Optional[Decimal] = Field(
        default=None,
        description="Sum of failed transaction amounts",
        ge=Decimal("0"),
    )
    success_rate: Optional[Decimal] = Field(
        default=None,
        description="Success rate as a percentage (0-100)",
        ge=Decimal("0"),
        le=Decimal("100"),
    )
    total_users: Optional[int] = Field(
        default=None,
        description="Users registered before window end",
        ge=0,
    )
    new_users: Optional[int] = Field(
        default=None,
        description="Users registered within the window",
        ge=0,
    )

    @field_validator(
        "total_gtv", "avg_ticket_size", "failed_volume", "success_rate", mode="before"
    )
    @classmethod
    def coerce_decimal(cls, v: Any) -> Optional[Decimal]:
        """Convert numeric inputs to Decimal."""
        return _to_decimal(v)

    @model_validator(mode="after")
    def validate_counts(self) -> "PeriodStats":
        """Ensure status counts never exceed the transaction total."""
        if self.total_transactions is None:
            return self
        for name in ("pending_count", "failed_count"):
            value = getattr(self, name)
            if value is not None and value > self.total_transactions:
                raise ValueError(
                    f"{name} ({value}) exceeds total_transactions "
                    f"({self.total_transactions})"
                )
        return self

    @classmethod
    def empty(cls) -> "PeriodStats":
        """Return the all-absent statistics of a window with no data."""
        return cls()


class KPISnapshot(BaseModel):
    """
    Null-safe KPI values for one window.

    Same fields as PeriodStats but every numeric is present (absent values
    are coerced to zero) and success_rate is rounded to 2 decimals.

    Example:
        >>> snapshot = KPICalculator().compute_snapshot(stats)
        >>> snapshot.total_gtv
        Decimal('184250.00')
    """

    model_config = {"frozen": True, "extra": "forbid"}

    total_transactions: int = Field(default=0, ge=0)
    pending_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)
    total_gtv: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    avg_ticket_size: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    failed_volume: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    success_rate: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    total_users: int = Field(default=0, ge=0)
    new_users: int = Field(default=0, ge=0)


class KPIComparison(BaseModel):
    """
    Period-over-period KPI comparison.

    Attributes:
        current: KPIs for the current window.
        previous: KPIs for the immediately preceding window of equal length.
        changes: Percent change per metric name. success_rate holds the
            absolute percentage-point delta instead of a relative change.
        current_period: Optional human label for the current window.
        previous_period: Optional human label for the previous window.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    current: KPISnapshot = Field(..., description="Current window KPIs")
    previous: KPISnapshot = Field(..., description="Previous window KPIs")
    changes: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="Per-metric change (percent, success_rate in points)",
    )
    current_period: Optional[str] = Field(
        default=None,
        description="Label for the current window",
    )
    previous_period: Optional[str] = Field(
        default=None,
        description="Label for the previous window",
    )

    def change(self, metric: str) -> Decimal:
        """Get the change for a metric, zero when not computed."""
        return self.changes.get(metric, Decimal("0"))
