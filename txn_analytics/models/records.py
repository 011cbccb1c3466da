"""
Raw transaction and user records.

These are the row-level inputs that a MetricsStore aggregates into
PeriodStats. Only the columns the aggregates read are modelled.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class TransactionStatus(str, Enum):
    """Transaction processing status."""

    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"


class TransactionType(str, Enum):
    """Direction of a transaction. GTV counts PAYIN only."""

    PAYIN = "PAYIN"
    PAYOUT = "PAYOUT"


class TransactionRecord(BaseModel):
    """
    A single payment transaction.

    Example:
        >>> TransactionRecord(
        ...     amount=Decimal("125.50"),
        ...     status=TransactionStatus.SUCCESS,
        ...     type=TransactionType.PAYIN,
        ...     created_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    amount: Decimal = Field(..., description="Transaction amount", ge=Decimal("0"))
    status: TransactionStatus = Field(..., description="Processing status")
    type: TransactionType = Field(
        default=TransactionType.PAYIN,
        description="Transaction direction",
    )
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        """Convert amount to Decimal."""
        if isinstance(v, (int, float)):
            return Decimal(str(v))
        return v


class UserRecord(BaseModel):
    """A registered user; only the registration time matters for KPIs."""

    model_config = {"frozen": True, "extra": "forbid"}

    user_id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(..., description="Registration timestamp (UTC)")
