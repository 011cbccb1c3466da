"""
Data models for the KPI alerting engine.

Models:
    stats: PeriodStats, KPISnapshot, KPIComparison
    alerts: AlertType, AlertSeverity, CandidateAlert, Alert
    records: TransactionRecord, UserRecord and their enums
"""

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
    UserRecord,
)
from txn_analytics.models.stats import (
    METRIC_NAMES,
    KPIComparison,
    KPISnapshot,
    PeriodStats,
)

__all__: list[str] = [
    # Stats
    "PeriodStats",
    "KPISnapshot",
    "KPIComparison",
    "METRIC_NAMES",
    # Alerts
    "AlertType",
    "AlertSeverity",
    "CandidateAlert",
    "Alert",
    # Records
    "TransactionStatus",
    "TransactionType",
    "TransactionRecord",
    "UserRecord",
]
