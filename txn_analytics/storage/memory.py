"""
In-memory implementations of the store interfaces.

Used for local runs and tests. The metrics store aggregates raw records
with the same rules as the PostgreSQL period query: GTV and average ticket
size count successful PAYIN transactions only, failed volume sums failed
amounts of any type, and users are counted by registration time.

Example:
    >>> store = InMemoryMetricsStore()
    >>> store.add_transactions(records)
    >>> stats = await store.get_period_stats(start, end)
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import structlog

from txn_analytics.interfaces.stores import AlertStore, MetricsStore
from txn_analytics.models.alerts import Alert, AlertType
from txn_analytics.models.records import (
    TransactionRecord,
    TransactionStatus,
    TransactionType,
    UserRecord,
)
from txn_analytics.models.stats import PeriodStats

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


class InMemoryMetricsStore(MetricsStore):
    """
    MetricsStore over in-memory transaction and user lists.

    Attributes:
        transactions: Stored transaction records.
        users: Stored user records.
    """

    def __init__(
        self,
        transactions: Optional[Iterable[TransactionRecord]] = None,
        users: Optional[Iterable[UserRecord]] = None,
    ) -> None:
        self.transactions: List[TransactionRecord] = list(transactions or [])
        self.users: List[UserRecord] = list(users or [])

    def add_transactions(self, records: Iterable[TransactionRecord]) -> None:
        self.transactions.extend(records)

    def add_users(self, records: Iterable[UserRecord]) -> None:
        self.users.extend(records)

    async def get_period_stats(self, start: datetime, end: datetime) -> PeriodStats:
        """Aggregate records with created_at in [start, end)."""
        window = [t for t in self.transactions if start <= t.created_at < end]

        pending = sum(1 for t in window if t.status == TransactionStatus.PENDING)
        success = sum(1 for t in window if t.status == TransactionStatus.SUCCESS)
        failed = [t for t in window if t.status == TransactionStatus.FAILED]
        payins = [
            t.amount
            for t in window
            if t.status == TransactionStatus.SUCCESS and t.type == TransactionType.PAYIN
        ]

        total_gtv = sum(payins, Decimal("0"))
        avg_ticket = total_gtv / len(payins) if payins else None
        success_rate = Decimal(success) * HUNDRED / len(window) if window else None

        return PeriodStats(
            total_transactions=len(window),
            pending_count=pending,
            failed_count=len(failed),
            total_gtv=total_gtv,
            avg_ticket_size=avg_ticket,
            failed_volume=sum((t.amount for t in failed), Decimal("0")),
            success_rate=success_rate,
            total_users=sum(1 for u in self.users if u.created_at < end),
            new_users=sum(1 for u in self.users if start <= u.created_at < end),
        )


class InMemoryAlertStore(AlertStore):
    """
    AlertStore keeping alerts in a dict keyed by alert_id.

    Alerts are immutable; marking one read replaces it with a copy.
    """

    def __init__(self) -> None:
        self._alerts: Dict[str, Alert] = {}

    @property
    def alerts(self) -> List[Alert]:
        """All stored alerts in insertion order."""
        return list(self._alerts.values())

    async def exists_since(self, alert_type: AlertType, since: datetime) -> bool:
        return any(
            a.alert_type == alert_type and a.created_at > since
            for a in self._alerts.values()
        )

    async def persist(self, alert: Alert) -> None:
        self._alerts[alert.alert_id] = alert
        logger.debug("alert_stored", alert_id=alert.alert_id, alert_type=alert.alert_type.value)

    async def delete_older_than(self, cutoff: datetime) -> int:
        expired = [k for k, a in self._alerts.items() if a.created_at < cutoff]
        for key in expired:
            del self._alerts[key]
        return len(expired)

    async def recent(self, limit: int) -> List[Alert]:
        ordered = sorted(self._alerts.values(), key=lambda a: a.created_at, reverse=True)
        return ordered[:limit]

    async def count(self) -> int:
        return len(self._alerts)

    async def unread_count(self) -> int:
        return sum(1 for a in self._alerts.values() if not a.read)

    async def mark_read(self, alert_id: str) -> bool:
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False
        if not alert.read:
            self._alerts[alert_id] = alert.model_copy(update={"read": True})
        return True

    async def mark_all_read(self) -> int:
        unread = [k for k, a in self._alerts.items() if not a.read]
        for key in unread:
            self._alerts[key] = self._alerts[key].model_copy(update={"read": True})
        return len(unread)
