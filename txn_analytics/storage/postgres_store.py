"""
PostgreSQL-backed implementations of the store interfaces.

Thin adapters over PostgresClient. Client errors are re-raised as
DataUnavailableError so the engine sees one failure type regardless of
backend.
"""

from datetime import datetime
from typing import List

import structlog

from txn_analytics.interfaces.stores import (
    AlertStore,
    DataUnavailableError,
    MetricsStore,
)
from txn_analytics.models.alerts import Alert, AlertType
from txn_analytics.models.stats import PeriodStats
from txn_analytics.storage.postgres_client import PostgresClient, PostgresClientError

logger = structlog.get_logger(__name__)


class PostgresMetricsStore(MetricsStore):
    """MetricsStore running the transaction and user aggregates in PostgreSQL."""

    def __init__(self, client: PostgresClient) -> None:
        self.client = client

    async def get_period_stats(self, start: datetime, end: datetime) -> PeriodStats:
        try:
            txn = await self.client.fetch_transaction_stats(start, end)
            users = await self.client.fetch_user_stats(start, end)
        except PostgresClientError as e:
            logger.error(
                "period_stats_unavailable",
                start=start.isoformat(),
                end=end.isoformat(),
                error=str(e),
            )
            raise DataUnavailableError(
                f"Period stats unavailable: {e}",
                operation="get_period_stats",
                cause=e,
            ) from e

        return PeriodStats(**txn, **users)


class PostgresAlertStore(AlertStore):
    """AlertStore over the alerts table."""

    def __init__(self, client: PostgresClient) -> None:
        self.client = client

    async def _call(self, operation: str, coro):
        try:
            return await coro
        except PostgresClientError as e:
            logger.error("alert_store_unavailable", operation=operation, error=str(e))
            raise DataUnavailableError(
                f"Alert store operation '{operation}' failed: {e}",
                operation=operation,
                cause=e,
            ) from e

    async def exists_since(self, alert_type: AlertType, since: datetime) -> bool:
        return await self._call(
            "exists_since", self.client.alert_exists_since(alert_type, since)
        )

    async def persist(self, alert: Alert) -> None:
        await self._call("persist", self.client.insert_alert(alert))

    async def delete_older_than(self, cutoff: datetime) -> int:
        return await self._call(
            "delete_older_than", self.client.delete_alerts_older_than(cutoff)
        )

    async def recent(self, limit: int) -> List[Alert]:
        return await self._call("recent", self.client.query_recent_alerts(limit))

    async def count(self) -> int:
        return await self._call("count", self.client.count_alerts())

    async def unread_count(self) -> int:
        return await self._call(
            "unread_count", self.client.count_alerts(unread_only=True)
        )

    async def mark_read(self, alert_id: str) -> bool:
        return await self._call("mark_read", self.client.mark_alert_read(alert_id))

    async def mark_all_read(self) -> int:
        return await self._call("mark_all_read", self.client.mark_all_alerts_read())
