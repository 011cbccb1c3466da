"""
Abstract base classes for the engine's external collaborators.

The KPI engine never executes queries itself. It depends on three narrow
collaborator contracts that any backend (SQL, columnar store, in-memory
table) can satisfy:

    MetricsStore: aggregate statistics for a [start, end) window
    AlertHistoryLookup: "was an alert of this type emitted since t?"
    AlertSink: persist new alerts and purge old ones

All collaborator methods are coroutines. A collaborator that cannot answer
raises DataUnavailableError; the engine propagates it unchanged.

Example:
    >>> class MyStore(MetricsStore):
    ...     async def get_period_stats(self, start, end) -> PeriodStats:
    ...         row = await self._db.fetch_aggregate(start, end)
    ...         return PeriodStats(**row)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from txn_analytics.models.alerts import Alert, AlertType
from txn_analytics.models.stats import PeriodStats


class DataUnavailableError(Exception):
    """
    Raised when a collaborator cannot answer a query.

    Attributes:
        message: Error message describing what failed.
        operation: Collaborator operation that failed, if known.
        cause: Original exception, if any.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.operation = operation
        self.cause = cause
        super().__init__(message)


class MetricsStore(ABC):
    """
    Source of aggregate statistics for arbitrary time windows.

    Note:
        Empty windows must yield PeriodStats.empty() (or all-zero values),
        never None and never an error.
    """

    @abstractmethod
    async def get_period_stats(self, start: datetime, end: datetime) -> PeriodStats:
        """
        Aggregate statistics for the half-open window [start, end).

        Args:
            start: Inclusive window start (UTC).
            end: Exclusive window end (UTC).

        Returns:
            PeriodStats: Aggregates for the window.

        Raises:
            DataUnavailableError: If the store cannot be queried.
        """
        pass


class AlertHistoryLookup(ABC):
    """Read access to previously emitted alerts, used for deduplication."""

    @abstractmethod
    async def exists_since(self, alert_type: AlertType, since: datetime) -> bool:
        """
        Check whether an alert of the given type was created after `since`.

        Args:
            alert_type: Alert condition type.
            since: Exclusive lower bound on created_at.

        Returns:
            bool: True if at least one such alert exists.

        Raises:
            DataUnavailableError: If history cannot be queried.
        """
        pass


class AlertSink(ABC):
    """Write access for emitted alerts."""

    @abstractmethod
    async def persist(self, alert: Alert) -> None:
        """
        Persist a newly emitted alert.

        Raises:
            DataUnavailableError: If the alert cannot be stored.
        """
        pass

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """
        Delete alerts created before `cutoff`.

        Returns:
            int: Number of deleted alerts.

        Raises:
            DataUnavailableError: If the delete fails.
        """
        pass


class AlertStore(AlertHistoryLookup, AlertSink):
    """
    Full alert store: history lookup, persistence and inbox operations.

    Backs the alert feed in addition to the engine's dedup and sink needs.
    """

    @abstractmethod
    async def recent(self, limit: int) -> List[Alert]:
        """Return up to `limit` alerts, newest first."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored alerts."""
        pass

    @abstractmethod
    async def unread_count(self) -> int:
        """Return the number of unread alerts."""
        pass

    @abstractmethod
    async def mark_read(self, alert_id: str) -> bool:
        """Mark one alert read. Returns False if it does not exist."""
        pass

    @abstractmethod
    async def mark_all_read(self) -> int:
        """Mark every unread alert read. Returns the number updated."""
        pass
