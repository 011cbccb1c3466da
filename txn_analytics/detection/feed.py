"""
Alert feed over a persisted alert store.

Read side of the alerting pipeline: the newest alerts with unread and
total counts, plus read-state updates.

Example:
    >>> feed = AlertFeed(alert_store, max_returned=50)
    >>> page = await feed.latest()
    >>> page.unread_count
    3
"""

from typing import List

import structlog
from pydantic import BaseModel, Field

from txn_analytics.interfaces.stores import AlertStore
from txn_analytics.models.alerts import Alert

logger = structlog.get_logger(__name__)


class AlertFeedPage(BaseModel):
    """Newest alerts with inbox counters."""

    model_config = {"frozen": True, "extra": "forbid"}

    alerts: List[Alert] = Field(default_factory=list, description="Newest first")
    unread_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)


class AlertFeed:
    """
    Notification inbox backed by an AlertStore.

    Attributes:
        store: Alert store.
        max_returned: Cap on alerts returned per page.
    """

    def __init__(self, store: AlertStore, max_returned: int = 50) -> None:
        if max_returned < 1:
            raise ValueError(f"max_returned must be >= 1, got {max_returned}")
        self.store = store
        self.max_returned = max_returned

    async def latest(self) -> AlertFeedPage:
        """Return the newest alerts with unread and total counts."""
        alerts = await self.store.recent(self.max_returned)
        return AlertFeedPage(
            alerts=alerts,
            unread_count=await self.store.unread_count(),
            total_count=await self.store.count(),
        )

    async def unread_count(self) -> int:
        return await self.store.unread_count()

    async def mark_read(self, alert_id: str) -> bool:
        """Mark one alert read. Returns False if the alert does not exist."""
        updated = await self.store.mark_read(alert_id)
        if not updated:
            logger.debug("alert_mark_read_missing", alert_id=alert_id)
        return updated

    async def mark_all_read(self) -> int:
        """Mark every alert read and return how many changed."""
        count = await self.store.mark_all_read()
        logger.info("alerts_marked_read", count=count)
        return count
