"""
Retention cleanup for persisted alerts.

Stateless bulk delete of alerts older than the retention window. Runs on
its own daily timer, outside the alert cycle state machine.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from txn_analytics.interfaces.stores import AlertSink

logger = structlog.get_logger(__name__)


async def purge_expired_alerts(
    sink: AlertSink,
    retention_days: int,
    now: Optional[datetime] = None,
) -> int:
    """
    Delete alerts created more than `retention_days` before `now`.

    Args:
        sink: Alert sink owning the alerts.
        retention_days: Retention window in days (>= 0).
        now: Reference time (default: current UTC time).

    Returns:
        int: Number of deleted alerts.

    Raises:
        ValueError: If retention_days is negative.
        DataUnavailableError: If the delete fails.
    """
    if retention_days < 0:
        raise ValueError(f"retention_days must be >= 0, got {retention_days}")

    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=retention_days)
    deleted = await sink.delete_older_than(cutoff)

    if deleted > 0:
        logger.info(
            "expired_alerts_purged",
            deleted=deleted,
            retention_days=retention_days,
            cutoff=cutoff.isoformat(),
        )
    else:
        logger.debug("expired_alerts_none", retention_days=retention_days)

    return deleted
