"""
Duplicate suppression for alert candidates.

This module provides the NotificationDeduper, which drops a candidate when
an alert of the same type was already emitted within the configured
duplicate window. Suppression is per alert type, not per severity: a
WARNING followed by a CRITICAL of the same type inside the window is still
suppressed.

Example:
    >>> deduper = NotificationDeduper()
    >>> survivors = await deduper.filter(candidates, alert_store, config, now=now)
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog

from txn_analytics.config.models import ThresholdConfig
from txn_analytics.interfaces.stores import AlertHistoryLookup
from txn_analytics.models.alerts import CandidateAlert

logger = structlog.get_logger(__name__)


class NotificationDeduper:
    """
    Filters alert candidates against recent alert history.

    No retries: a failing history lookup propagates to the caller and is
    never treated as "not a duplicate".
    """

    async def filter(
        self,
        candidates: List[CandidateAlert],
        history: AlertHistoryLookup,
        config: ThresholdConfig,
        now: Optional[datetime] = None,
    ) -> List[CandidateAlert]:
        """
        Drop candidates whose type already fired within the duplicate window.

        Args:
            candidates: Candidates from threshold evaluation.
            history: Alert history lookup.
            config: Supplies duplicate_window_hours.
            now: Evaluation time (default: current UTC time).

        Returns:
            List[CandidateAlert]: Surviving candidates in input order.

        Raises:
            DataUnavailableError: If the history lookup fails.
        """
        if not candidates:
            return []

        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=config.duplicate_window_hours)

        survivors: List[CandidateAlert] = []
        for candidate in candidates:
            if await history.exists_since(candidate.alert_type, since):
                logger.debug(
                    "alert_candidate_suppressed",
                    alert_type=candidate.alert_type.value,
                    severity=candidate.severity.value,
                    window_hours=config.duplicate_window_hours,
                )
                continue
            survivors.append(candidate)

        return survivors


def create_deduper() -> NotificationDeduper:
    """
    Factory function to create a NotificationDeduper.

    Returns:
        NotificationDeduper: A new deduper instance.
    """
    return NotificationDeduper()
