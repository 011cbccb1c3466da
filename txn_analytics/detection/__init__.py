"""
Alert detection for the KPI engine.

This module contains the alerting pipeline: threshold evaluation,
duplicate suppression, cycle orchestration, scheduling, retention cleanup
and the alert feed.

Components:
    evaluator: ThresholdEvaluator for the five KPI conditions
    dedup: NotificationDeduper for per-type cooldown windows
    engine: AlertEngine running one evaluation cycle
    scheduler: AlertScheduler driving cycles and cleanups
    retention: purge_expired_alerts
    feed: AlertFeed notification inbox
"""

from txn_analytics.detection.dedup import NotificationDeduper, create_deduper
from txn_analytics.detection.engine import AlertEngine, EngineState, create_alert_engine
from txn_analytics.detection.evaluator import (
    ThresholdEvaluator,
    create_threshold_evaluator,
)
from txn_analytics.detection.feed import AlertFeed, AlertFeedPage
from txn_analytics.detection.retention import purge_expired_alerts
from txn_analytics.detection.scheduler import AlertScheduler

__all__: list[str] = [
    "ThresholdEvaluator",
    "create_threshold_evaluator",
    "NotificationDeduper",
    "create_deduper",
    "AlertEngine",
    "EngineState",
    "create_alert_engine",
    "AlertScheduler",
    "purge_expired_alerts",
    "AlertFeed",
    "AlertFeedPage",
]
