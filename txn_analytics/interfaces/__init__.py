"""
Abstract interfaces for the engine's collaborators.

This module defines the contracts that storage backends must implement
to feed the KPI engine and receive its alerts.

Interfaces:
    MetricsStore: Aggregate statistics per time window
    AlertHistoryLookup: Duplicate detection queries
    AlertSink: Alert persistence and retention deletes
    AlertStore: Combined store with inbox operations
"""

from txn_analytics.interfaces.stores import (
    AlertHistoryLookup,
    AlertSink,
    AlertStore,
    DataUnavailableError,
    MetricsStore,
)

__all__: list[str] = [
    "MetricsStore",
    "AlertHistoryLookup",
    "AlertSink",
    "AlertStore",
    "DataUnavailableError",
]
