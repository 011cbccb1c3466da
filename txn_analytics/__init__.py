"""
Transaction Analytics KPI & Alerting Engine.

Computes period-over-period business KPIs (volume, GTV, success rate,
failure volume) from pre-aggregated transaction statistics and raises
threshold-based alerts when metrics deviate significantly.

This package provides:
- Data models for period statistics, KPI snapshots, comparisons and alerts
- Abstract interfaces for metrics stores and alert persistence
- Configuration management
- KPI calculation, threshold evaluation, deduplication and scheduling
- An in-process result cache and storage clients for PostgreSQL
"""

__version__ = "0.1.0"
