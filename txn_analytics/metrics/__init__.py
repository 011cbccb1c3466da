"""
KPI calculation for the analytics engine.

Components:
    kpi: KPICalculator, percent_change and round-half-up helpers
    service: KPIQueryService, the cached interactive read path
"""

from txn_analytics.metrics.kpi import (
    KPICalculator,
    create_kpi_calculator,
    percent_change,
    round_half_up,
)
from txn_analytics.metrics.service import DailyKPI, KPIQueryService

__all__: list[str] = [
    "KPICalculator",
    "create_kpi_calculator",
    "percent_change",
    "round_half_up",
    "KPIQueryService",
    "DailyKPI",
]
