"""
Service entry points and shared service plumbing.

Components:
    log_setup: structlog configuration
    runner: ServiceRunner lifecycle base class
    alert_scheduler: Scheduled alert cycles and retention cleanup
"""

from txn_analytics.services.log_setup import setup_logging

__all__: list[str] = [
    "setup_logging",
]
