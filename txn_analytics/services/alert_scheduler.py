"""
Alert scheduler service entry point.

This service is responsible for:
- Running the KPI alert cycle on a fixed interval
- Purging alerts older than the retention window once a day

Usage:
    txn-alerts

    Or as a module:
    python -m txn_analytics.services.alert_scheduler

Environment Variables:
    DATABASE_URL: PostgreSQL connection URL
    LOG_LEVEL: Logging level (default: INFO)
    CONFIG_PATH: Path to config directory (default: config)
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Optional

import structlog

from txn_analytics import __version__
from txn_analytics.detection.engine import AlertEngine, create_alert_engine
from txn_analytics.detection.scheduler import AlertScheduler
from txn_analytics.services.log_setup import setup_logging
from txn_analytics.services.runner import ServiceRunner
from txn_analytics.storage.postgres_store import PostgresAlertStore, PostgresMetricsStore

logger = structlog.get_logger(__name__)


class AlertSchedulerService(ServiceRunner):
    """
    Drives AlertEngine and retention cleanup against PostgreSQL.

    Attributes:
        engine: Alert engine over the PostgreSQL stores.
        scheduler: Timer pair for cycles and cleanups.
    """

    def __init__(self, config_path: str = "config") -> None:
        super().__init__(config_path)
        self.engine: Optional[AlertEngine] = None
        self.scheduler: Optional[AlertScheduler] = None

    @property
    def service_name(self) -> str:
        return "alert-scheduler"

    async def _initialize(self) -> None:
        if self.config is None or self.postgres_client is None:
            raise RuntimeError("Service not properly initialized")

        await self.postgres_client.create_schema()

        metrics_store = PostgresMetricsStore(self.postgres_client)
        alert_store = PostgresAlertStore(self.postgres_client)
        alerts = self.config.alerts

        self.engine = create_alert_engine(
            metrics_store=metrics_store,
            history=alert_store,
            sink=alert_store,
            config=alerts.thresholds,
        )
        self.scheduler = AlertScheduler(
            engine=self.engine,
            sink=alert_store,
            retention_days=alerts.retention_days,
            cycle_interval=alerts.schedule.cycle_interval_seconds,
            cleanup_interval=alerts.schedule.cleanup_interval_seconds,
            run_on_start=alerts.schedule.run_on_start,
        )

        self.logger.info(
            "alert_components_initialized",
            thresholds_enabled=alerts.thresholds.enabled,
            duplicate_window_hours=alerts.thresholds.duplicate_window_hours,
        )

    async def _run(self) -> None:
        if self.scheduler is None:
            raise RuntimeError("Service not properly initialized")

        self.scheduler.start()
        await self.shutdown_event.wait()

    async def _cleanup(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        if self.engine is not None:
            self.logger.info(
                "cleanup_state",
                cycles_completed=self.engine.cycles_completed,
                cycles_failed=self.engine.cycles_failed,
            )


async def main() -> None:
    """Main entry point."""
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    config_path = os.getenv("CONFIG_PATH", "config")

    logger.info(
        "alert_scheduler_service_starting",
        version=__version__,
        config_path=config_path,
    )

    service = AlertSchedulerService(config_path=config_path)

    try:
        await service.run()
    except Exception as e:
        logger.error("service_failed", error=str(e))
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
