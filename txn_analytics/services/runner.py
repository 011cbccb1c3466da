"""
Base class for long-running services.

A ServiceRunner loads configuration, connects PostgreSQL, installs
SIGINT/SIGTERM handlers and drives the subclass hooks:

    _initialize() -> _run() -> _cleanup()

Subclasses watch `shutdown_event` to know when to stop.
"""

from __future__ import annotations

import asyncio
import signal
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from txn_analytics.config.loader import load_config
from txn_analytics.config.models import AppConfig
from txn_analytics.services.log_setup import setup_logging
from txn_analytics.storage.postgres_client import PostgresClient


class ServiceRunner(ABC):
    """
    Lifecycle skeleton for a service process.

    Attributes:
        config_path: Directory holding the YAML configuration.
        config: Loaded application configuration.
        postgres_client: Connected PostgreSQL client.
        shutdown_event: Set when a stop signal is received.
    """

    def __init__(self, config_path: str = "config") -> None:
        self.config_path = config_path
        self.config: Optional[AppConfig] = None
        self.postgres_client: Optional[PostgresClient] = None
        self.shutdown_event = asyncio.Event()
        self.logger = structlog.get_logger(self.service_name)

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Name used in log events."""

    @abstractmethod
    async def _initialize(self) -> None:
        """Build service components once config and clients are ready."""

    @abstractmethod
    async def _run(self) -> None:
        """Main loop; return once shutdown_event is set."""

    async def _cleanup(self) -> None:
        """Service-specific cleanup."""

    def request_shutdown(self) -> None:
        if not self.shutdown_event.is_set():
            self.logger.info("shutdown_requested", service=self.service_name)
            self.shutdown_event.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                # Windows event loops lack add_signal_handler
                self.logger.debug("signal_handler_unsupported", signal=sig.name)

    async def run(self) -> None:
        """
        Run the service until shutdown.

        Raises:
            ConfigLoadError: If configuration cannot be loaded.
            PostgresConnectionException: If the database is unreachable.
        """
        self.config = load_config(self.config_path)
        setup_logging(
            self.config.log_level.value,
            self.config.features.logging.format,
        )

        self.postgres_client = PostgresClient(self.config.postgres)
        await self.postgres_client.connect()

        self._install_signal_handlers()

        try:
            await self._initialize()
            self.logger.info("service_started", service=self.service_name)
            await self._run()
        finally:
            await self._cleanup()
            await self.postgres_client.disconnect()
            self.logger.info("service_stopped", service=self.service_name)
