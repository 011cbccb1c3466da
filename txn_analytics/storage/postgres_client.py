"""
Async PostgreSQL client for transaction aggregates and alert history.

This module provides a PostgreSQL client that runs the single-pass period
aggregate queries behind the metrics store and the alert history queries
behind the alert store.

Key Tables:
    - transactions: Payment transactions (amount, status, type, created_at)
    - users: Registered users (created_at)
    - alerts: Emitted alerts with read state

Note:
    All monetary values are NUMERIC in the database and Decimal in Python.

Example:
    >>> from txn_analytics.config.models import PostgresConnectionConfig
    >>> from txn_analytics.storage.postgres_client import PostgresClient
    >>>
    >>> client = PostgresClient(PostgresConnectionConfig(url="postgresql://..."))
    >>> await client.connect()
    >>> row = await client.fetch_transaction_stats(start, end)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog

try:
    import asyncpg
    from asyncpg import Connection, Pool, Record
    from asyncpg.exceptions import (
        PostgresError,
        InterfaceError,
        ConnectionDoesNotExistError,
        TooManyConnectionsError,
    )
except ImportError as e:
    raise ImportError(
        "asyncpg is required for PostgresClient. Install with: pip install asyncpg"
    ) from e

from txn_analytics.config.models import PostgresConnectionConfig
from txn_analytics.models.alerts import Alert, AlertSeverity, AlertType

logger = structlog.get_logger(__name__)


ALERTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS alerts (
    alert_id          TEXT PRIMARY KEY,
    alert_type        TEXT NOT NULL,
    severity          TEXT NOT NULL,
    title             TEXT NOT NULL,
    description       TEXT NOT NULL,
    metric_value      NUMERIC(20, 2) NOT NULL,
    threshold_value   NUMERIC(20, 2) NOT NULL,
    comparison_period TEXT NOT NULL,
    created_at        TIMESTAMPTZ NOT NULL,
    read              BOOLEAN NOT NULL DEFAULT FALSE
);
CREATE INDEX IF NOT EXISTS idx_alerts_type_created ON alerts (alert_type, created_at);
CREATE INDEX IF NOT EXISTS idx_alerts_created ON alerts (created_at DESC);
"""

TRANSACTION_STATS_QUERY = """
SELECT
    COUNT(*) AS total_transactions,
    SUM(CASE WHEN status = 'PENDING' THEN 1 ELSE 0 END) AS pending_count,
    SUM(CASE WHEN status = 'FAILED' THEN 1 ELSE 0 END) AS failed_count,
    COALESCE(SUM(CASE WHEN status = 'SUCCESS' AND type = 'PAYIN' THEN amount ELSE 0 END), 0)
        AS total_gtv,
    AVG(CASE WHEN status = 'SUCCESS' AND type = 'PAYIN' THEN amount END) AS avg_ticket_size,
    COALESCE(SUM(CASE WHEN status = 'FAILED' THEN amount ELSE 0 END), 0) AS failed_volume,
    CASE
        WHEN COUNT(*) = 0 THEN NULL
        ELSE SUM(CASE WHEN status = 'SUCCESS' THEN 1 ELSE 0 END) * 100.0 / COUNT(*)
    END AS success_rate
FROM transactions
WHERE created_at >= $1
  AND created_at < $2
"""

USER_STATS_QUERY = """
SELECT
    SUM(CASE WHEN created_at < $2 THEN 1 ELSE 0 END) AS total_users,
    SUM(CASE WHEN created_at >= $1 AND created_at < $2 THEN 1 ELSE 0 END) AS new_users
FROM users
"""


class PostgresClientError(Exception):
    """Base exception for PostgreSQL client errors."""

    pass


class PostgresConnectionException(PostgresClientError):
    """Raised when PostgreSQL connection fails."""

    pass


class PostgresOperationError(PostgresClientError):
    """Raised when a PostgreSQL operation fails."""

    pass


def _affected_rows(status: str) -> int:
    """Parse the row count from a command status such as 'DELETE 12'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


def _row_to_alert(row: Record) -> Alert:
    return Alert(
        alert_id=row["alert_id"],
        alert_type=AlertType(row["alert_type"]),
        severity=AlertSeverity(row["severity"]),
        title=row["title"],
        description=row["description"],
        metric_value=row["metric_value"],
        threshold_value=row["threshold_value"],
        comparison_period=row["comparison_period"],
        created_at=row["created_at"],
        read=row["read"],
    )


class PostgresClient:
    """
    Async PostgreSQL client for the analytics database.

    Attributes:
        config: PostgreSQL connection configuration.
        _pool: Connection pool for efficient connection reuse.
        _connected: Whether the client is connected.

    Example:
        >>> client = PostgresClient(PostgresConnectionConfig(url="postgresql://..."))
        >>> await client.connect()
        >>> try:
        ...     exists = await client.alert_exists_since(AlertType.REVENUE_DROP, since)
        ... finally:
        ...     await client.disconnect()
    """

    # Maximum retries for transient errors
    MAX_RETRIES = 3

    # Retry delay in seconds
    RETRY_DELAY = 0.5

    def __init__(self, config: PostgresConnectionConfig) -> None:
        """
        Initialize the PostgreSQL client.

        Args:
            config: PostgreSQL connection configuration containing URL and pool settings.
        """
        self.config = config
        self._pool: Optional[Pool] = None
        self._connected: bool = False

        logger.info(
            "postgres_client_initialized",
            url=self._sanitize_url(config.url),
            pool_size=config.pool_size,
        )

    def _sanitize_url(self, url: str) -> str:
        """Sanitize URL for logging (remove password)."""
        if "@" in url:
            parts = url.split("@")
            if ":" in parts[0]:
                user_part = parts[0].rsplit(":", 1)[0]
                return f"{user_part}:***@{parts[1]}"
        return url

    @property
    def is_connected(self) -> bool:
        """True if the connection pool is open."""
        return self._connected and self._pool is not None

    async def connect(self) -> None:
        """
        Establish connection pool to PostgreSQL.

        Raises:
            PostgresConnectionException: If connection fails.
        """
        if self._connected:
            logger.warning("postgres_already_connected")
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.url,
                min_size=1,
                max_size=self.config.pool_size + self.config.max_overflow,
                command_timeout=self.config.pool_timeout,
                init=self._init_connection,
            )

            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")

            self._connected = True

            logger.info(
                "postgres_connected",
                url=self._sanitize_url(self.config.url),
            )

        except (PostgresError, OSError, asyncio.TimeoutError) as e:
            self._connected = False
            logger.error(
                "postgres_connection_failed",
                url=self._sanitize_url(self.config.url),
                error=str(e),
            )
            raise PostgresConnectionException(
                f"Failed to connect to PostgreSQL: {e}"
            ) from e

    async def _init_connection(self, conn: Connection) -> None:
        """Set timezone to UTC for consistent timestamps."""
        await conn.execute("SET timezone = 'UTC'")

    async def disconnect(self) -> None:
        """
        Close PostgreSQL connection pool and release resources.

        Safe to call multiple times.
        """
        if self._pool is not None:
            try:
                await self._pool.close()
            except Exception as e:
                logger.warning("postgres_close_error", error=str(e))
            finally:
                self._pool = None

        self._connected = False
        logger.info("postgres_disconnected")

    @asynccontextmanager
    async def _acquire_connection(self) -> AsyncIterator[Connection]:
        """
        Acquire a connection from the pool with error handling.

        Raises:
            PostgresConnectionException: If not connected or pool exhausted.
        """
        if not self._connected or self._pool is None:
            raise PostgresConnectionException("PostgreSQL client is not connected")

        try:
            async with self._pool.acquire() as conn:
                yield conn
        except TooManyConnectionsError as e:
            logger.error("postgres_pool_exhausted", error=str(e))
            raise PostgresConnectionException(
                f"Connection pool exhausted: {e}"
            ) from e
        except (ConnectionDoesNotExistError, InterfaceError) as e:
            logger.error("postgres_connection_lost", error=str(e))
            self._connected = False
            raise PostgresConnectionException(
                f"Connection lost: {e}"
            ) from e

    async def _execute_with_retry(
        self,
        operation: str,
        func: Any,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """
        Execute a database operation with retry logic for transient errors.

        Args:
            operation: Name of the operation for logging.
            func: Async function to execute.

        Returns:
            Any: Result of the function call.

        Raises:
            PostgresOperationError: If all retries fail.
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.MAX_RETRIES):
            try:
                return await func(*args, **kwargs)
            except (PostgresError, ConnectionDoesNotExistError, InterfaceError) as e:
                last_error = e
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(
                        "postgres_operation_retry",
                        operation=operation,
                        attempt=attempt + 1,
                        max_retries=self.MAX_RETRIES,
                        error=str(e),
                    )
                    await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                else:
                    logger.error(
                        "postgres_operation_failed",
                        operation=operation,
                        error=str(e),
                    )

        raise PostgresOperationError(
            f"Operation '{operation}' failed after {self.MAX_RETRIES} attempts: {last_error}"
        )

    async def create_schema(self) -> None:
        """Create the alerts table and indexes if missing."""

        async def _create() -> None:
            async with self._acquire_connection() as conn:
                await conn.execute(ALERTS_SCHEMA)

        await self._execute_with_retry("create_schema", _create)
        logger.info("postgres_schema_ready")

    # =========================================================================
    # PERIOD AGGREGATES
    # =========================================================================

    async def fetch_transaction_stats(
        self, start: datetime, end: datetime
    ) -> Dict[str, Any]:
        """
        Aggregate transactions with created_at in [start, end) in one query.

        Returns:
            Dict with total_transactions, pending_count, failed_count,
            total_gtv, avg_ticket_size, failed_volume and success_rate.
            Values may be None for an empty window.
        """
        start_time = time.monotonic()

        async def _query() -> Optional[Record]:
            async with self._acquire_connection() as conn:
                return await conn.fetchrow(TRANSACTION_STATS_QUERY, start, end)

        row = await self._execute_with_retry("fetch_transaction_stats", _query)

        logger.debug(
            "transaction_stats_fetched",
            start=start.isoformat(),
            end=end.isoformat(),
            elapsed_ms=round((time.monotonic() - start_time) * 1000, 2),
        )
        return dict(row) if row is not None else {}

    async def fetch_user_stats(self, start: datetime, end: datetime) -> Dict[str, Any]:
        """
        Count users registered before `end` and within [start, end).

        Returns:
            Dict with total_users and new_users (None when the table is empty).
        """

        async def _query() -> Optional[Record]:
            async with self._acquire_connection() as conn:
                return await conn.fetchrow(USER_STATS_QUERY, start, end)

        row = await self._execute_with_retry("fetch_user_stats", _query)
        return dict(row) if row is not None else {}

    # =========================================================================
    # ALERTS
    # =========================================================================

    async def insert_alert(self, alert: Alert) -> None:
        """
        Insert a new alert.

        Raises:
            PostgresConnectionException: If not connected.
            PostgresOperationError: If the operation fails.
        """
        start_time = time.monotonic()

        async def _insert() -> None:
            async with self._acquire_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO alerts (
                        alert_id, alert_type, severity, title, description,
                        metric_value, threshold_value, comparison_period,
                        created_at, read
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                    """,
                    alert.alert_id,
                    alert.alert_type.value,
                    alert.severity.value,
                    alert.title,
                    alert.description,
                    alert.metric_value,
                    alert.threshold_value,
                    alert.comparison_period,
                    alert.created_at,
                    alert.read,
                )

        await self._execute_with_retry("insert_alert", _insert)

        logger.info(
            "alert_inserted",
            alert_id=alert.alert_id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            elapsed_ms=round((time.monotonic() - start_time) * 1000, 2),
        )

    async def alert_exists_since(self, alert_type: AlertType, since: datetime) -> bool:
        """Check for an alert of `alert_type` created after `since`."""

        async def _query() -> bool:
            async with self._acquire_connection() as conn:
                return await conn.fetchval(
                    """
                    SELECT EXISTS (
                        SELECT 1 FROM alerts
                        WHERE alert_type = $1 AND created_at > $2
                    )
                    """,
                    alert_type.value,
                    since,
                )

        return bool(await self._execute_with_retry("alert_exists_since", _query))

    async def delete_alerts_older_than(self, cutoff: datetime) -> int:
        """Delete alerts created before `cutoff`; returns the row count."""

        async def _delete() -> str:
            async with self._acquire_connection() as conn:
                return await conn.execute(
                    "DELETE FROM alerts WHERE created_at < $1", cutoff
                )

        status = await self._execute_with_retry("delete_alerts_older_than", _delete)
        return _affected_rows(status)

    async def query_recent_alerts(self, limit: int = 50) -> List[Alert]:
        """Fetch the newest alerts, newest first."""

        async def _query() -> List[Record]:
            async with self._acquire_connection() as conn:
                return await conn.fetch(
                    """
                    SELECT alert_id, alert_type, severity, title, description,
                           metric_value, threshold_value, comparison_period,
                           created_at, read
                    FROM alerts
                    ORDER BY created_at DESC
                    LIMIT $1
                    """,
                    limit,
                )

        rows = await self._execute_with_retry("query_recent_alerts", _query)

        alerts = []
        for row in rows:
            try:
                alerts.append(_row_to_alert(row))
            except (ValueError, KeyError) as e:
                logger.warning(
                    "alert_row_parse_error",
                    alert_id=row["alert_id"],
                    error=str(e),
                )
        return alerts

    async def count_alerts(self, unread_only: bool = False) -> int:
        """Count stored alerts, optionally only unread ones."""
        query = "SELECT COUNT(*) FROM alerts"
        if unread_only:
            query += " WHERE read = FALSE"

        async def _query() -> int:
            async with self._acquire_connection() as conn:
                return await conn.fetchval(query)

        return int(await self._execute_with_retry("count_alerts", _query) or 0)

    async def mark_alert_read(self, alert_id: str) -> bool:
        """Mark one alert read; False if no such alert."""

        async def _update() -> str:
            async with self._acquire_connection() as conn:
                return await conn.execute(
                    "UPDATE alerts SET read = TRUE WHERE alert_id = $1", alert_id
                )

        status = await self._execute_with_retry("mark_alert_read", _update)
        return _affected_rows(status) > 0

    async def mark_all_alerts_read(self) -> int:
        """Mark every unread alert read; returns the row count."""

        async def _update() -> str:
            async with self._acquire_connection() as conn:
                return await conn.execute("UPDATE alerts SET read = TRUE WHERE read = FALSE")

        status = await self._execute_with_retry("mark_all_alerts_read", _update)
        return _affected_rows(status)
