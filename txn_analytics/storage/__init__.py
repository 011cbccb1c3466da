"""
Storage backends and result caching.

Components:
    result_cache: ResultCache (TTL + LRU) and build_cache_key
    memory: In-memory MetricsStore and AlertStore
    postgres_client: Async PostgreSQL client
    postgres_store: PostgreSQL-backed MetricsStore and AlertStore
"""

from txn_analytics.storage.memory import InMemoryAlertStore, InMemoryMetricsStore
from txn_analytics.storage.postgres_client import (
    PostgresClient,
    PostgresClientError,
    PostgresConnectionException,
    PostgresOperationError,
)
from txn_analytics.storage.postgres_store import PostgresAlertStore, PostgresMetricsStore
from txn_analytics.storage.result_cache import ResultCache, build_cache_key

__all__: list[str] = [
    # Cache
    "ResultCache",
    "build_cache_key",
    # In-memory
    "InMemoryMetricsStore",
    "InMemoryAlertStore",
    # PostgreSQL
    "PostgresClient",
    "PostgresClientError",
    "PostgresConnectionException",
    "PostgresOperationError",
    "PostgresMetricsStore",
    "PostgresAlertStore",
]
