"""Adapter factory with lazy, type-keyed provider registration.

Concrete adapters pull in their database driver at import time, so each
one is imported only when an adapter of that type is first requested.

Canonical database types:
    - "postgres": asyncpg pool
    - "mysql": aiomysql pool
    - "sqlite": aiosqlite connection
    - "duckdb": duckdb connection driven through worker threads

Example:
    >>> from sync_dal.factory import create_adapter_from_url
    >>> adapter = create_adapter_from_url("sqlite", ":memory:")
    >>> await adapter.connect()
"""

import logging
from typing import Callable, List, Union

from sync_dal.adapters.base import AdapterConfig, BaseAdapter
from sync_dal.types import DatabaseType
from sync_dal.util.env import normalize_provider

logger = logging.getLogger(__name__)

ADAPTER_PROVIDERS: "dict[DatabaseType, type[BaseAdapter]]" = {}


def _load_postgres() -> "type[BaseAdapter]":
    from sync_dal.adapters.postgres import PostgresAdapter

    return PostgresAdapter


def _load_mysql() -> "type[BaseAdapter]":
    from sync_dal.adapters.mysql import MySQLAdapter

    return MySQLAdapter


def _load_sqlite() -> "type[BaseAdapter]":
    from sync_dal.adapters.sqlite import SQLiteAdapter

    return SQLiteAdapter


def _load_duckdb() -> "type[BaseAdapter]":
    from sync_dal.adapters.duckdb import DuckDBAdapter

    return DuckDBAdapter


_ADAPTER_LOADERS: "dict[DatabaseType, Callable[[], type[BaseAdapter]]]" = {
    DatabaseType.POSTGRES: _load_postgres,
    DatabaseType.MYSQL: _load_mysql,
    DatabaseType.SQLITE: _load_sqlite,
    DatabaseType.DUCKDB: _load_duckdb,
}


def _coerce_type(database_type: Union[DatabaseType, str]) -> DatabaseType:
    if isinstance(database_type, DatabaseType):
        return database_type
    normalized = normalize_provider(database_type)
    try:
        return DatabaseType(normalized)
    except ValueError:
        supported = ", ".join(get_supported_database_types())
        raise ValueError(
            f"Unsupported database type: '{database_type}'. Supported types: {supported}"
        ) from None


def _get_adapter_class(database_type: DatabaseType) -> "type[BaseAdapter]":
    if database_type not in ADAPTER_PROVIDERS:
        ADAPTER_PROVIDERS[database_type] = _ADAPTER_LOADERS[database_type]()
    return ADAPTER_PROVIDERS[database_type]


def create_adapter(config: AdapterConfig) -> BaseAdapter:
    """Create an unconnected adapter for the configured database type."""
    database_type = _coerce_type(config.type)
    logger.info("Creating %s adapter", database_type.value)
    adapter_cls = _get_adapter_class(database_type)
    return adapter_cls(config)


def create_adapter_from_url(
    database_type: Union[DatabaseType, str], url: str, **options
) -> BaseAdapter:
    """Create an adapter from a database type (or alias) and URL."""
    config = AdapterConfig(type=_coerce_type(database_type), url=url, **options)
    return create_adapter(config)


def is_supported_database_type(name: str) -> bool:
    """Return True when ``name`` or one of its aliases is a supported type."""
    return normalize_provider(name) in {member.value for member in DatabaseType}


def get_supported_database_types() -> List[str]:
    return [member.value for member in DatabaseType]
