"""SQL dialects for each supported database type."""

from typing import Union

from sync_dal.dialect.base import BaseDialect
from sync_dal.dialect.duckdb import DuckDBDialect, duckdb_dialect
from sync_dal.dialect.mysql import MySQLDialect, mysql_dialect
from sync_dal.dialect.postgres import PostgresDialect, postgres_dialect
from sync_dal.dialect.sqlite import SQLiteDialect, sqlite_dialect
from sync_dal.types import DatabaseType
from sync_dal.util.env import normalize_provider

_DIALECTS: dict[DatabaseType, BaseDialect] = {
    DatabaseType.POSTGRES: postgres_dialect,
    DatabaseType.MYSQL: mysql_dialect,
    DatabaseType.SQLITE: sqlite_dialect,
    DatabaseType.DUCKDB: duckdb_dialect,
}


def get_dialect(database_type: Union[DatabaseType, str]) -> BaseDialect:
    """Return the shared dialect instance for a database type or alias."""
    try:
        key = DatabaseType(normalize_provider(str(getattr(database_type, "value", database_type))))
    except ValueError:
        raise ValueError(f"Unsupported database type: {database_type}") from None
    return _DIALECTS[key]


__all__ = [
    "BaseDialect",
    "DuckDBDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
]
