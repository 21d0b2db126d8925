from enum import Enum


class DatabaseType(str, Enum):
    """Supported relational backends."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    DUCKDB = "duckdb"
