"""Database type normalization for environment and URL driven selection.

Canonical type IDs (internal, lowercase):
- "postgres"
- "mysql"
- "sqlite"
- "duckdb"

User-facing aliases (case-insensitive):
- PostgreSQL: "postgresql", "postgres", "pg"
- MySQL: "mysql", "mariadb"
- SQLite: "sqlite", "sqlite3"
- DuckDB: "duckdb", "duck"

Example:
    >>> normalize_provider("PostgreSQL")
    'postgres'
    >>> get_provider_env("SYNC_DATABASE_TYPE", "postgres", {"postgres", "sqlite"})
    'postgres'
"""

from typing import Set

from sync_common.config.env import get_env_str

PROVIDER_ALIASES: dict[str, str] = {
    "postgresql": "postgres",
    "postgres": "postgres",
    "pg": "postgres",
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
    "mysql": "mysql",
    "mariadb": "mysql",
    "duckdb": "duckdb",
    "duck": "duckdb",
}


def normalize_provider(value: str) -> str:
    """Normalize a database type value to its canonical form.

    Unknown values pass through lowercased and stripped; validation happens
    in the caller.

    Example:
        >>> normalize_provider("  PG  ")
        'postgres'
        >>> normalize_provider("oracle")
        'oracle'
    """
    cleaned = value.strip().lower()
    return PROVIDER_ALIASES.get(cleaned, cleaned)


def get_provider_env(var_name: str, default: str, allowed: Set[str]) -> str:
    """Read, normalize and validate a database type environment variable.

    Raises:
        ValueError: If the normalized value is not in the allowed set.
    """
    raw_value = get_env_str(var_name)
    if raw_value is None:
        return default

    normalized = normalize_provider(raw_value)
    if normalized not in allowed:
        allowed_list = ", ".join(sorted(allowed))
        raise ValueError(
            f"Invalid database type for {var_name}: '{raw_value}'. "
            f"Allowed values: {allowed_list}"
        )
    return normalized
