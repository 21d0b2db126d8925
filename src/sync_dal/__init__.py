"""Data access layer for the sync engine.

Dialects generate backend-specific SQL text; adapters execute it against one
database connection or pool. Both are selected by a ``DatabaseType`` tag.
"""

from sync_dal.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    NotFoundError,
    QueryError,
    SyncEngineError,
    TransactionStateError,
)
from sync_dal.types import DatabaseType

__all__ = [
    "ConfigurationError",
    "DatabaseConnectionError",
    "DatabaseType",
    "NotFoundError",
    "QueryError",
    "SyncEngineError",
    "TransactionStateError",
]
