"""Adapter contract shared by every backend.

``BaseAdapter`` owns connection state, transaction discipline and the
translation of raw driver exceptions into typed errors. Concrete adapters
implement the underscore hooks against their driver.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from sync_common.config.env import get_env_bool, get_env_int, get_env_str
from sync_dal.dialect import BaseDialect, get_dialect
from sync_dal.error_classification import CONNECTION_CATEGORIES, classify_error_info
from sync_dal.errors import (
    DatabaseConnectionError,
    QueryError,
    SyncEngineError,
    TransactionStateError,
)
from sync_dal.tracing import trace_query_operation
from sync_dal.types import DatabaseType
from sync_dal.util.env import get_provider_env

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SUPPORTED_TYPES = {member.value for member in DatabaseType}
_FILE_BACKED_TYPES = {DatabaseType.SQLITE, DatabaseType.DUCKDB}


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a statement plus the number of rows it touched."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


@dataclass(frozen=True)
class AdapterConfig:
    """Connection settings for one adapter instance."""

    type: DatabaseType
    url: str
    pool_size: int = 10
    connect_timeout_seconds: int = 30
    query_timeout_seconds: Optional[int] = None
    read_only: bool = False
    ssl: bool = False

    @classmethod
    def from_env(cls) -> "AdapterConfig":
        """Load adapter config from environment variables."""
        db_type = DatabaseType(get_provider_env("SYNC_DATABASE_TYPE", "postgres", _SUPPORTED_TYPES))
        url = get_env_str("SYNC_DATABASE_URL")
        if not url:
            if db_type not in _FILE_BACKED_TYPES:
                raise ValueError(
                    f"SYNC_DATABASE_URL is required for database type '{db_type.value}'."
                )
            url = ":memory:"
        query_timeout = get_env_int("SYNC_DATABASE_QUERY_TIMEOUT_SECS")
        return cls(
            type=db_type,
            url=url,
            pool_size=get_env_int("SYNC_DATABASE_POOL_SIZE", 10),
            connect_timeout_seconds=get_env_int("SYNC_DATABASE_CONNECT_TIMEOUT_SECS", 30),
            query_timeout_seconds=query_timeout if query_timeout else None,
            read_only=get_env_bool("SYNC_DATABASE_READ_ONLY", False),
            ssl=get_env_bool("SYNC_DATABASE_SSL", False),
        )


class BaseAdapter(ABC):
    """Uniform async execution and transaction interface over one backend.

    An adapter holds at most one open transaction. While a transaction is
    open every ``query`` runs on the transaction's dedicated connection.
    """

    database_type: DatabaseType

    def __init__(self, config: AdapterConfig) -> None:
        self.config = config
        self._connected = False
        self._in_transaction = False

    @property
    def provider(self) -> str:
        return self.database_type.value

    @property
    def dialect(self) -> BaseDialect:
        return get_dialect(self.database_type)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    # -- lifecycle ------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection or pool. Calling it again is a no-op."""
        if self._connected:
            return
        try:
            await self._open()
        except BaseException as exc:
            await self._teardown_after_failed_open()
            if isinstance(exc, SyncEngineError) or not isinstance(exc, Exception):
                raise
            raise DatabaseConnectionError(
                f"Failed to connect to {self.provider} database: {exc}"
            ) from exc
        self._connected = True
        logger.info("Connected %s adapter", self.provider)

    async def close(self) -> None:
        """Release all resources, rolling back any open transaction first."""
        if not self._connected:
            return
        try:
            if self._in_transaction:
                logger.warning("Closing %s adapter with an open transaction", self.provider)
                try:
                    await self.rollback()
                except Exception:
                    logger.exception("Implicit rollback failed while closing %s adapter", self.provider)
        finally:
            self._in_transaction = False
            self._connected = False
            await self._close()
            logger.info("Closed %s adapter", self.provider)

    async def _teardown_after_failed_open(self) -> None:
        try:
            await self._close()
        except Exception:
            logger.exception("Cleanup after failed %s connect also failed", self.provider)

    # -- execution ------------------------------------------------------

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Execute one parameterized statement."""
        self._require_connected()
        bound = list(params) if params is not None else []
        logger.debug("%s query: %s", self.provider, sql)

        operation = self._execute(sql, bound)
        if self.config.query_timeout_seconds:
            operation = asyncio.wait_for(operation, timeout=self.config.query_timeout_seconds)
        try:
            return await trace_query_operation(
                "sync_dal.query", provider=self.provider, sql=sql, operation=operation
            )
        except SyncEngineError:
            raise
        except Exception as exc:
            raise self._wrap_error(exc, sql, bound) from exc

    # -- transactions ---------------------------------------------------

    async def begin_transaction(self) -> None:
        self._require_connected()
        if self._in_transaction:
            raise TransactionStateError("Transaction already in progress")
        try:
            await self._begin()
        except SyncEngineError:
            raise
        except Exception as exc:
            raise self._wrap_error(exc, "BEGIN", []) from exc
        self._in_transaction = True

    async def commit(self) -> None:
        await self._end_transaction(self._commit, "COMMIT")

    async def rollback(self) -> None:
        await self._end_transaction(self._rollback, "ROLLBACK")

    async def _end_transaction(self, action: Callable[[], Awaitable[None]], label: str) -> None:
        if not self._in_transaction:
            raise TransactionStateError("No transaction in progress")
        try:
            await action()
        except SyncEngineError:
            raise
        except Exception as exc:
            raise self._wrap_error(exc, label, []) from exc
        finally:
            self._in_transaction = False
            try:
                await self._release_transaction()
            except Exception:
                logger.exception("Failed to release %s transaction connection", self.provider)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["BaseAdapter"]:
        """Run the block in a transaction, committing on success.

        Any failure, including cancellation, rolls back and re-raises the
        original error. A rollback failure is logged and does not replace it.
        """
        await self.begin_transaction()
        try:
            yield self
        except BaseException:
            await self.rollback_after_failure()
            raise
        await self.commit()

    async def with_transaction(self, fn: Callable[["BaseAdapter"], Awaitable[T]]) -> T:
        """Call ``fn(adapter)`` inside a transaction and return its result."""
        async with self.transaction():
            return await fn(self)

    async def rollback_after_failure(self) -> None:
        try:
            await self.rollback()
        except Exception:
            logger.exception("Rollback failed on %s adapter", self.provider)

    # -- helpers --------------------------------------------------------

    def _require_connected(self) -> None:
        if not self._connected:
            raise DatabaseConnectionError(f"{self.provider} adapter is not connected")

    def _wrap_error(self, exc: BaseException, sql: str, params: Sequence[Any]) -> SyncEngineError:
        info = classify_error_info(self.provider, exc)
        if info.category in CONNECTION_CATEGORIES:
            return DatabaseConnectionError(
                f"{self.provider} connection failure: {exc}", sql=sql, params=params
            )
        return QueryError(str(exc) or exc.__class__.__name__, sql, params, category=info.category)

    # -- driver hooks ---------------------------------------------------

    @abstractmethod
    async def _open(self) -> None: ...

    @abstractmethod
    async def _close(self) -> None:
        """Release driver resources. Must tolerate a partially opened state."""

    @abstractmethod
    async def _execute(self, sql: str, params: List[Any]) -> QueryResult: ...

    @abstractmethod
    async def _begin(self) -> None: ...

    @abstractmethod
    async def _commit(self) -> None: ...

    @abstractmethod
    async def _rollback(self) -> None: ...

    async def _release_transaction(self) -> None:
        """Return the transaction's dedicated connection, if any."""
        return None


async def get_last_insert_id(adapter: BaseAdapter) -> Optional[int]:
    """Return the session's last auto-generated id, or None.

    Only adapters whose dialect lacks RETURNING expose the capability; for the
    others the inserted row comes back from the statement itself.
    """
    fetch_last_id = getattr(adapter, "get_last_insert_id", None)
    if fetch_last_id is None:
        return None
    return await fetch_last_id()


def row_count_from_status(status: Optional[str], fallback: int) -> int:
    """Parse an affected-row count from a command tag like ``INSERT 0 3``."""
    if status:
        parts = status.split()
        if parts and parts[-1].isdigit():
            return int(parts[-1])
    return fallback
