import logging
import sqlite3
from typing import Any, List, Optional

import aiosqlite

from sync_dal.adapters.base import AdapterConfig, BaseAdapter, QueryResult
from sync_dal.types import DatabaseType

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


def resolve_sqlite_path(url: str, read_only: bool = False) -> tuple[str, bool]:
    """Turn a ``sqlite://`` URL or bare path into ``(database, uri)`` arguments."""
    path = url
    for prefix in ("sqlite3:", "sqlite:"):
        if path.startswith(prefix):
            path = path[len(prefix) :]
            if path.startswith("//"):
                path = path[2:]
            break
    if path in ("", "/:memory:"):
        path = MEMORY_PATH

    if read_only and path != MEMORY_PATH:
        return f"file:{path}?mode=ro", True
    return path, False


class SQLiteAdapter(BaseAdapter):
    """SQLite adapter over a single aiosqlite connection.

    The connection runs with ``isolation_level=None`` so transactions are
    driven by explicit BEGIN/COMMIT/ROLLBACK statements.
    """

    database_type = DatabaseType.SQLITE

    def __init__(self, config: AdapterConfig) -> None:
        super().__init__(config)
        self._conn: Optional[aiosqlite.Connection] = None

    async def _open(self) -> None:
        database, uri = resolve_sqlite_path(self.config.url, self.config.read_only)
        self._conn = await aiosqlite.connect(
            database,
            uri=uri,
            isolation_level=None,
            timeout=self.config.connect_timeout_seconds,
        )
        self._conn.row_factory = sqlite3.Row
        await self._conn.execute("PRAGMA foreign_keys = ON")
        if database != MEMORY_PATH and not self.config.read_only:
            await self._conn.execute("PRAGMA journal_mode = WAL")

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    async def _execute(self, sql: str, params: List[Any]) -> QueryResult:
        cursor = await self._conn.execute(sql, params)
        try:
            if cursor.description:
                rows = [dict(row) for row in await cursor.fetchall()]
                return QueryResult(rows=rows, row_count=len(rows))
            return QueryResult(rows=[], row_count=max(cursor.rowcount, 0))
        finally:
            await cursor.close()

    async def _begin(self) -> None:
        await self._conn.execute("BEGIN")

    async def _commit(self) -> None:
        try:
            await self._conn.execute("COMMIT")
        except Exception:
            # A refused COMMIT (deferred constraint, busy database) leaves the
            # transaction open on the connection.
            if self._conn.in_transaction:
                try:
                    await self._conn.execute("ROLLBACK")
                except Exception:
                    logger.exception("Rollback after failed commit failed on sqlite adapter")
            raise

    async def _rollback(self) -> None:
        await self._conn.execute("ROLLBACK")

    async def get_last_insert_id(self) -> Optional[int]:
        """Return the rowid of the most recent insert, or None."""
        result = await self.query("SELECT last_insert_rowid() AS id")
        value = result.rows[0]["id"] if result.rows else 0
        return value or None
