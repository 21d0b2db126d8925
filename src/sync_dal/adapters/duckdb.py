import asyncio
import logging
from typing import Any, List

from sync_dal.adapters.base import AdapterConfig, BaseAdapter, QueryResult
from sync_dal.types import DatabaseType

logger = logging.getLogger(__name__)

_WRITE_VERBS = ("INSERT", "UPDATE", "DELETE")


def resolve_duckdb_path(url: str) -> str:
    """Turn a ``duckdb://`` URL or bare path into a database path."""
    path = url
    if path.startswith("duckdb:"):
        path = path[len("duckdb:") :]
        if path.startswith("//"):
            path = path[2:]
    if path in ("", "/:memory:"):
        return ":memory:"
    return path


class DuckDBAdapter(BaseAdapter):
    """DuckDB adapter; the synchronous driver runs in worker threads."""

    database_type = DatabaseType.DUCKDB

    def __init__(self, config: AdapterConfig) -> None:
        super().__init__(config)
        self._conn = None

    async def _open(self) -> None:
        import duckdb

        path = resolve_duckdb_path(self.config.url)
        read_only = self.config.read_only and path != ":memory:"
        self._conn = await asyncio.to_thread(duckdb.connect, path, read_only=read_only)

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await asyncio.to_thread(conn.close)

    async def _execute(self, sql: str, params: List[Any]) -> QueryResult:
        conn = self._conn

        def _run() -> QueryResult:
            cursor = conn.execute(sql, params)
            if not cursor.description:
                return QueryResult(rows=[], row_count=0)
            cols = [desc[0] for desc in cursor.description]
            rows = [dict(zip(cols, row)) for row in cursor.fetchall()]
            # Writes without RETURNING report a single "Count" row.
            if cols == ["Count"] and _is_write(sql) and len(rows) == 1:
                return QueryResult(rows=[], row_count=int(rows[0]["Count"]))
            return QueryResult(rows=rows, row_count=len(rows))

        return await asyncio.to_thread(_run)

    async def _begin(self) -> None:
        await asyncio.to_thread(self._conn.execute, "BEGIN TRANSACTION")

    async def _commit(self) -> None:
        await asyncio.to_thread(self._conn.execute, "COMMIT")

    async def _rollback(self) -> None:
        await asyncio.to_thread(self._conn.execute, "ROLLBACK")


def _is_write(sql: str) -> bool:
    verb = sql.strip().split(maxsplit=1)
    return bool(verb) and verb[0].upper() in _WRITE_VERBS
