import logging
from typing import Any, Dict, List, Optional

import asyncpg

from sync_dal.adapters.base import AdapterConfig, BaseAdapter, QueryResult, row_count_from_status
from sync_dal.types import DatabaseType

logger = logging.getLogger(__name__)


class PostgresAdapter(BaseAdapter):
    """PostgreSQL adapter backed by an asyncpg connection pool."""

    database_type = DatabaseType.POSTGRES

    def __init__(self, config: AdapterConfig) -> None:
        super().__init__(config)
        self._pool: Optional[asyncpg.Pool] = None
        self._tx_conn: Optional[asyncpg.Connection] = None
        self._tx = None

    async def _open(self) -> None:
        kwargs: Dict[str, Any] = {
            "dsn": self.config.url,
            "min_size": 1,
            "max_size": self.config.pool_size,
            "timeout": self.config.connect_timeout_seconds,
        }
        if self.config.ssl:
            kwargs["ssl"] = "require"
        if self.config.read_only:
            kwargs["server_settings"] = {"default_transaction_read_only": "on"}
        self._pool = await asyncpg.create_pool(**kwargs)

    async def _close(self) -> None:
        pool, self._pool = self._pool, None
        self._tx_conn = None
        self._tx = None
        if pool is not None:
            await pool.close()

    async def _execute(self, sql: str, params: List[Any]) -> QueryResult:
        if self._tx_conn is not None:
            return await self._run(self._tx_conn, sql, params)
        async with self._pool.acquire() as conn:
            return await self._run(conn, sql, params)

    @staticmethod
    async def _run(conn, sql: str, params: List[Any]) -> QueryResult:
        stmt = await conn.prepare(sql)
        records = await stmt.fetch(*params)
        rows = [dict(record) for record in records]
        return QueryResult(
            rows=rows, row_count=row_count_from_status(stmt.get_statusmsg(), len(rows))
        )

    async def _begin(self) -> None:
        conn = await self._pool.acquire()
        tx = conn.transaction()
        try:
            await tx.start()
        except BaseException:
            await self._pool.release(conn)
            raise
        self._tx_conn = conn
        self._tx = tx

    async def _commit(self) -> None:
        await self._tx.commit()

    async def _rollback(self) -> None:
        await self._tx.rollback()

    async def _release_transaction(self) -> None:
        conn, self._tx_conn = self._tx_conn, None
        self._tx = None
        if conn is not None and self._pool is not None:
            await self._pool.release(conn)
