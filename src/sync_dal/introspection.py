"""Live catalog introspection for the configured backend."""

from __future__ import annotations

import logging
from typing import List, Optional

from sync_dal.adapters.base import BaseAdapter
from sync_dal.type_normalization import RawColumn, convert_to_column_definition
from sync_dal.types import DatabaseType
from sync_schema.models import TableDefinition

logger = logging.getLogger(__name__)


class CatalogIntrospector:
    """Read table and column metadata through an adapter's own catalog."""

    def __init__(self, adapter: BaseAdapter) -> None:
        self.adapter = adapter
        self.dialect = adapter.dialect

    @property
    def _type(self) -> DatabaseType:
        return self.adapter.database_type

    async def schema_exists(self, schema: str) -> bool:
        """Return True when the schema namespace exists.

        SQLite has no namespaces, so every schema is considered present.
        """
        if self._type == DatabaseType.SQLITE:
            return True
        p1 = self.dialect.placeholder(0)
        result = await self.adapter.query(
            "SELECT schema_name AS schema_name FROM information_schema.schemata "
            f"WHERE schema_name = {p1}",
            [schema],
        )
        return bool(result.rows)

    async def table_exists(self, table: str, schema: str) -> bool:
        sql, params = self.dialect.table_exists(schema, table)
        result = await self.adapter.query(sql, params)
        if not result.rows:
            return False
        return bool(next(iter(result.rows[0].values())))

    async def list_tables(self, schema: str) -> List[str]:
        """List base tables in ``schema`` by their logical names."""
        if self._type == DatabaseType.SQLITE:
            prefix = self.dialect.physical_table_name(schema, "")
            result = await self.adapter.query(
                "SELECT name FROM sqlite_master WHERE type = 'table' "
                "AND substr(name, 1, ?) = ? ORDER BY name",
                [len(prefix), prefix],
            )
            return [row["name"][len(prefix) :] for row in result.rows]

        p1 = self.dialect.placeholder(0)
        result = await self.adapter.query(
            "SELECT table_name AS table_name FROM information_schema.tables "
            f"WHERE table_schema = {p1} AND table_type = 'BASE TABLE' "
            "ORDER BY table_name",
            [schema],
        )
        return [row["table_name"] for row in result.rows]

    async def get_columns(self, table: str, schema: str) -> List[RawColumn]:
        """Return the table's columns in ordinal order, empty if it is absent."""
        if self._type == DatabaseType.SQLITE:
            return await self._sqlite_columns(table, schema)
        if self._type == DatabaseType.MYSQL:
            return await self._mysql_columns(table, schema)

        p1, p2 = self.dialect.placeholders(2)
        result = await self.adapter.query(
            "SELECT column_name AS column_name, data_type AS data_type, "
            "is_nullable AS is_nullable"
            + (", udt_name AS udt_name" if self._type == DatabaseType.POSTGRES else "")
            + " FROM information_schema.columns "
            f"WHERE table_schema = {p1} AND table_name = {p2} "
            "ORDER BY ordinal_position",
            [schema, table],
        )
        primary_key = set(await self._primary_key_columns(table, schema))

        columns = []
        for row in result.rows:
            data_type = row["data_type"]
            # Postgres reports arrays as ARRAY; the element type lives in udt_name (e.g. _text).
            if data_type == "ARRAY" and row.get("udt_name"):
                data_type = row["udt_name"]
            columns.append(
                RawColumn(
                    column_name=row["column_name"],
                    data_type=data_type,
                    is_nullable=str(row["is_nullable"]).upper() == "YES",
                    is_primary_key=row["column_name"] in primary_key,
                )
            )
        return columns

    async def get_table_definition(self, table: str, schema: str) -> Optional[TableDefinition]:
        """Build a canonical TableDefinition from the live catalog, or None."""
        raw_columns = await self.get_columns(table, schema)
        if not raw_columns:
            logger.debug("Table %s.%s not found in %s catalog", schema, table, self._type.value)
            return None
        return TableDefinition(
            name=table,
            columns=[convert_to_column_definition(raw) for raw in raw_columns],
        )

    async def _primary_key_columns(self, table: str, schema: str) -> List[str]:
        p1, p2 = self.dialect.placeholders(2)
        if self._type == DatabaseType.DUCKDB:
            result = await self.adapter.query(
                "SELECT constraint_column_names FROM duckdb_constraints() "
                f"WHERE schema_name = {p1} AND table_name = {p2} "
                "AND constraint_type = 'PRIMARY KEY'",
                [schema, table],
            )
            return [name for row in result.rows for name in row["constraint_column_names"]]

        result = await self.adapter.query(
            "SELECT kcu.column_name AS column_name "
            "FROM information_schema.table_constraints tc "
            "JOIN information_schema.key_column_usage kcu "
            "ON tc.constraint_name = kcu.constraint_name "
            "AND tc.table_schema = kcu.table_schema "
            "AND tc.table_name = kcu.table_name "
            f"WHERE tc.constraint_type = 'PRIMARY KEY' AND tc.table_schema = {p1} "
            f"AND tc.table_name = {p2}",
            [schema, table],
        )
        return [row["column_name"] for row in result.rows]

    async def _mysql_columns(self, table: str, schema: str) -> List[RawColumn]:
        result = await self.adapter.query(
            "SELECT column_name AS column_name, data_type AS data_type, "
            "is_nullable AS is_nullable, column_key AS column_key "
            "FROM information_schema.columns "
            "WHERE table_schema = ? AND table_name = ? ORDER BY ordinal_position",
            [schema, table],
        )
        return [
            RawColumn(
                column_name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=str(row["is_nullable"]).upper() == "YES",
                is_primary_key=row["column_key"] == "PRI",
            )
            for row in result.rows
        ]

    async def _sqlite_columns(self, table: str, schema: str) -> List[RawColumn]:
        physical = self.dialect.physical_table_name(schema, table)
        result = await self.adapter.query(
            f"PRAGMA table_info({self.dialect.quote_identifier(physical)})"
        )
        return [
            RawColumn(
                column_name=row["name"],
                data_type=row["type"] or "",
                is_nullable=row["notnull"] == 0 and not row["pk"],
                is_primary_key=row["pk"] > 0,
            )
            for row in result.rows
        ]
