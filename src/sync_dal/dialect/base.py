"""Shared SQL generation for all supported dialects.

Dialects are pure translators: every method returns a string (or a
``(sql, params)`` pair) and nothing here touches a connection. Concrete
dialects override only the forms that genuinely differ.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

from sync_dal.capabilities import DialectCapabilities
from sync_schema.models import TableDefinition, array_base_type, is_array_type


def dedupe(names: Iterable[str]) -> List[str]:
    """Collapse duplicate names, keeping the first occurrence."""
    seen = set()
    unique = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


class BaseDialect(ABC):
    """Base class for SQL dialects."""

    name: str = "unspecified"
    capabilities: DialectCapabilities = DialectCapabilities()

    # Upsert conflict alias for ON CONFLICT dialects.
    excluded_keyword: str = "EXCLUDED"

    # Native DDL type per canonical scalar type.
    column_types: dict[str, str] = {}

    @property
    def supports_returning(self) -> bool:
        return self.capabilities.supports_returning

    @property
    def supports_jsonb(self) -> bool:
        return self.capabilities.supports_jsonb

    @property
    def supports_arrays(self) -> bool:
        return self.capabilities.supports_arrays

    @property
    def supports_schemas(self) -> bool:
        return self.capabilities.supports_schemas

    @property
    def supports_savepoints(self) -> bool:
        return self.capabilities.supports_savepoints

    # -- identifiers and parameters -------------------------------------

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Return the placeholder for the 0-based parameter ``index``."""

    def placeholders(self, count: int, offset: int = 0) -> List[str]:
        return [self.placeholder(offset + i) for i in range(count)]

    def qualify_table(self, schema: str, table: str) -> str:
        return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"

    def physical_table_name(self, schema: str, table: str) -> str:
        """Return the unquoted table name as stored in the catalog."""
        return table

    # -- casts and expressions ------------------------------------------

    @abstractmethod
    def cast_to_json(self, expr: str) -> str: ...

    @abstractmethod
    def cast_to_text(self, expr: str) -> str: ...

    @abstractmethod
    def cast_to_integer(self, expr: str) -> str: ...

    @abstractmethod
    def cast_to_boolean(self, expr: str) -> str: ...

    @abstractmethod
    def json_extract_text(self, column: str, path: str) -> str: ...

    @abstractmethod
    def json_extract_object(self, column: str, path: str) -> str: ...

    def now(self) -> str:
        return "now()"

    def now_utc(self) -> str:
        return "now()"

    # -- statements -----------------------------------------------------

    def build_upsert(
        self,
        table: str,
        columns: Sequence[str],
        conflict_keys: Sequence[str],
        update_columns: Sequence[str],
        param_offset: int = 0,
        guard_column: Optional[str] = None,
    ) -> str:
        """Build an idempotent insert-or-update for one row.

        ``table`` must already be qualified. Every column is inserted; on a
        conflict over ``conflict_keys`` each update column takes the value of
        the proposed row. An empty ``update_columns`` leaves existing rows
        untouched.

        With ``guard_column`` set, the update only applies when the stored
        value of that column is NULL or not newer than the proposed one, so an
        older snapshot never overwrites a newer row.
        """
        return self._build_on_conflict_upsert(
            table,
            dedupe(columns),
            dedupe(conflict_keys),
            dedupe(update_columns),
            param_offset,
            guard_column,
        )

    def _build_on_conflict_upsert(
        self,
        table: str,
        columns: List[str],
        conflict_keys: List[str],
        update_columns: List[str],
        param_offset: int,
        guard_column: Optional[str] = None,
    ) -> str:
        quoted_columns = ", ".join(self.quote_identifier(c) for c in columns)
        values = ", ".join(self.placeholders(len(columns), param_offset))
        conflict_target = ", ".join(self.quote_identifier(k) for k in conflict_keys)
        if update_columns:
            update_set = ", ".join(
                f"{self.quote_identifier(c)} = {self.excluded_keyword}.{self.quote_identifier(c)}"
                for c in update_columns
            )
            actions = [f"DO UPDATE SET {update_set}"]
            if guard_column:
                actions.append(f"WHERE {self._stale_write_guard(table, guard_column)}")
        else:
            actions = ["DO NOTHING"]

        lines = [
            f"INSERT INTO {table} ({quoted_columns})",
            f"VALUES ({values})",
            f"ON CONFLICT ({conflict_target})",
            *actions,
        ]
        if self.supports_returning:
            lines.append("RETURNING *")
        return "\n".join(lines)

    def _stale_write_guard(self, table: str, column: str) -> str:
        current = self._existing_column_ref(table, column)
        incoming = f"{self.excluded_keyword}.{self.quote_identifier(column)}"
        return f"{current} IS NULL OR {current} <= {incoming}"

    def _existing_column_ref(self, table: str, column: str) -> str:
        # Bare names are ambiguous with EXCLUDED inside DO UPDATE.
        return f"{table}.{self.quote_identifier(column)}"

    def build_insert(self, table: str, columns: Sequence[str], param_offset: int = 0) -> str:
        columns = dedupe(columns)
        quoted_columns = ", ".join(self.quote_identifier(c) for c in columns)
        values = ", ".join(self.placeholders(len(columns), param_offset))
        lines = [f"INSERT INTO {table} ({quoted_columns})", f"VALUES ({values})"]
        if self.supports_returning:
            lines.append("RETURNING *")
        return "\n".join(lines)

    def build_delete(
        self,
        table: str,
        where_column: str,
        param_index: int = 0,
        returning_columns: Optional[Sequence[str]] = None,
    ) -> str:
        lines = [
            f"DELETE FROM {table}",
            f"WHERE {self.quote_identifier(where_column)} = {self.placeholder(param_index)}",
        ]
        if self.supports_returning:
            if returning_columns:
                lines.append(
                    "RETURNING " + ", ".join(self.quote_identifier(c) for c in returning_columns)
                )
            else:
                lines.append("RETURNING *")
        return "\n".join(lines)

    def build_select(
        self, table: str, columns: Sequence[str], where_clause: Optional[str] = None
    ) -> str:
        if list(columns) == ["*"]:
            cols = "*"
        else:
            cols = ", ".join(self.quote_identifier(c) for c in columns)
        sql = f"SELECT {cols} FROM {table}"
        if where_clause:
            sql += f" WHERE {where_clause}"
        return sql

    # -- DDL and catalog ------------------------------------------------

    def create_schema(self, name: str) -> Optional[str]:
        return f"CREATE SCHEMA IF NOT EXISTS {self.quote_identifier(name)}"

    def table_exists(self, schema: str, table: str) -> Tuple[str, List[str]]:
        """Return a catalog query yielding a single ``table_exists`` value."""
        p1, p2 = self.placeholders(2)
        sql = (
            "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
            f"WHERE table_schema = {p1} AND table_name = {p2}) AS table_exists"
        )
        return sql, [schema, table]

    def json_storage_type(self) -> str:
        return self.column_types["jsonb"]

    def column_type(self, canonical_type: str, primary_key: bool = False) -> str:
        """Return the native DDL type for a canonical column type."""
        if is_array_type(canonical_type):
            if self.supports_arrays:
                return f"{self.column_type(array_base_type(canonical_type))}[]"
            return self.json_storage_type()
        return self.column_types.get(canonical_type, self.column_types["text"])

    def build_create_table(self, table_ref: str, table_def: TableDefinition) -> str:
        """Build ``CREATE TABLE IF NOT EXISTS`` DDL for a table definition."""
        column_lines = []
        for column in table_def.columns:
            line = (
                f"{self.quote_identifier(column.name)} "
                f"{self.column_type(column.type, primary_key=column.primary_key)}"
            )
            if not column.nullable or column.primary_key:
                line += " NOT NULL"
            column_lines.append(line)

        primary_key = table_def.primary_key
        if primary_key:
            column_lines.append(
                "PRIMARY KEY (" + ", ".join(self.quote_identifier(c) for c in primary_key) + ")"
            )

        body = ",\n  ".join(column_lines)
        return f"CREATE TABLE IF NOT EXISTS {table_ref} (\n  {body}\n)"

    # -- savepoints -----------------------------------------------------

    def savepoint(self, name: str) -> str:
        return f"SAVEPOINT {self.quote_identifier(name)}"

    def release_savepoint(self, name: str) -> str:
        return f"RELEASE SAVEPOINT {self.quote_identifier(name)}"

    def rollback_to_savepoint(self, name: str) -> str:
        return f"ROLLBACK TO SAVEPOINT {self.quote_identifier(name)}"
