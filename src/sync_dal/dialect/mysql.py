from typing import List, Optional

from sync_dal.capabilities import capabilities_for_provider
from sync_dal.dialect.base import BaseDialect


class MySQLDialect(BaseDialect):
    """MySQL dialect.

    Upserts use ``ON DUPLICATE KEY UPDATE``, which keys off every unique
    index of the table rather than an explicit conflict target.
    """

    name = "mysql"
    capabilities = capabilities_for_provider("mysql")
    column_types = {
        "text": "TEXT",
        "bigint": "BIGINT",
        "numeric": "DECIMAL(38,12)",
        "boolean": "BOOLEAN",
        "jsonb": "JSON",
        "timestamp": "DATETIME(3)",
    }

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    def placeholder(self, index: int) -> str:
        return "?"

    def cast_to_json(self, expr: str) -> str:
        return f"CAST({expr} AS JSON)"

    def cast_to_text(self, expr: str) -> str:
        return f"CAST({expr} AS CHAR)"

    def cast_to_integer(self, expr: str) -> str:
        return f"CAST({expr} AS SIGNED)"

    def cast_to_boolean(self, expr: str) -> str:
        return f"CAST({expr} AS UNSIGNED)"

    def json_extract_text(self, column: str, path: str) -> str:
        return f"JSON_UNQUOTE(JSON_EXTRACT({column}, '$.{path}'))"

    def json_extract_object(self, column: str, path: str) -> str:
        return f"JSON_EXTRACT({column}, '$.{path}')"

    def now(self) -> str:
        return "NOW()"

    def now_utc(self) -> str:
        return "UTC_TIMESTAMP()"

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
        if update_columns and guard_column:
            # Assignments run left to right, so the guard column is written last.
            guard = self.quote_identifier(guard_column)
            condition = f"{guard} IS NULL OR {guard} <= VALUES({guard})"
            ordered = [c for c in update_columns if c != guard_column]
            if guard_column in update_columns:
                ordered.append(guard_column)
            update_set = ", ".join(
                f"{self.quote_identifier(c)} = IF({condition}, "
                f"VALUES({self.quote_identifier(c)}), {self.quote_identifier(c)})"
                for c in ordered
            )
        elif update_columns:
            update_set = ", ".join(
                f"{self.quote_identifier(c)} = VALUES({self.quote_identifier(c)})"
                for c in update_columns
            )
        else:
            # Self-assignment keeps the existing row unchanged.
            key = self.quote_identifier(conflict_keys[0] if conflict_keys else columns[0])
            update_set = f"{key} = {key}"
        return "\n".join(
            [
                f"INSERT INTO {table} ({quoted_columns})",
                f"VALUES ({values})",
                f"ON DUPLICATE KEY UPDATE {update_set}",
            ]
        )

    def column_type(self, canonical_type: str, primary_key: bool = False) -> str:
        # TEXT cannot be part of a key without a prefix length.
        if primary_key and canonical_type == "text":
            return "VARCHAR(255)"
        return super().column_type(canonical_type, primary_key)

    def create_schema(self, name: str) -> str:
        return f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(name)}"


mysql_dialect = MySQLDialect()
