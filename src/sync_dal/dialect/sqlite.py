from typing import List, Optional, Tuple

from sync_dal.capabilities import capabilities_for_provider
from sync_dal.dialect.base import BaseDialect


class SQLiteDialect(BaseDialect):
    """SQLite dialect.

    SQLite has no schema namespaces, so ``<schema>.<table>`` is folded into a
    single ``<schema>_<table>`` identifier. JSON and arrays are stored as
    TEXT and booleans as 0/1.
    """

    name = "sqlite"
    capabilities = capabilities_for_provider("sqlite")
    excluded_keyword = "excluded"
    column_types = {
        "text": "TEXT",
        "bigint": "INTEGER",
        "numeric": "NUMERIC",
        "boolean": "INTEGER",
        "jsonb": "TEXT",
        "timestamp": "TEXT",
    }

    def placeholder(self, index: int) -> str:
        return "?"

    def qualify_table(self, schema: str, table: str) -> str:
        return self.quote_identifier(self.physical_table_name(schema, table))

    def physical_table_name(self, schema: str, table: str) -> str:
        return f"{schema}_{table}"

    def cast_to_json(self, expr: str) -> str:
        return f"json({expr})"

    def cast_to_text(self, expr: str) -> str:
        return f"CAST({expr} AS TEXT)"

    def cast_to_integer(self, expr: str) -> str:
        return f"CAST({expr} AS INTEGER)"

    def cast_to_boolean(self, expr: str) -> str:
        return f"CAST({expr} AS INTEGER)"

    def json_extract_text(self, column: str, path: str) -> str:
        return f"json_extract({column}, '$.{path}')"

    def json_extract_object(self, column: str, path: str) -> str:
        return f"json_extract({column}, '$.{path}')"

    def now(self) -> str:
        return "datetime('now')"

    def now_utc(self) -> str:
        return "datetime('now')"

    def create_schema(self, name: str) -> Optional[str]:
        return None

    def table_exists(self, schema: str, table: str) -> Tuple[str, List[str]]:
        sql = (
            "SELECT EXISTS (SELECT 1 FROM sqlite_master "
            "WHERE type = 'table' AND name = ?) AS table_exists"
        )
        return sql, [self.physical_table_name(schema, table)]


sqlite_dialect = SQLiteDialect()
