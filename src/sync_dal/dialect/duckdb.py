from sync_dal.capabilities import capabilities_for_provider
from sync_dal.dialect.base import BaseDialect


class DuckDBDialect(BaseDialect):
    """DuckDB dialect.

    DuckDB has a JSON type (not JSONB) and native LIST columns, accepts
    ``$n`` parameters, and has no savepoints.
    """

    name = "duckdb"
    capabilities = capabilities_for_provider("duckdb")
    column_types = {
        "text": "TEXT",
        "bigint": "BIGINT",
        "numeric": "DOUBLE",
        "boolean": "BOOLEAN",
        "jsonb": "JSON",
        "timestamp": "TIMESTAMP",
    }

    def placeholder(self, index: int) -> str:
        return f"${index + 1}"

    def cast_to_json(self, expr: str) -> str:
        return f"CAST({expr} AS JSON)"

    def cast_to_text(self, expr: str) -> str:
        return f"CAST({expr} AS VARCHAR)"

    def cast_to_integer(self, expr: str) -> str:
        return f"CAST({expr} AS BIGINT)"

    def cast_to_boolean(self, expr: str) -> str:
        return f"CAST({expr} AS BOOLEAN)"

    def json_extract_text(self, column: str, path: str) -> str:
        return f"{column}->>'$.{path}'"

    def json_extract_object(self, column: str, path: str) -> str:
        return f"{column}->'$.{path}'"

    def _existing_column_ref(self, table: str, column: str) -> str:
        # Unqualified names in DO UPDATE resolve to the stored row.
        return self.quote_identifier(column)


duckdb_dialect = DuckDBDialect()
