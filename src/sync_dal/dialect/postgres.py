from sync_dal.capabilities import capabilities_for_provider
from sync_dal.dialect.base import BaseDialect


class PostgresDialect(BaseDialect):
    """PostgreSQL dialect."""

    name = "postgres"
    capabilities = capabilities_for_provider("postgres")
    column_types = {
        "text": "TEXT",
        "bigint": "BIGINT",
        "numeric": "NUMERIC",
        "boolean": "BOOLEAN",
        "jsonb": "JSONB",
        "timestamp": "TIMESTAMPTZ",
    }

    def placeholder(self, index: int) -> str:
        return f"${index + 1}"

    def cast_to_json(self, expr: str) -> str:
        return f"{expr}::jsonb"

    def cast_to_text(self, expr: str) -> str:
        return f"{expr}::text"

    def cast_to_integer(self, expr: str) -> str:
        return f"{expr}::bigint"

    def cast_to_boolean(self, expr: str) -> str:
        return f"{expr}::boolean"

    def json_extract_text(self, column: str, path: str) -> str:
        return f"{column}->>'{path}'"

    def json_extract_object(self, column: str, path: str) -> str:
        return f"{column}->'{path}'"


postgres_dialect = PostgresDialect()
