"""Conversion of provider objects into rows for a canonical table."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from sync_dal.dialect import BaseDialect
from sync_engine.registry import RAW_DATA_COLUMN, SYNCED_AT_COLUMN
from sync_schema.models import TableDefinition, is_array_type


def build_record(
    obj: Mapping[str, Any], table: TableDefinition, synced_at: Optional[datetime] = None
) -> Dict[str, Any]:
    """Return the canonical value of every column of ``table``, in column order.

    ``_raw_data`` holds the whole object and ``_last_synced_at`` the sync
    time, when the table has those columns.

    Raises:
        ValueError: If a primary key value is missing from ``obj``.
    """
    for key in table.primary_key:
        if obj.get(key) in (None, ""):
            raise ValueError(f"Object is missing primary key '{key}' for table '{table.name}'")

    record = {}
    for column in table.columns:
        if column.name == RAW_DATA_COLUMN:
            record[column.name] = dict(obj)
        elif column.name == SYNCED_AT_COLUMN:
            record[column.name] = synced_at or datetime.now(timezone.utc)
        else:
            record[column.name] = obj.get(column.name)
    return record


def encode_record(
    record: Mapping[str, Any], table: TableDefinition, dialect: BaseDialect
) -> Dict[str, Any]:
    return {
        column.name: to_storage_value(record.get(column.name), column.type, dialect)
        for column in table.columns
    }


def map_object_to_row(
    obj: Mapping[str, Any],
    table: TableDefinition,
    dialect: BaseDialect,
    synced_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Return storage values for every column of ``table``, in column order."""
    return encode_record(build_record(obj, table, synced_at), table, dialect)


def to_storage_value(value: Any, canonical_type: str, dialect: BaseDialect) -> Any:
    """Encode one value for the dialect's storage of ``canonical_type``."""
    if value is None:
        return None

    if is_array_type(canonical_type):
        if dialect.supports_arrays and isinstance(value, list):
            return value
        return _dump_json(value)

    if canonical_type == "jsonb":
        return _dump_json(value)

    if canonical_type == "boolean":
        if dialect.name == "sqlite":
            return 1 if value else 0
        return bool(value)

    if canonical_type == "text":
        if isinstance(value, str):
            return value
        if isinstance(value, (dict, list, bool)):
            return _dump_json(value)
        return str(value)

    if canonical_type == "timestamp" and isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        # SQLite stores ISO-8601 text, which orders the same as the instants.
        if dialect.name == "sqlite":
            return value.isoformat()
        # Only Postgres has a zoned timestamp type; elsewhere store naive UTC.
        if dialect.name != "postgres":
            return value.replace(tzinfo=None)
        return value

    return value


def _dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)
