"""Normalization of native column types into canonical types."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Union

from sync_schema.models import ColumnDefinition

logger = logging.getLogger(__name__)

# Every integer width widens to bigint so provider field-width changes never overflow.
_TYPE_SYNONYMS: dict[str, str] = {
    "text": "text",
    "varchar": "text",
    "character varying": "text",
    "bigint": "bigint",
    "int8": "bigint",
    "integer": "bigint",
    "int4": "bigint",
    "int": "bigint",
    "numeric": "numeric",
    "decimal": "numeric",
    "boolean": "boolean",
    "bool": "boolean",
    "jsonb": "jsonb",
}

DEFAULT_CANONICAL_TYPE = "text"


def normalize_type(raw_type: str) -> str:
    """Map a native type name to its canonical type.

    Total and case-insensitive: names ending in ``[]`` or starting with ``_``
    become arrays of the normalized base type, and anything unrecognized
    becomes ``text``.
    """
    normalized = (raw_type or "").strip().lower()
    if normalized.endswith("[]"):
        return f"{normalize_type(normalized[:-2])}[]"
    if normalized.startswith("_"):
        return f"{normalize_type(normalized[1:])}[]"

    canonical = _TYPE_SYNONYMS.get(normalized)
    if canonical is None:
        logger.debug("Unknown column type %r, treating as %s", raw_type, DEFAULT_CANONICAL_TYPE)
        return DEFAULT_CANONICAL_TYPE
    return canonical


@dataclass(frozen=True)
class RawColumn:
    """Column as reported by a live database catalog."""

    column_name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False


RawColumnLike = Union[RawColumn, Mapping[str, Any]]


def convert_to_column_definition(raw_column: RawColumnLike) -> ColumnDefinition:
    """Convert a catalog column into a canonical ColumnDefinition.

    Catalogs carry no provider descriptions or indexing hints, so those are
    always defaulted.
    """
    if isinstance(raw_column, RawColumn):
        raw = raw_column
    else:
        raw = RawColumn(
            column_name=_first(raw_column, "column_name", "name"),
            data_type=_first(raw_column, "data_type", "type") or "",
            is_nullable=_as_bool(_first(raw_column, "is_nullable", "nullable", default=True)),
            is_primary_key=_as_bool(
                _first(raw_column, "is_primary_key", "primary_key", default=False)
            ),
        )

    return ColumnDefinition(
        name=raw.column_name,
        type=normalize_type(raw.data_type),
        nullable=raw.is_nullable,
        primary_key=raw.is_primary_key,
        description=None,
        indexing_options=[],
    )


def _first(mapping: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return default


def _as_bool(value: Any) -> bool:
    # information_schema reports nullability as 'YES'/'NO'.
    if isinstance(value, str):
        return value.strip().upper() in ("YES", "Y", "TRUE", "T", "1")
    return bool(value)
