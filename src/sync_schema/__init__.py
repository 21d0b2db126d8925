"""Canonical schema models and provider object-schema mapping."""

from sync_schema.models import ColumnDefinition, IndexingOption, TableDefinition

__all__ = ["ColumnDefinition", "IndexingOption", "TableDefinition"]
