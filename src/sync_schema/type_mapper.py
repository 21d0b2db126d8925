"""Map provider object schemas onto canonical table definitions."""

from typing import Dict, List

from sync_schema.models import ColumnDefinition, IndexingOption, TableDefinition
from sync_schema.openapi import ObjectSchema, PropertyDefinition

_PLURAL_SPECIAL_CASES: Dict[str, str] = {
    "payment_intent": "payment_intents",
    "setup_intent": "setup_intents",
    "person": "persons",
    "invoice_item": "invoice_items",
    "tax_rate": "tax_rates",
}

_SIMPLE_TYPES: Dict[str, str] = {
    "string": "text",
    "integer": "bigint",
    "number": "numeric",
    "boolean": "boolean",
    "object": "jsonb",
    "null": "text",
}

_INDEXING_OPTIONS: Dict[str, List[IndexingOption]] = {
    "text": [
        IndexingOption(
            type="btree",
            description="Standard B-tree index for equality and range queries",
            example="CREATE INDEX idx_table_column ON schema.table(column);",
        )
    ],
    "bigint": [
        IndexingOption(
            type="btree",
            description="B-tree index for numeric comparisons and sorting",
            example="CREATE INDEX idx_table_amount ON schema.table(amount);",
        )
    ],
    "numeric": [
        IndexingOption(
            type="btree",
            description="B-tree index for decimal number operations",
            example="CREATE INDEX idx_table_rate ON schema.table(rate);",
        )
    ],
    "boolean": [
        IndexingOption(
            type="btree",
            description="B-tree index for boolean filtering (though often not needed)",
            example="CREATE INDEX idx_table_active ON schema.table(active);",
        )
    ],
    "jsonb": [
        IndexingOption(
            type="gin",
            description="GIN index for containment queries (@>, ?, ?|, ?&)",
            example="CREATE INDEX idx_table_metadata ON schema.table USING GIN (metadata);",
        ),
        IndexingOption(
            type="btree",
            description="B-tree index on specific JSON paths",
            example="CREATE INDEX idx_table_json_field ON schema.table((metadata->>'field'));",
        ),
    ],
    "text[]": [
        IndexingOption(
            type="gin",
            description="GIN index for array containment and overlap operations",
            example="CREATE INDEX idx_table_tags ON schema.table USING GIN (tags);",
        )
    ],
}


def pluralize(object_name: str) -> str:
    """Return the table name for a provider object name."""
    if object_name in _PLURAL_SPECIAL_CASES:
        return _PLURAL_SPECIAL_CASES[object_name]
    if object_name.endswith("y"):
        return object_name[:-1] + "ies"
    if object_name.endswith(("s", "sh", "ch")):
        return object_name + "es"
    return object_name + "s"


class TypeMapper:
    """Infer canonical columns, primary key and dependencies from object schemas."""

    primary_key_field = "id"

    def map_property(self, prop: PropertyDefinition) -> ColumnDefinition:
        canonical_type = self._canonical_type(prop)
        is_primary_key = prop.name == self.primary_key_field
        return ColumnDefinition(
            name=prop.name,
            type=canonical_type,
            nullable=prop.nullable and not is_primary_key,
            primary_key=is_primary_key,
            description=prop.description,
            indexing_options=self.get_indexing_options(canonical_type),
        )

    def map_object_schema(self, object_schema: ObjectSchema) -> TableDefinition:
        columns = sorted(
            (self.map_property(prop) for prop in object_schema.properties),
            key=_column_sort_key,
        )

        dependencies: List[str] = []
        for prop in object_schema.properties:
            for referenced in prop.references:
                if referenced == object_schema.name:
                    continue
                table_name = pluralize(referenced)
                if table_name not in dependencies:
                    dependencies.append(table_name)

        return TableDefinition(
            name=pluralize(object_schema.name),
            columns=columns,
            dependencies=dependencies,
            description=object_schema.description,
        )

    def get_indexing_options(self, canonical_type: str) -> List[IndexingOption]:
        return list(_INDEXING_OPTIONS.get(canonical_type, []))

    @staticmethod
    def _canonical_type(prop: PropertyDefinition) -> str:
        if prop.name in ("id", "object"):
            return "text"
        if prop.name == "metadata":
            return "jsonb"
        if prop.name in ("created", "updated") or prop.format == "unix-time":
            return "bigint"
        if prop.type == "array":
            # Only plain string lists get a native array; anything richer stays JSON.
            return "text[]" if prop.item_type == "string" else "jsonb"
        return _SIMPLE_TYPES.get(prop.type, "jsonb")


def _column_sort_key(column: ColumnDefinition) -> tuple:
    if column.name == "id":
        return (0, "")
    if column.name == "object":
        return (1, "")
    return (2, column.name)
