"""Entity configuration and the default provider resource registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sync_schema.models import ColumnDefinition, TableDefinition
from sync_schema.openapi import ObjectSchemaParser
from sync_schema.type_mapper import TypeMapper

logger = logging.getLogger(__name__)

# Bookkeeping columns added to every entity table.
RAW_DATA_COLUMN = "_raw_data"
SYNCED_AT_COLUMN = "_last_synced_at"

SYNC_COLUMNS = (
    ColumnDefinition(name=RAW_DATA_COLUMN, type="jsonb"),
    ColumnDefinition(name=SYNCED_AT_COLUMN, type="timestamp"),
)


@dataclass(frozen=True)
class EntityConfig:
    """One synchronized object type.

    ``object_name`` is the API resource path used to list and retrieve
    objects; ``dependencies`` names other entities whose rows must be
    written first.
    """

    name: str
    object_name: str
    table: TableDefinition
    id_prefixes: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResourceSpec:
    """Static description of a provider resource before its table is known."""

    name: str
    object_name: str
    schema_name: str
    table_name: str
    id_prefixes: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()


# Parents precede children so foreign-key style references resolve.
DEFAULT_RESOURCES: List[ResourceSpec] = [
    ResourceSpec("product", "products", "product", "products", ("prod_",)),
    ResourceSpec("price", "prices", "price", "prices", ("price_",), ("product",)),
    ResourceSpec("plan", "plans", "plan", "plans", (), ("product",)),
    ResourceSpec("customer", "customers", "customer", "customers", ("cus_",)),
    ResourceSpec(
        "subscription", "subscriptions", "subscription", "subscriptions", ("sub_",),
        ("customer", "price"),
    ),
    ResourceSpec(
        "subscription_schedule", "subscription_schedules", "subscription_schedule",
        "subscription_schedules", ("sub_sched_",), ("customer",),
    ),
    ResourceSpec(
        "invoice", "invoices", "invoice", "invoices", ("in_",), ("customer", "subscription")
    ),
    ResourceSpec("charge", "charges", "charge", "charges", ("ch_", "py_"), ("customer", "invoice")),
    ResourceSpec(
        "setup_intent", "setup_intents", "setup_intent", "setup_intents", ("seti_",), ("customer",)
    ),
    ResourceSpec(
        "payment_method", "payment_methods", "payment_method", "payment_methods", ("pm_",),
        ("customer",),
    ),
    ResourceSpec(
        "payment_intent", "payment_intents", "payment_intent", "payment_intents", ("pi_",),
        ("customer",),
    ),
    ResourceSpec("tax_id", "tax_ids", "tax_id", "tax_ids", ("txi_",), ("customer",)),
    ResourceSpec("credit_note", "credit_notes", "credit_note", "credit_notes", ("cn_",), ("invoice",)),
    ResourceSpec("dispute", "disputes", "dispute", "disputes", ("dp_", "du_"), ("charge",)),
    ResourceSpec(
        "early_fraud_warning", "radar/early_fraud_warnings", "radar.early_fraud_warning",
        "early_fraud_warnings", ("issfr_",), ("charge",),
    ),
    ResourceSpec("refund", "refunds", "refund", "refunds", ("re_",), ("charge",)),
    ResourceSpec(
        "checkout_session", "checkout/sessions", "checkout.session", "checkout_sessions",
        ("cs_",), ("customer",),
    ),
]

PREFIX_RESOURCE_MAP: Dict[str, str] = {
    prefix: spec.name for spec in DEFAULT_RESOURCES for prefix in spec.id_prefixes
}


def build_prefix_map(entities: Iterable[EntityConfig]) -> Dict[str, str]:
    return {prefix: entity.name for entity in entities for prefix in entity.id_prefixes}


def resolve_entity_from_id(
    external_id: str, prefix_map: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """Return the entity whose id prefix matches ``external_id``.

    Prefixes are tried longest first, so ``sub_sched_`` wins over ``sub_``.
    """
    prefixes = PREFIX_RESOURCE_MAP if prefix_map is None else prefix_map
    for prefix in sorted(prefixes, key=len, reverse=True):
        if external_id.startswith(prefix):
            return prefixes[prefix]
    return None


def minimal_table(table_name: str) -> TableDefinition:
    """Columns every provider object carries, for use without a schema document."""
    return TableDefinition(
        name=table_name,
        columns=[
            ColumnDefinition(name="id", type="text", nullable=False, primary_key=True),
            ColumnDefinition(name="object", type="text"),
            ColumnDefinition(name="created", type="bigint"),
            ColumnDefinition(name="livemode", type="boolean"),
            ColumnDefinition(name="metadata", type="jsonb"),
            *SYNC_COLUMNS,
        ],
    )


def with_sync_columns(table: TableDefinition) -> TableDefinition:
    """Return ``table`` with the raw payload and sync time columns appended."""
    missing = [column for column in SYNC_COLUMNS if table.get_column(column.name) is None]
    if not missing:
        return table
    return table.model_copy(update={"columns": [*table.columns, *missing]})


def build_entities(
    tables: Mapping[str, TableDefinition],
    resources: Sequence[ResourceSpec] = DEFAULT_RESOURCES,
) -> List[EntityConfig]:
    """Combine resource specs with tables keyed by provider schema name.

    Resources without a table fall back to ``minimal_table``. Every table
    gains the columns of ``with_sync_columns``.
    """
    entities = []
    for spec in resources:
        table = tables.get(spec.schema_name)
        if table is None:
            table = minimal_table(spec.table_name)
        elif table.name != spec.table_name:
            table = table.model_copy(update={"name": spec.table_name})
        table = with_sync_columns(table)
        entities.append(
            EntityConfig(
                name=spec.name,
                object_name=spec.object_name,
                table=table,
                id_prefixes=spec.id_prefixes,
                dependencies=spec.dependencies,
            )
        )
    return entities


def build_entities_from_schema(
    parser: ObjectSchemaParser,
    type_mapper: Optional[TypeMapper] = None,
    resources: Sequence[ResourceSpec] = DEFAULT_RESOURCES,
) -> List[EntityConfig]:
    """Derive entity tables from a loaded provider schema document."""
    mapper = type_mapper or TypeMapper()
    tables: Dict[str, TableDefinition] = {}
    for spec in resources:
        object_schema = parser.get_object_schema(spec.schema_name)
        if object_schema is None:
            logger.warning(
                "Schema %s missing from document; using minimal columns", spec.schema_name
            )
            continue
        tables[spec.schema_name] = mapper.map_object_schema(object_schema)
    return build_entities(tables, resources)
