import pytest

from sync_engine.registry import (
    DEFAULT_RESOURCES,
    PREFIX_RESOURCE_MAP,
    RAW_DATA_COLUMN,
    SYNCED_AT_COLUMN,
    build_entities,
    build_entities_from_schema,
    build_prefix_map,
    minimal_table,
    resolve_entity_from_id,
    with_sync_columns,
)
from sync_engine.resolver import compute_resource_order
from sync_schema.models import ColumnDefinition, TableDefinition
from sync_schema.openapi import ObjectSchemaParser


@pytest.mark.parametrize(
    "external_id, expected",
    [
        ("cus_123", "customer"),
        ("sub_123", "subscription"),
        ("sub_sched_123", "subscription_schedule"),
        ("ch_123", "charge"),
        ("py_123", "charge"),
        ("issfr_123", "early_fraud_warning"),
        ("cs_test_123", "checkout_session"),
        ("unknown_123", None),
    ],
)
def test_resolve_entity_from_id(external_id, expected):
    assert resolve_entity_from_id(external_id) == expected


def test_plan_has_no_prefix():
    assert "plan" not in PREFIX_RESOURCE_MAP.values()


def test_default_resources_form_an_acyclic_graph():
    graph = {spec.name: spec.dependencies for spec in DEFAULT_RESOURCES}
    order = compute_resource_order(graph, strict=True)
    assert len(order) == 17
    assert order["customer"] < order["invoice"] < order["charge"] < order["refund"]


def test_build_entities_falls_back_to_minimal_table():
    customer_table = TableDefinition(
        name="customers",
        columns=[
            ColumnDefinition(name="id", type="text", nullable=False, primary_key=True),
            ColumnDefinition(name="email", type="text"),
        ],
    )
    entities = {entity.name: entity for entity in build_entities({"customer": customer_table})}

    assert entities["customer"].table.column_names == [
        "id",
        "email",
        "_raw_data",
        "_last_synced_at",
    ]
    assert entities["product"].table == minimal_table("products")
    assert entities["early_fraud_warning"].object_name == "radar/early_fraud_warnings"
    assert entities["invoice"].dependencies == ("customer", "subscription")


def test_build_entities_renames_table_for_nested_schema_names():
    session_table = minimal_table("checkout.sessions")
    entities = {
        entity.name: entity
        for entity in build_entities({"checkout.session": session_table})
    }
    assert entities["checkout_session"].table.name == "checkout_sessions"


def test_build_entities_from_schema(openapi_document):
    parser = ObjectSchemaParser()
    parser.load_document(openapi_document)
    entities = {entity.name: entity for entity in build_entities_from_schema(parser)}

    customer = entities["customer"]
    assert customer.table.name == "customers"
    assert "preferred_locales" in customer.table.column_names
    assert customer.dependencies == ()
    assert entities["invoice"].table.get_column("amount_due").type == "bigint"
    assert entities["price"].table.column_names == minimal_table("prices").column_names


def test_build_prefix_map():
    entities = build_entities({})
    assert build_prefix_map(entities) == PREFIX_RESOURCE_MAP


def test_every_entity_table_carries_sync_columns(openapi_document):
    parser = ObjectSchemaParser()
    parser.load_document(openapi_document)
    for entity in build_entities_from_schema(parser):
        assert entity.table.get_column(RAW_DATA_COLUMN).type == "jsonb"
        assert entity.table.get_column(SYNCED_AT_COLUMN).type == "timestamp"


def test_with_sync_columns_is_idempotent():
    table = minimal_table("customers")
    assert with_sync_columns(table) is table
    assert table.column_names[-2:] == [RAW_DATA_COLUMN, SYNCED_AT_COLUMN]
