import pytest

from sync_schema.openapi import ObjectSchemaParser, PropertyDefinition
from sync_schema.type_mapper import TypeMapper, pluralize


@pytest.mark.parametrize(
    "name, expected",
    [
        ("customer", "customers"),
        ("payment_intent", "payment_intents"),
        ("person", "persons"),
        ("address", "addresses"),
        ("discount", "discounts"),
        ("subscription_item", "subscription_items"),
        ("balance_transaction", "balance_transactions"),
        ("early_fraud_warning", "early_fraud_warnings"),
        ("country_spec", "country_specs"),
        ("mandate", "mandates"),
        ("batch", "batches"),
        ("identity", "identities"),
    ],
)
def test_pluralize(name, expected):
    assert pluralize(name) == expected


def test_map_object_schema_orders_and_types_columns(openapi_document):
    parser = ObjectSchemaParser()
    parser.load_document(openapi_document)
    table = TypeMapper().map_object_schema(parser.get_object_schema("customer"))

    assert table.name == "customers"
    assert table.description == "A customer of the account."
    assert table.column_names == [
        "id",
        "object",
        "address",
        "balance",
        "created",
        "default_source",
        "delinquent",
        "email",
        "metadata",
        "preferred_locales",
    ]
    types = {column.name: column.type for column in table.columns}
    assert types == {
        "id": "text",
        "object": "text",
        "address": "jsonb",
        "balance": "bigint",
        "created": "bigint",
        "default_source": "jsonb",
        "delinquent": "boolean",
        "email": "text",
        "metadata": "jsonb",
        "preferred_locales": "text[]",
    }
    assert table.primary_key == ["id"]
    assert table.get_column("id").nullable is False
    assert table.get_column("email").nullable is True
    assert table.dependencies == ["addresses", "payment_sources"]


def test_self_references_are_not_dependencies(openapi_document):
    parser = ObjectSchemaParser()
    parser.load_document(openapi_document)
    table = TypeMapper().map_object_schema(parser.get_object_schema("invoice"))
    assert table.dependencies == ["customers", "line_items"]
    types = {column.name: column.type for column in table.columns}
    assert types["tax"] == "numeric"
    assert types["lines"] == "jsonb"


def test_map_property_special_names():
    mapper = TypeMapper()
    assert mapper.map_property(PropertyDefinition(name="updated", type="integer")).type == "bigint"
    canceled_at = PropertyDefinition(name="canceled_at", type="integer", format="unix-time")
    assert mapper.map_property(canceled_at).type == "bigint"
    assert mapper.map_property(PropertyDefinition(name="metadata", type="string")).type == "jsonb"
    assert (
        mapper.map_property(PropertyDefinition(name="ids", type="array", item_type="integer")).type
        == "jsonb"
    )
    pk = mapper.map_property(PropertyDefinition(name="id", type="integer", nullable=True))
    assert pk.type == "text"
    assert pk.primary_key and not pk.nullable


def test_indexing_options():
    mapper = TypeMapper()
    assert [option.type for option in mapper.get_indexing_options("jsonb")] == ["gin", "btree"]
    assert [option.type for option in mapper.get_indexing_options("text[]")] == ["gin"]
    assert mapper.get_indexing_options("timestamp") == []
    column = mapper.map_property(PropertyDefinition(name="email", type="string"))
    assert column.indexing_options[0].type == "btree"
