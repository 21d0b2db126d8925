import json
from datetime import datetime, timezone

import pytest

from sync_dal.dialect import get_dialect
from sync_engine.row_mapper import build_record, map_object_to_row, to_storage_value
from sync_schema.models import ColumnDefinition, TableDefinition

TABLE = TableDefinition(
    name="customers",
    columns=[
        ColumnDefinition(name="id", type="text", nullable=False, primary_key=True),
        ColumnDefinition(name="email", type="text"),
        ColumnDefinition(name="balance", type="bigint"),
        ColumnDefinition(name="delinquent", type="boolean"),
        ColumnDefinition(name="metadata", type="jsonb"),
        ColumnDefinition(name="preferred_locales", type="text[]"),
    ],
)

OBJECT = {
    "id": "cus_1",
    "object": "customer",
    "email": "ada@example.com",
    "balance": 120,
    "delinquent": True,
    "metadata": {"tier": "gold"},
    "preferred_locales": ["en", "fr"],
}


def test_row_follows_table_column_order_and_drops_extras():
    row = map_object_to_row(OBJECT, TABLE, get_dialect("postgres"))
    assert list(row) == TABLE.column_names
    assert "object" not in row


def test_postgres_keeps_native_arrays_and_booleans():
    row = map_object_to_row(OBJECT, TABLE, get_dialect("postgres"))
    assert row["preferred_locales"] == ["en", "fr"]
    assert row["delinquent"] is True
    assert json.loads(row["metadata"]) == {"tier": "gold"}


def test_sqlite_encodes_arrays_as_json_and_booleans_as_integers():
    row = map_object_to_row(OBJECT, TABLE, get_dialect("sqlite"))
    assert row["preferred_locales"] == '["en","fr"]'
    assert row["delinquent"] == 1
    assert row["balance"] == 120


def test_missing_columns_become_null():
    row = map_object_to_row({"id": "cus_2"}, TABLE, get_dialect("mysql"))
    assert row == {
        "id": "cus_2",
        "email": None,
        "balance": None,
        "delinquent": None,
        "metadata": None,
        "preferred_locales": None,
    }


@pytest.mark.parametrize("obj", [{}, {"id": None}, {"id": ""}])
def test_missing_primary_key_raises(obj):
    with pytest.raises(ValueError, match="missing primary key 'id'"):
        map_object_to_row(obj, TABLE, get_dialect("sqlite"))


@pytest.mark.parametrize(
    "value, expected",
    [
        ("plain", "plain"),
        (42, "42"),
        ({"id": "src_1"}, '{"id":"src_1"}'),
        (["a"], '["a"]'),
        (True, "true"),
    ],
)
def test_text_columns_serialize_structured_values(value, expected):
    assert to_storage_value(value, "text", get_dialect("postgres")) == expected


def test_expanded_reference_in_text_column_is_json():
    row = map_object_to_row(
        {"id": "cus_3", "email": {"address": "x@example.com"}}, TABLE, get_dialect("duckdb")
    )
    assert json.loads(row["email"]) == {"address": "x@example.com"}


SYNCED_TABLE = TableDefinition(
    name="customers",
    columns=[
        ColumnDefinition(name="id", type="text", nullable=False, primary_key=True),
        ColumnDefinition(name="metadata", type="jsonb"),
        ColumnDefinition(name="_raw_data", type="jsonb"),
        ColumnDefinition(name="_last_synced_at", type="timestamp"),
    ],
)

SYNCED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def test_build_record_keeps_canonical_values():
    record = build_record(OBJECT, SYNCED_TABLE, SYNCED_AT)
    assert record == {
        "id": "cus_1",
        "metadata": {"tier": "gold"},
        "_raw_data": OBJECT,
        "_last_synced_at": SYNCED_AT,
    }


def test_raw_data_holds_the_whole_object():
    row = map_object_to_row(OBJECT, SYNCED_TABLE, get_dialect("sqlite"), SYNCED_AT)
    assert json.loads(row["_raw_data"]) == OBJECT


def test_sync_time_defaults_to_now():
    before = datetime.now(timezone.utc)
    record = build_record({"id": "cus_1"}, SYNCED_TABLE)
    assert before <= record["_last_synced_at"] <= datetime.now(timezone.utc)


@pytest.mark.parametrize(
    "provider, expected",
    [
        ("postgres", SYNCED_AT),
        ("sqlite", "2024-05-01T12:30:00+00:00"),
        ("mysql", datetime(2024, 5, 1, 12, 30)),
        ("duckdb", datetime(2024, 5, 1, 12, 30)),
    ],
)
def test_sync_time_storage_per_dialect(provider, expected):
    row = map_object_to_row({"id": "cus_1"}, SYNCED_TABLE, get_dialect(provider), SYNCED_AT)
    assert row["_last_synced_at"] == expected
