import json

import pytest

from sync_dal.adapters.base import AdapterConfig, BaseAdapter, QueryResult
from sync_dal.types import DatabaseType
from sync_engine.installation import (
    SchemaComment,
    installation_status,
    parse_schema_comment,
    read_installation_status,
)


@pytest.mark.parametrize(
    "comment, expected",
    [
        (None, SchemaComment("uninstalled")),
        ("", SchemaComment("uninstalled")),
        ("some unrelated comment", SchemaComment("uninstalled")),
        (
            json.dumps({"status": "installed", "version": "1.4.0"}),
            SchemaComment("installed", "1.4.0"),
        ),
        (
            json.dumps({"status": "install_error", "errorMessage": "migration 12 failed"}),
            SchemaComment("install_error", None, "migration 12 failed"),
        ),
        ("stripe-sync v1.2.3 installed", SchemaComment("installed", "1.2.3")),
        ("stripe-sync v1.2.3 installation:started", SchemaComment("installing", "1.2.3")),
        (
            "stripe-sync v1.2.3 installation:error - relation exists",
            SchemaComment("install_error", "1.2.3", "relation exists"),
        ),
        ("stripe-sync uninstallation:started", SchemaComment("uninstalling")),
        (
            "stripe-sync v2.0.0 uninstallation:error - in use",
            SchemaComment("uninstall_error", "2.0.0", "in use"),
        ),
    ],
)
def test_parse_schema_comment(comment, expected):
    assert parse_schema_comment(comment) == expected


def test_json_with_unknown_status_falls_back_to_text_rules():
    assert parse_schema_comment(json.dumps({"status": "weird"})).status == "uninstalled"


@pytest.mark.parametrize(
    "comment, expected",
    [
        (None, {"status": "not_started", "step": ""}),
        ("stripe-sync installation:started", {"status": "in_progress", "step": "installing"}),
        (
            "stripe-sync v1.2.3 installed",
            {"status": "completed", "step": "installed (v1.2.3)", "version": "1.2.3"},
        ),
        ("stripe-sync installation:error", {"status": "error", "step": "Installation error"}),
        (
            "stripe-sync uninstallation:error - locked",
            {"status": "error", "step": "locked"},
        ),
    ],
)
def test_installation_status(comment, expected):
    assert installation_status(comment) == expected


class CommentAdapter(BaseAdapter):
    database_type = DatabaseType.POSTGRES

    def __init__(self, comment):
        super().__init__(AdapterConfig(type=DatabaseType.POSTGRES, url="postgres://db/app"))
        self.comment = comment
        self.calls = []

    async def _open(self):
        return None

    async def _close(self):
        return None

    async def _execute(self, sql, params):
        self.calls.append((sql, params))
        return QueryResult(rows=[{"comment": self.comment}], row_count=1)

    async def _begin(self):
        return None

    async def _commit(self):
        return None

    async def _rollback(self):
        return None


@pytest.mark.asyncio
async def test_read_installation_status_queries_namespace_comment():
    comment = json.dumps({"status": "installed", "version": "3.1.0"})
    adapter = CommentAdapter(comment)
    await adapter.connect()

    status = await read_installation_status(adapter, "billing")

    assert status == {
        "status": "completed",
        "step": "installed (v3.1.0)",
        "version": "3.1.0",
        "comment": comment,
    }
    assert adapter.calls[0][1] == ["billing"]

    await adapter.close()
    assert not adapter.is_connected


@pytest.mark.asyncio
async def test_read_installation_status_is_postgres_only():
    from sync_dal.factory import create_adapter_from_url

    adapter = create_adapter_from_url("sqlite", ":memory:")
    with pytest.raises(ValueError, match="only recorded on postgres"):
        await read_installation_status(adapter)
