"""Transaction discipline of BaseAdapter, independent of any driver."""

import logging

import pytest

from sync_dal.adapters.base import AdapterConfig, BaseAdapter, QueryResult
from sync_dal.errors import DatabaseConnectionError, QueryError
from sync_dal.types import DatabaseType


class RecordingAdapter(BaseAdapter):
    database_type = DatabaseType.POSTGRES

    def __init__(self, fail_rollback=False, fail_commit=False, fail_open=None):
        super().__init__(AdapterConfig(type=DatabaseType.POSTGRES, url="postgres://test"))
        self.calls = []
        self.fail_rollback = fail_rollback
        self.fail_commit = fail_commit
        self.fail_open = fail_open

    async def _open(self):
        self.calls.append("open")
        if self.fail_open is not None:
            raise self.fail_open

    async def _close(self):
        self.calls.append("close")

    async def _execute(self, sql, params):
        self.calls.append(sql)
        if sql == "FAIL":
            raise RuntimeError("syntax error at or near FAIL")
        if sql == "DROP":
            raise RuntimeError("connection refused")
        return QueryResult(rows=[], row_count=0)

    async def _begin(self):
        self.calls.append("begin")

    async def _commit(self):
        self.calls.append("commit")
        if self.fail_commit:
            raise RuntimeError("commit failed")

    async def _rollback(self):
        self.calls.append("rollback")
        if self.fail_rollback:
            raise RuntimeError("rollback failed")

    async def _release_transaction(self):
        self.calls.append("release")


@pytest.mark.asyncio
async def test_failing_rollback_does_not_mask_original_error(caplog):
    adapter = RecordingAdapter(fail_rollback=True)
    await adapter.connect()

    async def work(_tx):
        raise KeyError("original")

    with caplog.at_level(logging.ERROR):
        with pytest.raises(KeyError, match="original"):
            await adapter.with_transaction(work)

    assert adapter.calls[-2:] == ["rollback", "release"]
    assert not adapter.in_transaction
    assert any("Rollback failed" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_failed_commit_still_clears_state_and_releases():
    adapter = RecordingAdapter(fail_commit=True)
    await adapter.connect()
    await adapter.begin_transaction()
    with pytest.raises(QueryError):
        await adapter.commit()
    assert adapter.calls[-2:] == ["commit", "release"]
    assert not adapter.in_transaction


@pytest.mark.asyncio
async def test_connection_failures_are_classified():
    adapter = RecordingAdapter()
    await adapter.connect()
    with pytest.raises(QueryError) as exc_info:
        await adapter.query("FAIL")
    assert exc_info.value.category == "syntax"
    with pytest.raises(DatabaseConnectionError) as conn_info:
        await adapter.query("DROP", ["orders"])
    assert conn_info.value.sql == "DROP"
    assert conn_info.value.params == ["orders"]
    assert "connection refused" in str(conn_info.value)


@pytest.mark.asyncio
async def test_failed_connect_tears_down_and_raises_connection_error():
    adapter = RecordingAdapter(fail_open=OSError("could not connect to server"))
    with pytest.raises(DatabaseConnectionError):
        await adapter.connect()
    assert adapter.calls == ["open", "close"]
    assert not adapter.is_connected


@pytest.mark.asyncio
async def test_close_with_failing_implicit_rollback_is_logged(caplog):
    adapter = RecordingAdapter(fail_rollback=True)
    await adapter.connect()
    await adapter.begin_transaction()
    with caplog.at_level(logging.ERROR):
        await adapter.close()
    assert adapter.calls[-1] == "close"
    assert not adapter.is_connected
    assert any("Implicit rollback failed" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_query_timeout_becomes_query_error():
    import asyncio

    class SlowAdapter(RecordingAdapter):
        async def _execute(self, sql, params):
            await asyncio.sleep(5)

    adapter = SlowAdapter()
    adapter.config = AdapterConfig(
        type=DatabaseType.POSTGRES, url="postgres://test", query_timeout_seconds=0.01
    )
    await adapter.connect()
    with pytest.raises(QueryError) as exc_info:
        await adapter.query("SELECT pg_sleep(5)")
    assert exc_info.value.category == "timeout"
