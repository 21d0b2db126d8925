import hashlib
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from sync_common.observability.context import run_id_var
from sync_dal.tracing import trace_enabled, trace_query_operation


def test_trace_disabled_by_default():
    assert trace_enabled() is False


def test_trace_enabled_when_otel_exporter_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    assert trace_enabled() is True

    monkeypatch.setenv("OTEL_DISABLE_EXPORTER", "true")
    assert trace_enabled() is False


def test_explicit_override_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("SYNC_TRACE_QUERIES", "false")
    assert trace_enabled() is False

    monkeypatch.setenv("SYNC_TRACE_QUERIES", "not-a-bool")
    assert trace_enabled() is False


@pytest.mark.asyncio
async def test_query_span_hashes_sql_and_tags_run(monkeypatch: pytest.MonkeyPatch) -> None:
    """Spans carry a SQL hash, never the statement itself."""
    monkeypatch.setenv("SYNC_TRACE_QUERIES", "true")
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    async def _operation() -> str:
        return "ok"

    token = run_id_var.set("run-123")
    try:
        with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
            mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
            result = await trace_query_operation(
                "sync_dal.query", provider="sqlite", sql="select 1", operation=_operation()
            )
    finally:
        run_id_var.reset(token)

    assert result == "ok"
    (span,) = exporter.get_finished_spans()
    assert span.name == "sync_dal.query"
    assert span.attributes["db.provider"] == "sqlite"
    assert span.attributes["sync.run_id"] == "run-123"
    assert span.attributes["db.statement_hash"] == hashlib.sha256(b"select 1").hexdigest()
    assert span.attributes["db.status"] == "ok"
    assert "db.statement" not in span.attributes


@pytest.mark.asyncio
async def test_failed_operation_marks_span_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNC_TRACE_QUERIES", "true")
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    async def _operation() -> str:
        raise RuntimeError("boom")

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
        with pytest.raises(RuntimeError):
            await trace_query_operation(
                "sync_dal.query", provider="sqlite", sql=None, operation=_operation()
            )

    (span,) = exporter.get_finished_spans()
    assert span.attributes["db.status"] == "error"
    assert "db.statement_hash" not in span.attributes
