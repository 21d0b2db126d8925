import hashlib
import os
from typing import Any, Awaitable, Optional

from sync_common.config.env import get_env_bool
from sync_common.observability.context import run_id_var


def trace_enabled() -> bool:
    """Return True when query tracing is enabled or an OTLP exporter is configured."""
    raw = os.getenv("SYNC_TRACE_QUERIES")
    if raw is not None:
        try:
            return get_env_bool("SYNC_TRACE_QUERIES", False) is True
        except ValueError:
            return False
    if get_env_bool("OTEL_DISABLE_EXPORTER", False):
        return False
    return bool((os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip())


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def trace_query_operation(
    name: str,
    provider: str,
    sql: Optional[str],
    operation: Awaitable[Any],
) -> Any:
    """Trace an adapter operation with OTEL when enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("sync_dal")
    with tracer.start_as_current_span(name) as span:
        run_id = run_id_var.get()
        if run_id:
            span.set_attribute("sync.run_id", run_id)
        span.set_attribute("db.provider", provider)
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise
