"""Installation status recorded in the sync schema's comment.

The comment is JSON (``{"status": ..., "version": ..., "errorMessage": ...}``).
Older installs wrote plain text such as ``stripe-sync v1.2.3 installed``,
which is still understood.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sync_dal.adapters.base import BaseAdapter
from sync_dal.types import DatabaseType

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "stripe-sync"

SCHEMA_STATUSES = frozenset(
    {"installing", "installed", "install_error", "uninstalling", "uninstalled", "uninstall_error"}
)

_LEGACY_VERSION = re.compile(r"stripe-sync\s+v?([0-9]+\.[0-9]+\.[0-9]+)")
_LEGACY_UNINSTALL_ERROR = re.compile(r"uninstallation:error\s*-\s*(.+)$")
_LEGACY_INSTALL_ERROR = re.compile(r"installation:error\s*-\s*(.+)$")


@dataclass(frozen=True)
class SchemaComment:
    status: str
    version: Optional[str] = None
    error_message: Optional[str] = None


def parse_schema_comment(comment: Optional[str]) -> SchemaComment:
    """Parse a schema comment, trying JSON before the legacy text format."""
    if not comment:
        return SchemaComment(status="uninstalled")

    try:
        parsed = json.loads(comment)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict) and parsed.get("status") in SCHEMA_STATUSES:
        return SchemaComment(
            status=parsed["status"],
            version=parsed.get("version"),
            error_message=parsed.get("errorMessage"),
        )

    if COMMENT_PREFIX not in comment:
        return SchemaComment(status="uninstalled")

    version_match = _LEGACY_VERSION.search(comment)
    version = version_match.group(1) if version_match else None

    # Order matters: "uninstallation:error" also contains "installation:error".
    if "uninstallation:error" in comment:
        match = _LEGACY_UNINSTALL_ERROR.search(comment)
        return SchemaComment("uninstall_error", version, match.group(1) if match else None)
    if "uninstallation:started" in comment:
        return SchemaComment("uninstalling", version)
    if "installation:error" in comment:
        match = _LEGACY_INSTALL_ERROR.search(comment)
        return SchemaComment("install_error", version, match.group(1) if match else None)
    if "installation:started" in comment:
        return SchemaComment("installing", version)
    if "installed" in comment:
        return SchemaComment("installed", version)
    return SchemaComment(status="uninstalled")


def installation_status(comment: Optional[str]) -> Dict[str, Any]:
    """Summarize a schema comment as ``{status, step}`` for status displays.

    ``status`` is one of not_started, in_progress, completed or error.
    """
    parsed = parse_schema_comment(comment)
    if parsed.status in ("installing", "uninstalling"):
        return {"status": "in_progress", "step": parsed.status}
    if parsed.status == "installed":
        step = f"installed (v{parsed.version})" if parsed.version else "installed"
        return {"status": "completed", "step": step, "version": parsed.version}
    if parsed.status == "install_error":
        return {"status": "error", "step": parsed.error_message or "Installation error"}
    if parsed.status == "uninstall_error":
        return {"status": "error", "step": parsed.error_message or "Uninstallation error"}
    return {"status": "not_started", "step": ""}


async def read_installation_status(adapter: BaseAdapter, schema: str = "stripe") -> Dict[str, Any]:
    """Read the schema comment from Postgres and summarize it."""
    if adapter.database_type != DatabaseType.POSTGRES:
        raise ValueError("Installation status is only recorded on postgres schemas")
    result = await adapter.query(
        "SELECT obj_description(oid, 'pg_namespace') AS comment "
        "FROM pg_namespace WHERE nspname = $1",
        [schema],
    )
    comment = result.rows[0]["comment"] if result.rows else None
    status = installation_status(comment)
    status["comment"] = comment
    return status
