from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ObjectSyncError:
    """A single provider object that could not be written."""

    table: str
    object_id: Optional[str]
    message: str
    error_type: str
    sql: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "table": self.table,
            "object_id": self.object_id,
            "message": self.message,
            "error_type": self.error_type,
        }
        if self.sql is not None:
            payload["sql"] = self.sql
        return payload


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a full sync: rows written per table and per-object failures."""

    counts: Dict[str, int] = field(default_factory=dict)
    errors: Tuple[ObjectSyncError, ...] = ()
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ts": self.ts.isoformat(),
            "counts": dict(self.counts),
            "errors": [error.to_dict() for error in self.errors],
        }
