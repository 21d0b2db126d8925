from contextvars import ContextVar
from typing import Optional

# Identifier of the sync run currently executing on this task.
run_id_var: ContextVar[Optional[str]] = ContextVar("sync_run_id", default=None)
