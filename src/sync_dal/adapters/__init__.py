"""Database adapters.

Concrete adapters import their driver at module import time, so they are
loaded through ``sync_dal.factory`` rather than from here.
"""

from sync_dal.adapters.base import AdapterConfig, BaseAdapter, QueryResult, get_last_insert_id

__all__ = ["AdapterConfig", "BaseAdapter", "QueryResult", "get_last_insert_id"]
