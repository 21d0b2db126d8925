"""Dependency-ordered synchronization of provider objects.

Entities are synced one at a time in resolver order, page by page. Each page
is written inside its own transaction, so a page is either fully committed
(minus any objects recorded as failed) or not written at all.

A failing object never aborts its page. Where the dialect supports
savepoints every object is wrapped in one; otherwise the page transaction is
rolled back and replayed without the objects that failed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from sync_common.observability.context import run_id_var
from sync_dal.adapters.base import BaseAdapter
from sync_dal.errors import ConfigurationError, ErrorCode, NotFoundError, QueryError
from sync_engine.api_client import ApiClient, Page
from sync_engine.registry import (
    SYNCED_AT_COLUMN,
    EntityConfig,
    build_prefix_map,
    resolve_entity_from_id,
)
from sync_engine.resolver import compute_resource_order, ordered_names
from sync_engine.result import ObjectSyncError, SyncResult
from sync_engine.row_mapper import build_record, encode_record, map_object_to_row

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "stripe"
DEFAULT_PAGE_SIZE = 100
_SAVEPOINT = "sync_object"


@dataclass
class _PageOutcome:
    written: int
    errors: List[ObjectSyncError]


class SyncOrchestrator:
    """Drive full and single-object syncs through one adapter.

    With ``timestamp_protection`` an upsert never replaces a row whose
    ``_last_synced_at`` is newer than the incoming one. ``clock`` supplies
    that sync time.
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        api_client: ApiClient,
        entities: Sequence[EntityConfig],
        schema: str = DEFAULT_SCHEMA,
        page_size: int = DEFAULT_PAGE_SIZE,
        strict_dependencies: bool = False,
        timestamp_protection: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.adapter = adapter
        self.api_client = api_client
        self.schema = schema
        self.page_size = page_size
        self.timestamp_protection = timestamp_protection
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.entities: Dict[str, EntityConfig] = {}
        for entity in entities:
            if entity.name in self.entities:
                raise ConfigurationError(
                    f"Duplicate entity configuration: {entity.name}", entities=[entity.name]
                )
            self.entities[entity.name] = entity

        self.order = compute_resource_order(
            {name: entity.dependencies for name, entity in self.entities.items()},
            strict=strict_dependencies,
        )
        self._prefix_map = build_prefix_map(self.entities.values())
        self._upsert_sql: Dict[str, str] = {}

    @property
    def dialect(self):
        return self.adapter.dialect

    def select_entities(self, table_names: Optional[Iterable[str]] = None) -> List[EntityConfig]:
        """Return the requested entities in dependency order.

        Names may be entity names or table names. With no names, every
        configured entity is returned.
        """
        ordered = [self.entities[name] for name in ordered_names(self.order)]
        if table_names is None:
            return ordered

        requested = list(table_names)
        known = {entity.name for entity in ordered} | {entity.table.name for entity in ordered}
        unknown = [name for name in requested if name not in known]
        if unknown:
            raise ConfigurationError(
                f"Unknown tables requested: {', '.join(unknown)}", entities=unknown
            )
        wanted = set(requested)
        return [e for e in ordered if e.name in wanted or e.table.name in wanted]

    def table_ref(self, entity: EntityConfig) -> str:
        return self.dialect.qualify_table(self.schema, entity.table.name)

    # -- DDL --------------------------------------------------------------

    async def ensure_tables(self, table_names: Optional[Iterable[str]] = None) -> List[str]:
        """Create the schema and any missing tables; return the tables handled."""
        selected = self.select_entities(table_names)
        create_schema = self.dialect.create_schema(self.schema)
        if create_schema is not None:
            await self.adapter.query(create_schema)
        for entity in selected:
            await self.adapter.query(
                self.dialect.build_create_table(self.table_ref(entity), entity.table)
            )
            logger.info("Ensured table %s", self.table_ref(entity))
        return [entity.table.name for entity in selected]

    # -- full sync --------------------------------------------------------

    async def full_sync(self, table_names: Optional[Iterable[str]] = None) -> SyncResult:
        """Sync every selected entity from the API into the database."""
        selected = self.select_entities(table_names)
        token = run_id_var.set(uuid.uuid4().hex)
        counts: Dict[str, int] = {}
        errors: List[ObjectSyncError] = []
        try:
            for entity in selected:
                logger.info("Syncing %s into %s", entity.name, self.table_ref(entity))
                written, entity_errors = await self._sync_entity(entity)
                counts[entity.table.name] = written
                errors.extend(entity_errors)
                logger.info(
                    "Synced %s: %d rows, %d failed", entity.name, written, len(entity_errors)
                )
        finally:
            run_id_var.reset(token)
        return SyncResult(counts=counts, errors=tuple(errors))

    async def _sync_entity(self, entity: EntityConfig):
        cursor: Optional[str] = None
        written = 0
        errors: List[ObjectSyncError] = []
        while True:
            page, outcome = await self._sync_page(entity, cursor)
            written += outcome.written
            errors.extend(outcome.errors)
            if not page.next_cursor:
                return written, errors
            cursor = page.next_cursor

    async def _sync_page(self, entity: EntityConfig, cursor: Optional[str]):
        await self.adapter.begin_transaction()
        try:
            page = await self.api_client.list_page(entity.object_name, cursor, self.page_size)
            if self.dialect.supports_savepoints:
                outcome = await self._write_with_savepoints(entity, page)
            else:
                outcome = await self._write_with_replay(entity, page)
            await self.adapter.commit()
        except BaseException:
            if self.adapter.in_transaction:
                await self.adapter.rollback_after_failure()
            raise
        return page, outcome

    async def _write_with_savepoints(self, entity: EntityConfig, page: Page) -> _PageOutcome:
        written = 0
        errors: List[ObjectSyncError] = []
        for obj in page.items:
            row = self._map_or_record(entity, obj, errors)
            if row is None:
                continue
            await self.adapter.query(self.dialect.savepoint(_SAVEPOINT))
            try:
                await self._upsert_row(entity, row)
            except QueryError as exc:
                await self.adapter.query(self.dialect.rollback_to_savepoint(_SAVEPOINT))
                await self.adapter.query(self.dialect.release_savepoint(_SAVEPOINT))
                errors.append(self._query_failure(entity, obj, exc))
                continue
            await self.adapter.query(self.dialect.release_savepoint(_SAVEPOINT))
            written += 1
        return _PageOutcome(written=written, errors=errors)

    async def _write_with_replay(self, entity: EntityConfig, page: Page) -> _PageOutcome:
        mapping_errors: List[ObjectSyncError] = []
        rows = []
        for index, obj in enumerate(page.items):
            row = self._map_or_record(entity, obj, mapping_errors)
            if row is not None:
                rows.append((index, obj, row))

        failed: Set[int] = set()
        query_errors: List[ObjectSyncError] = []
        while True:
            failure = None
            written = 0
            for index, obj, row in rows:
                if index in failed:
                    continue
                try:
                    await self._upsert_row(entity, row)
                except QueryError as exc:
                    failure = (index, obj, exc)
                    break
                written += 1
            if failure is None:
                return _PageOutcome(written=written, errors=mapping_errors + query_errors)

            index, obj, exc = failure
            failed.add(index)
            query_errors.append(self._query_failure(entity, obj, exc))
            logger.debug("Replaying %s page without %d failed objects", entity.name, len(failed))
            await self.adapter.rollback()
            await self.adapter.begin_transaction()

    # -- single entity ----------------------------------------------------

    async def sync_single_entity(self, external_id: str) -> Dict[str, Any]:
        """Fetch one object by provider id and upsert it.

        Returns the canonical column values written, before storage encoding.
        """
        entity_name = resolve_entity_from_id(external_id, self._prefix_map)
        if entity_name is None:
            raise NotFoundError(
                f"No configured entity matches id '{external_id}'", external_id=external_id
            )
        entity = self.entities[entity_name]

        obj = await self.api_client.retrieve(entity.object_name, external_id)
        if obj is None:
            raise NotFoundError(
                f"{entity.name} '{external_id}' not found", external_id=external_id
            )

        record = build_record(obj, entity.table, self.clock())
        row = encode_record(record, entity.table, self.dialect)
        async with self.adapter.transaction():
            await self._upsert_row(entity, row)
        logger.info("Synced %s %s", entity.name, external_id)
        return record

    # -- helpers ----------------------------------------------------------

    async def _upsert_row(self, entity: EntityConfig, row: Dict[str, Any]) -> None:
        sql = self._upsert_sql.get(entity.name)
        if sql is None:
            table = entity.table
            primary_key = table.primary_key
            sql = self.dialect.build_upsert(
                self.table_ref(entity),
                table.column_names,
                primary_key,
                [name for name in table.column_names if name not in primary_key],
                guard_column=self._guard_column(entity),
            )
            self._upsert_sql[entity.name] = sql
        await self.adapter.query(sql, list(row.values()))

    def _guard_column(self, entity: EntityConfig) -> Optional[str]:
        if self.timestamp_protection and entity.table.get_column(SYNCED_AT_COLUMN):
            return SYNCED_AT_COLUMN
        return None

    def _map_or_record(
        self, entity: EntityConfig, obj: Dict[str, Any], errors: List[ObjectSyncError]
    ) -> Optional[Dict[str, Any]]:
        try:
            return map_object_to_row(obj, entity.table, self.dialect, self.clock())
        except (ValueError, TypeError) as exc:
            logger.warning("Skipping %s object %s: %s", entity.name, _object_id(obj), exc)
            errors.append(
                ObjectSyncError(
                    table=entity.table.name,
                    object_id=_object_id(obj),
                    message=str(exc),
                    error_type=ErrorCode.MAPPING_ERROR.value,
                )
            )
            return None

    @staticmethod
    def _query_failure(entity: EntityConfig, obj: Dict[str, Any], exc: QueryError) -> ObjectSyncError:
        logger.warning(
            "Failed to upsert %s object %s: %s", entity.name, _object_id(obj), exc.args[0]
        )
        return ObjectSyncError(
            table=entity.table.name,
            object_id=_object_id(obj),
            message=exc.args[0],
            error_type=exc.code.value,
            sql=exc.sql,
        )


def _object_id(obj: Any) -> Optional[str]:
    if isinstance(obj, dict) and obj.get("id") is not None:
        return str(obj["id"])
    return None
