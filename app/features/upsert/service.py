"""Generic upsert resolver and batch processor.

The resolver decides, per record, between INSERT, UPDATE and no-op using the
entity's natural key. The batch processor runs the resolver over a list of
records, one unit of work per record, and collects an ordered outcome list.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from fastapi import Depends
from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db, translate_db_errors
from app.core.exceptions import (
    APCMSError,
    DatabaseError,
    NotFoundPostWriteError,
    ValidationError,
)
from app.core.logging import get_logger
from app.features.upsert.entity import EntitySchema, UpdatePolicy

logger = get_logger(__name__)


class UpsertAction(str, Enum):
    """Per-record outcome reported to callers."""

    INSERT = "insert"
    UPDATE = "update"
    NOOP = "noop"
    ERROR = "error"


# =============================================================================
# Store
# =============================================================================


@runtime_checkable
class UpsertStoreProtocol(Protocol):
    """Storage operations the resolver needs."""

    async def find_id(self, entity: EntitySchema, key: Mapping[str, Any]) -> int | None:
        """Return the id of the row matching every key field, if any."""
        ...

    async def insert(self, entity: EntitySchema, values: Mapping[str, Any]) -> int | None:
        """Insert a row; return its id, or None if the key already exists."""
        ...

    async def update(self, entity: EntitySchema, row_id: int, values: Mapping[str, Any]) -> None:
        """Overwrite ``values`` on the row with ``row_id``."""
        ...

    async def fetch(self, entity: EntitySchema, row_id: int) -> dict[str, Any] | None:
        """Read one row (with reference joins) by id."""
        ...

    def unit_of_work(self) -> Any:
        """Async context manager committing on success, rolling back on error."""
        ...


class SqlAlchemyUpsertStore:
    """UpsertStoreProtocol over an AsyncSession.

    Each statement failure surfaces as DatabaseError.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _conflict_tolerant_insert(self, entity: EntitySchema, values: Mapping[str, Any]) -> Any:
        table = entity.table
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return (
                pg_insert(table)
                .values(**values)
                .on_conflict_do_nothing(index_elements=list(entity.key_fields))
                .returning(table.c.id)
            )
        if dialect == "sqlite":
            return (
                sqlite_insert(table)
                .values(**values)
                .on_conflict_do_nothing(index_elements=list(entity.key_fields))
                .returning(table.c.id)
            )
        # Other backends rely on the unique constraint raising
        return insert(table).values(**values).returning(table.c.id)

    async def find_id(self, entity: EntitySchema, key: Mapping[str, Any]) -> int | None:
        table = entity.table
        stmt = select(table.c.id).where(*(table.c[name] == value for name, value in key.items()))
        async with translate_db_errors("lookup", entity.table.name):
            result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def insert(self, entity: EntitySchema, values: Mapping[str, Any]) -> int | None:
        async with translate_db_errors("insert", entity.table.name):
            result = await self.db.execute(self._conflict_tolerant_insert(entity, values))
        return result.scalar_one_or_none()

    async def update(self, entity: EntitySchema, row_id: int, values: Mapping[str, Any]) -> None:
        if not values:
            return
        table = entity.table
        stmt = update(table).where(table.c.id == row_id).values(**values)
        async with translate_db_errors("update", entity.table.name):
            await self.db.execute(stmt)

    async def fetch(self, entity: EntitySchema, row_id: int) -> dict[str, Any] | None:
        stmt = entity.select().where(entity.table.c.id == row_id)
        async with translate_db_errors("fetch", entity.table.name):
            result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row is not None else None

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
        except Exception:
            async with translate_db_errors("rollback"):
                await self.db.rollback()
            raise
        try:
            async with translate_db_errors("commit"):
                await self.db.commit()
        except DatabaseError:
            async with translate_db_errors("rollback"):
                await self.db.rollback()
            raise


async def get_upsert_store(db: AsyncSession = Depends(get_db)) -> SqlAlchemyUpsertStore:
    """Dependency providing a store bound to the request's session."""
    return SqlAlchemyUpsertStore(db)


# =============================================================================
# Upsert Resolver
# =============================================================================


@dataclass
class UpsertOutcome:
    """Result of resolving one record."""

    action: UpsertAction
    row_id: int
    key: dict[str, Any]
    data: dict[str, Any] | None = None

    def message(self, entity: EntitySchema) -> str:
        if self.action == UpsertAction.INSERT:
            return f"{entity.label} record created successfully."
        if self.action == UpsertAction.UPDATE:
            return f"{entity.label} record updated successfully."
        return f"{entity.label} record already exists. No action taken."


async def _apply_policy(
    store: UpsertStoreProtocol,
    entity: EntitySchema,
    row_id: int,
    values: Mapping[str, Any],
) -> UpsertAction:
    if entity.policy == UpdatePolicy.NOOP:
        return UpsertAction.NOOP
    await store.update(entity, row_id, entity.update_values(values))
    return UpsertAction.UPDATE


async def resolve(
    store: UpsertStoreProtocol,
    entity: EntitySchema,
    record: Any,
) -> UpsertOutcome:
    """Insert, update or skip one record according to its natural key.

    Validation runs before any store access. The insert tolerates a
    concurrent writer claiming the same key between lookup and insert: the
    winner's row is then treated as the existing match.

    Args:
        store: Storage backend.
        entity: Definition of the target table.
        record: Incoming field mapping.

    Returns:
        UpsertOutcome with the action taken and the affected row id.

    Raises:
        ValidationError: Missing required fields or uncoercible values.
        DatabaseError: The store failed.
        NotFoundPostWriteError: The fresh read found no row after the write.
    """
    values = entity.validate(record)
    key = entity.key_of(values)

    row_id = await store.find_id(entity, key)
    if row_id is None:
        row_id = await store.insert(entity, entity.insert_values(values))
        if row_id is not None:
            action = UpsertAction.INSERT
        else:
            logger.warning("upsert.insert_conflict", entity=entity.name, key=str(key))
            row_id = await store.find_id(entity, key)
            if row_id is None:
                raise DatabaseError(
                    f"{entity.label} insert conflicted but no row matches the key",
                    details={"entity": entity.name},
                )
            action = await _apply_policy(store, entity, row_id, values)
    else:
        action = await _apply_policy(store, entity, row_id, values)

    outcome = UpsertOutcome(action=action, row_id=row_id, key=key)

    if entity.fresh_read:
        outcome.data = await store.fetch(entity, row_id)
        if outcome.data is None:
            raise NotFoundPostWriteError(
                f"{entity.label} record {row_id} not found after {action.value}",
                details={"entity": entity.name, "row_id": row_id},
            )

    logger.debug(
        "upsert.record_resolved",
        entity=entity.name,
        action=action.value,
        row_id=row_id,
    )
    return outcome


# =============================================================================
# Batch Processor
# =============================================================================


@dataclass
class RecordResult:
    """Outcome of one record within a batch."""

    index: int
    key: dict[str, Any]
    action: UpsertAction
    message: str
    row_id: int | None = None


@dataclass
class BatchResult:
    """Ordered per-record outcomes plus aggregate counts."""

    entity: EntitySchema
    results: list[RecordResult] = field(default_factory=list)

    def _count(self, action: UpsertAction) -> int:
        return sum(1 for r in self.results if r.action == action)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def inserted(self) -> int:
        return self._count(UpsertAction.INSERT)

    @property
    def updated(self) -> int:
        return self._count(UpsertAction.UPDATE)

    @property
    def skipped(self) -> int:
        return self._count(UpsertAction.NOOP)

    @property
    def failed(self) -> int:
        return self._count(UpsertAction.ERROR)

    @property
    def success(self) -> bool:
        """True iff no record failed. Inspect ``results`` for the details."""
        return self.failed == 0

    @property
    def message(self) -> str:
        return (
            f"Batch process complete. Inserted {self.inserted}, updated {self.updated}, "
            f"skipped {self.skipped}, failed {self.failed}."
        )


async def process_batch(
    store: UpsertStoreProtocol,
    entity: EntitySchema,
    records: Any,
    max_records: int | None = None,
) -> BatchResult:
    """Upsert each record independently, in order.

    Every record gets its own unit of work, so a failing record never rolls
    back another record's write. Per-record errors become result entries;
    only a malformed batch raises.

    Args:
        store: Storage backend.
        entity: Definition of the target table.
        records: Request body; must be a non-empty list.
        max_records: Upper bound on the batch size (None for unbounded).

    Returns:
        BatchResult whose ``results[i]`` corresponds to ``records[i]``.

    Raises:
        ValidationError: If ``records`` is not a non-empty list or is too long.
    """
    if not isinstance(records, list) or not records:
        raise ValidationError(
            f"Request body must be a non-empty array of {entity.label.lower()} records."
        )
    if max_records is not None and len(records) > max_records:
        raise ValidationError(
            f"Batch of {len(records)} records exceeds the limit of {max_records}.",
            details={"max_records": max_records},
        )

    logger.info("batch.started", entity=entity.name, batch_size=len(records))

    batch = BatchResult(entity=entity)
    for index, record in enumerate(records):
        key = entity.key_identifier(record)
        try:
            async with store.unit_of_work():
                outcome = await resolve(store, entity, record)
        except ValidationError as e:
            logger.warning(
                "batch.record_rejected", entity=entity.name, index=index, error=e.message
            )
            batch.results.append(
                RecordResult(
                    index=index,
                    key=key,
                    action=UpsertAction.ERROR,
                    message=f"Validation failed: {e.message}",
                )
            )
        except APCMSError as e:
            logger.error(
                "batch.record_failed",
                entity=entity.name,
                index=index,
                error=e.message,
                error_type=type(e).__name__,
            )
            batch.results.append(
                RecordResult(index=index, key=key, action=UpsertAction.ERROR, message=e.message)
            )
        except Exception as e:
            logger.error(
                "batch.record_failed",
                entity=entity.name,
                index=index,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            batch.results.append(
                RecordResult(
                    index=index,
                    key=key,
                    action=UpsertAction.ERROR,
                    message=f"Unexpected error: {str(e) or type(e).__name__}",
                )
            )
        else:
            batch.results.append(
                RecordResult(
                    index=index,
                    key=key,
                    action=outcome.action,
                    message=outcome.message(entity),
                    row_id=outcome.row_id,
                )
            )

    logger.info(
        "batch.completed",
        entity=entity.name,
        total=batch.total,
        inserted=batch.inserted,
        updated=batch.updated,
        skipped=batch.skipped,
        failed=batch.failed,
    )
    return batch
