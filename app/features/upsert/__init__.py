"""Generic natural-key upsert engine, batch runner and read filters."""

from app.features.upsert.entity import EntitySchema, ReferenceJoin, UpdatePolicy
from app.features.upsert.filters import FilterClause, FilterSpec, build_filter, fetch_with_count
from app.features.upsert.service import (
    BatchResult,
    RecordResult,
    SqlAlchemyUpsertStore,
    UpsertAction,
    UpsertOutcome,
    UpsertStoreProtocol,
    get_upsert_store,
    process_batch,
    resolve,
)

__all__ = [
    "BatchResult",
    "EntitySchema",
    "FilterClause",
    "FilterSpec",
    "RecordResult",
    "ReferenceJoin",
    "SqlAlchemyUpsertStore",
    "UpdatePolicy",
    "UpsertAction",
    "UpsertOutcome",
    "UpsertStoreProtocol",
    "build_filter",
    "fetch_with_count",
    "get_upsert_store",
    "process_batch",
    "resolve",
]
