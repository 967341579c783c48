"""Read operations for the transactional tables.

Every read joins the society and item masters so rows carry codes and names
next to the foreign-key ids.
"""

from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import translate_db_errors
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.features.transactions.entities import MEMBER_LOAN_DEPOSIT, TRANSACTION_ENTITIES
from app.features.upsert.entity import EntitySchema
from app.features.upsert.filters import (
    FilterSpec,
    build_filter,
    describe_criteria,
    fetch_with_count,
)

logger = get_logger(__name__)

TYPE_FILTER = FilterSpec(
    exact_fields=("acc_type", "society_id", "item_id"), range_field="entry_date"
)

ENTRY_FILTER = FilterSpec(exact_fields=("society_id", "item_id"), range_field="entry_date")

LEDGER_FILTER = FilterSpec(
    exact_fields=("society_id", "item_id"),
    range_field="entry_date",
    lower_key="from_period",
    upper_key="to_period",
    sentinel_fields=("society_id", "item_id"),
)


def normalize_acc_type(entity: EntitySchema, acc_type: str) -> str:
    """Upper-case ``acc_type`` and check it against the entity's vocabulary.

    Raises:
        ValidationError: If the type is not one the entity accepts.
    """
    allowed = entity.allowed_values.get("acc_type", ())
    normalized = acc_type.strip().upper()
    if normalized not in allowed:
        raise ValidationError(
            f"Invalid type '{acc_type}'. Must be one of: {', '.join(allowed)}.",
            details={"field": "type"},
        )
    return normalized


def resolve_entity(slug: str) -> EntitySchema:
    """Map a URL slug to its transactional entity.

    Raises:
        ValidationError: If the slug names no transactional table.
    """
    entity = TRANSACTION_ENTITIES.get(slug.strip().lower())
    if entity is None:
        valid = ", ".join(TRANSACTION_ENTITIES)
        raise ValidationError(
            f"Invalid record type '{slug}'. Must be one of: {valid}.",
            details={"field": "entity"},
        )
    return entity


class TransactionService:
    """Filtered, joined reads over the transactional tables."""

    async def _query(
        self,
        db: AsyncSession,
        entity: EntitySchema,
        spec: FilterSpec,
        criteria: dict[str, Any],
        newest_first: bool = True,
    ) -> tuple[int, list[dict[str, Any]]]:
        table = entity.table
        clause = build_filter(table, spec, criteria)
        if newest_first:
            order = (table.c.entry_date.desc(), table.c.id.desc())
        else:
            order = (table.c.entry_date.asc(), table.c.id.asc())
        stmt = entity.select().order_by(*order)

        async with translate_db_errors("query", table.name):
            total, rows = await fetch_with_count(db, stmt, clause)

        logger.info(
            "transactions.query_completed",
            entity=entity.name,
            filters=describe_criteria(clause),
            total=total,
        )
        return total, rows

    async def list_by_type(
        self,
        db: AsyncSession,
        entity: EntitySchema,
        acc_type: str,
        startdate: date | None = None,
        enddate: date | None = None,
        society_id: int | None = None,
        item_id: int | None = None,
    ) -> tuple[str, int, list[dict[str, Any]]]:
        """Rows of one account type, optionally within an entry-date range.

        Args:
            db: Database session.
            entity: Entity with an ``acc_type`` vocabulary.
            acc_type: Requested type, case-insensitive.
            startdate: Inclusive lower bound.
            enddate: Inclusive upper bound.
            society_id: Restrict to one society.
            item_id: Restrict to one item.

        Returns:
            (normalized type, total, rows).
        """
        normalized = normalize_acc_type(entity, acc_type)
        total, rows = await self._query(
            db,
            entity,
            TYPE_FILTER,
            {
                "acc_type": normalized,
                "society_id": society_id,
                "item_id": item_id,
                "startdate": startdate,
                "enddate": enddate,
            },
        )
        return normalized, total, rows

    async def list_entries(
        self,
        db: AsyncSession,
        entity: EntitySchema,
        society_id: int | None = None,
        item_id: int | None = None,
        startdate: date | None = None,
        enddate: date | None = None,
    ) -> tuple[int, list[dict[str, Any]]]:
        """All rows of an entity, narrowed by whichever filters are supplied."""
        return await self._query(
            db,
            entity,
            ENTRY_FILTER,
            {
                "society_id": society_id,
                "item_id": item_id,
                "startdate": startdate,
                "enddate": enddate,
            },
        )

    async def ledger_report(
        self,
        db: AsyncSession,
        society_id: str,
        item_id: str,
        from_period: date | None = None,
        to_period: date | None = None,
    ) -> tuple[int, list[dict[str, Any]]]:
        """Member loan/deposit history for a society and item, oldest first.

        Either id may be "all" (any case) to drop that constraint.
        """
        return await self._query(
            db,
            MEMBER_LOAN_DEPOSIT,
            LEDGER_FILTER,
            {
                "society_id": society_id,
                "item_id": item_id,
                "from_period": from_period,
                "to_period": to_period,
            },
            newest_first=False,
        )

    async def last_record(self, db: AsyncSession, entity: EntitySchema) -> dict[str, Any]:
        """Most recently inserted row (highest id) of an entity.

        Raises:
            NotFoundError: If the table is empty.
        """
        table = entity.table
        stmt = entity.select().order_by(table.c.id.desc()).limit(1)
        async with translate_db_errors("query", table.name):
            result = await db.execute(stmt)
        row = result.mappings().first()
        if row is None:
            raise NotFoundError(
                f"No {entity.label.lower()} records found.",
                details={"entity": entity.name},
            )
        return dict(row)
