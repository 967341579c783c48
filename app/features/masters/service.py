"""Read operations for the master tables."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import translate_db_errors
from app.core.logging import get_logger
from app.features.masters.entities import ITEM_MASTER, SOCIETY_MASTER
from app.features.upsert.filters import FilterClause, fetch_with_count

logger = get_logger(__name__)


class MasterService:
    """Full-table listings of items and societies."""

    async def list_items(self, db: AsyncSession) -> tuple[int, list[dict[str, Any]]]:
        """All items, oldest first."""
        stmt = ITEM_MASTER.select().order_by(ITEM_MASTER.table.c.id)
        async with translate_db_errors("list", ITEM_MASTER.table.name):
            total, rows = await fetch_with_count(db, stmt, FilterClause())
        logger.info("masters.items_listed", total=total)
        return total, rows

    async def list_societies(self, db: AsyncSession) -> tuple[int, list[dict[str, Any]]]:
        """All societies ordered by name."""
        table = SOCIETY_MASTER.table
        stmt = SOCIETY_MASTER.select().order_by(table.c.society_name, table.c.id)
        async with translate_db_errors("list", table.name):
            total, rows = await fetch_with_count(db, stmt, FilterClause())
        logger.info("masters.societies_listed", total=total)
        return total, rows
