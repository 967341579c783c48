"""API routes for the item and society masters."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.features.masters.entities import ITEM_MASTER, SOCIETY_MASTER
from app.features.masters.service import MasterService
from app.features.upsert.entity import EntitySchema
from app.features.upsert.schemas import ListResponse, UpsertResponse, upsert_response
from app.features.upsert.service import (
    UpsertAction,
    UpsertStoreProtocol,
    get_upsert_store,
    resolve,
)

logger = get_logger(__name__)

router = APIRouter(tags=["masters"])

service = MasterService()


async def _upsert_single(
    store: UpsertStoreProtocol,
    entity: EntitySchema,
    record: dict[str, Any],
    response: Response,
) -> UpsertResponse:
    async with store.unit_of_work():
        outcome = await resolve(store, entity, record)
    response.status_code = (
        status.HTTP_201_CREATED if outcome.action == UpsertAction.INSERT else status.HTTP_200_OK
    )
    logger.info(
        "masters.record_upserted",
        entity=entity.name,
        action=outcome.action.value,
        row_id=outcome.row_id,
    )
    return upsert_response(outcome, outcome.message(entity))


@router.post(
    "/item-master",
    response_model=UpsertResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update an item",
    description="""
Upsert one item keyed on `item_code`.

Returns 201 when a new item is created and 200 when an existing item's
`category` and `item_name` are overwritten. `data` is the row as stored.
""",
)
async def add_item_master(
    response: Response,
    record: dict[str, Any] = Body(
        ..., examples=[{"item_code": "FRT01", "category": "Fertilizer", "item_name": "Urea"}]
    ),
    store: UpsertStoreProtocol = Depends(get_upsert_store),
) -> UpsertResponse:
    return await _upsert_single(store, ITEM_MASTER, record, response)


@router.get(
    "/item-master",
    response_model=ListResponse,
    summary="List all items",
)
async def list_item_master(db: AsyncSession = Depends(get_db)) -> ListResponse:
    total, rows = await service.list_items(db)
    return ListResponse(message=f"Found {total} item master records.", total=total, data=rows)


@router.post(
    "/society-master",
    response_model=UpsertResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update a society",
    description="""
Upsert one cooperative society keyed on `society_code`.

New societies default to `status = "active"` unless a status is supplied.
Returns 201 on insert and 200 on update; `society_code` is never rewritten.
""",
)
async def add_society_master(
    response: Response,
    record: dict[str, Any] = Body(
        ..., examples=[{"society_name": "Alpha Coop", "society_code": "ALP01"}]
    ),
    store: UpsertStoreProtocol = Depends(get_upsert_store),
) -> UpsertResponse:
    return await _upsert_single(store, SOCIETY_MASTER, record, response)


@router.get(
    "/society-master",
    response_model=ListResponse,
    summary="List all societies, ordered by name",
)
async def list_society_master(db: AsyncSession = Depends(get_db)) -> ListResponse:
    total, rows = await service.list_societies(db)
    return ListResponse(message=f"Found {total} society master records.", total=total, data=rows)
