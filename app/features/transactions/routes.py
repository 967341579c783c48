"""API routes for the transactional tables: batch upserts and joined reads."""

from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.features.transactions.entities import (
    GODOWN_UTILIZATION,
    MARKETING,
    MEMBER_LOAN_DEPOSIT,
    SALES_PURCHASE,
)
from app.features.transactions.service import TransactionService, resolve_entity
from app.features.upsert.entity import EntitySchema
from app.features.upsert.filters import is_all
from app.features.upsert.schemas import (
    BatchResponse,
    ListResponse,
    RecordResponse,
    batch_response,
)
from app.features.upsert.service import UpsertStoreProtocol, get_upsert_store, process_batch

router = APIRouter(tags=["transactions"])

service = TransactionService()

BATCH_DESCRIPTION = """
Batch upsert keyed on `(entry_date, society_id, acc_type, acc_sub_type, item_id)`.

The body is a non-empty JSON array. Records are processed in order, each in
its own transaction: a failing record is reported in `results` and never
undoes the others. The response is 200 whenever the array itself is valid;
`success` is false if any record failed.
"""


async def _run_batch(
    store: UpsertStoreProtocol,
    entity: EntitySchema,
    records: Any,
    settings: Settings,
) -> BatchResponse:
    batch = await process_batch(store, entity, records, max_records=settings.batch_max_records)
    return batch_response(batch)


def _date_range_message(startdate: date | None, enddate: date | None) -> str:
    parts = []
    if startdate:
        parts.append(f" from {startdate.isoformat()}")
    if enddate:
        parts.append(f" to {enddate.isoformat()}")
    return "".join(parts)


def _scope_message(value: str, noun: str, plural: str) -> str:
    return f"all {plural}" if is_all(value) else f"{noun} {value.strip()}"


# =============================================================================
# Member loan / deposit
# =============================================================================


@router.post(
    "/member-loan-deposit",
    response_model=BatchResponse,
    summary="Batch upsert member, loan and deposit entries",
    description=BATCH_DESCRIPTION,
)
async def add_member_loan_deposit(
    records: Any = Body(...),
    store: UpsertStoreProtocol = Depends(get_upsert_store),
    settings: Settings = Depends(get_settings),
) -> BatchResponse:
    return await _run_batch(store, MEMBER_LOAN_DEPOSIT, records, settings)


@router.get(
    "/member-loan-deposit/ledger/{society_id}/{item_id}",
    response_model=ListResponse,
    summary="Ledger report for a society and item",
    description="""
Member loan/deposit rows for one society and item, oldest first.

Pass `all` (any case) for `society_id` or `item_id` to include every
society or item. `from_period` and `to_period` are inclusive YYYY-MM-DD dates.
""",
)
async def get_member_ledger(
    society_id: str,
    item_id: str,
    from_period: date | None = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    to_period: date | None = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
) -> ListResponse:
    total, rows = await service.ledger_report(db, society_id, item_id, from_period, to_period)
    society_msg = _scope_message(society_id, "society", "societies")
    item_msg = _scope_message(item_id, "item", "items")
    return ListResponse(
        message=f"Found {total} member loan/deposit records for {society_msg} and {item_msg}"
        f"{_date_range_message(from_period, to_period)}.",
        total=total,
        data=rows,
    )


@router.get(
    "/member-loan-deposit/{acc_type}",
    response_model=ListResponse,
    summary="Member, loan or deposit entries by type",
)
async def get_member_loan_deposit(
    acc_type: str,
    startdate: date | None = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    enddate: date | None = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    society_id: int | None = Query(None, description="Restrict to one society"),
    item_id: int | None = Query(None, description="Restrict to one item"),
    db: AsyncSession = Depends(get_db),
) -> ListResponse:
    normalized, total, rows = await service.list_by_type(
        db, MEMBER_LOAN_DEPOSIT, acc_type, startdate, enddate, society_id, item_id
    )
    return ListResponse(
        message=f"Found {total} {normalized} records{_date_range_message(startdate, enddate)}.",
        total=total,
        data=rows,
    )


# =============================================================================
# Sales / purchase
# =============================================================================


@router.post(
    "/sales-purchase",
    response_model=BatchResponse,
    summary="Batch upsert sales and purchase entries",
    description=BATCH_DESCRIPTION,
)
async def add_sales_purchase(
    records: Any = Body(...),
    store: UpsertStoreProtocol = Depends(get_upsert_store),
    settings: Settings = Depends(get_settings),
) -> BatchResponse:
    return await _run_batch(store, SALES_PURCHASE, records, settings)


@router.get(
    "/sales-purchase/{acc_type}",
    response_model=ListResponse,
    summary="Sales or purchase entries by type",
)
async def get_sales_purchase(
    acc_type: str,
    startdate: date | None = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    enddate: date | None = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    society_id: int | None = Query(None, description="Restrict to one society"),
    item_id: int | None = Query(None, description="Restrict to one item"),
    db: AsyncSession = Depends(get_db),
) -> ListResponse:
    normalized, total, rows = await service.list_by_type(
        db, SALES_PURCHASE, acc_type, startdate, enddate, society_id, item_id
    )
    return ListResponse(
        message=f"Found {total} {normalized} records{_date_range_message(startdate, enddate)}.",
        total=total,
        data=rows,
    )


# =============================================================================
# Marketing and godown utilization
# =============================================================================


@router.post(
    "/marketing",
    response_model=BatchResponse,
    summary="Batch upsert marketing entries",
    description=BATCH_DESCRIPTION,
)
async def add_marketing(
    records: Any = Body(...),
    store: UpsertStoreProtocol = Depends(get_upsert_store),
    settings: Settings = Depends(get_settings),
) -> BatchResponse:
    return await _run_batch(store, MARKETING, records, settings)


@router.get("/marketing", response_model=ListResponse, summary="Marketing entries")
async def get_marketing(
    society_id: int | None = Query(None, description="Restrict to one society"),
    item_id: int | None = Query(None, description="Restrict to one item"),
    startdate: date | None = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    enddate: date | None = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
) -> ListResponse:
    total, rows = await service.list_entries(db, MARKETING, society_id, item_id, startdate, enddate)
    return ListResponse(message=f"Found {total} marketing records.", total=total, data=rows)


@router.post(
    "/godown-utilization",
    response_model=BatchResponse,
    summary="Batch record godown utilization snapshots",
    description=BATCH_DESCRIPTION
    + "\nExisting snapshots are never overwritten; resubmitted keys are reported as `noop`.\n",
)
async def add_godown_utilization(
    records: Any = Body(...),
    store: UpsertStoreProtocol = Depends(get_upsert_store),
    settings: Settings = Depends(get_settings),
) -> BatchResponse:
    return await _run_batch(store, GODOWN_UTILIZATION, records, settings)


@router.get("/godown-utilization", response_model=ListResponse, summary="Godown utilization")
async def get_godown_utilization(
    society_id: int | None = Query(None, description="Restrict to one society"),
    item_id: int | None = Query(None, description="Restrict to one item"),
    startdate: date | None = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    enddate: date | None = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
) -> ListResponse:
    total, rows = await service.list_entries(
        db, GODOWN_UTILIZATION, society_id, item_id, startdate, enddate
    )
    return ListResponse(
        message=f"Found {total} godown utilization records.", total=total, data=rows
    )


# =============================================================================
# Any transactional table
# =============================================================================


@router.get(
    "/last-record/{entity}",
    response_model=RecordResponse,
    summary="Most recent row of a transactional table",
    description="""
Return the row with the highest id. `entity` is one of `member-loan-deposit`,
`sales-purchase`, `marketing` or `godown-utilization`. Responds 404 when the
table is empty.
""",
)
async def get_last_record(entity: str, db: AsyncSession = Depends(get_db)) -> RecordResponse:
    target = resolve_entity(entity)
    row = await service.last_record(db, target)
    return RecordResponse(
        message=f"Retrieved the last {target.label.lower()} record.",
        data=row,
    )
