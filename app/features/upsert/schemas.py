"""Response envelopes shared by every APCMS endpoint."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from app.features.upsert.service import BatchResult, UpsertOutcome

ActionName = Literal["insert", "update", "noop", "error"]


class UpsertResponse(BaseModel):
    """Envelope for single-record writes."""

    success: bool = Field(True, description="Always true; failures use the error envelope")
    action: ActionName = Field(..., description="What the upsert did with the record")
    id: int = Field(..., description="Identifier of the inserted or matched row")
    message: str
    data: dict[str, Any] | None = Field(
        None,
        description="Row as stored after the write, with reference names resolved",
    )


class BatchSummary(BaseModel):
    """Aggregate counts for a batch."""

    total: int = Field(..., ge=0)
    inserted: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0, description="Existing keys left untouched (no-op policy)")
    failed: int = Field(..., ge=0)


class RecordResultSchema(BaseModel):
    """Outcome of one record, at the same position as in the request."""

    index: int = Field(..., ge=0, description="0-based position in the request array")
    key: dict[str, Any] = Field(..., description="Natural-key values as submitted")
    action: ActionName
    id: int | None = Field(None, description="Row id; absent on error")
    message: str


class BatchResponse(BaseModel):
    """Envelope for batch writes.

    ``success`` is true only when no record failed; it says nothing about
    whether each record was inserted or updated as the caller expected.
    """

    success: bool
    summary: BatchSummary
    results: list[RecordResultSchema]
    message: str


class ListResponse(BaseModel):
    """Envelope for collection reads (empty data, never 404)."""

    success: bool = True
    message: str
    total: int = Field(..., ge=0)
    data: list[dict[str, Any]]


class RecordResponse(BaseModel):
    """Envelope for singleton reads."""

    success: bool = True
    message: str
    data: dict[str, Any]


def upsert_response(outcome: UpsertOutcome, message: str) -> UpsertResponse:
    return UpsertResponse(
        action=outcome.action.value,
        id=outcome.row_id,
        message=message,
        data=outcome.data,
    )


def batch_response(batch: BatchResult) -> BatchResponse:
    return BatchResponse(
        success=batch.success,
        summary=BatchSummary(
            total=batch.total,
            inserted=batch.inserted,
            updated=batch.updated,
            skipped=batch.skipped,
            failed=batch.failed,
        ),
        results=[
            RecordResultSchema(
                index=r.index,
                key=r.key,
                action=r.action.value,
                id=r.row_id,
                message=r.message,
            )
            for r in batch.results
        ],
        message=batch.message,
    )
