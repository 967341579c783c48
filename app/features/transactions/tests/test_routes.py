"""Unit tests for transaction routes."""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status

from app.core.exceptions import NotFoundError
from app.features.transactions.entities import (
    GODOWN_UTILIZATION,
    MARKETING,
    MEMBER_LOAN_DEPOSIT,
)

SERVICE = "app.features.transactions.routes.service"


class TestBatchUpserts:
    """Tests for the POST batch endpoints."""

    @pytest.mark.asyncio
    async def test_marketing_batch_with_one_invalid_record(
        self, api_client, memory_store, marketing_records
    ):
        response = await api_client.post("/apcms/marketing", json=marketing_records)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is False
        assert body["summary"] == {
            "total": 3,
            "inserted": 2,
            "updated": 0,
            "skipped": 0,
            "failed": 1,
        }
        assert [r["action"] for r in body["results"]] == ["insert", "error", "insert"]
        assert body["results"][1]["message"] == (
            "Validation failed: Missing required fields: item_id"
        )
        assert body["message"] == (
            "Batch process complete. Inserted 2, updated 0, skipped 0, failed 1."
        )
        assert len(memory_store.rows(MARKETING)) == 2

    @pytest.mark.asyncio
    async def test_resubmission_updates_instead_of_inserting(
        self, api_client, memory_store, member_loan_records
    ):
        await api_client.post("/apcms/member-loan-deposit", json=member_loan_records)
        response = await api_client.post("/apcms/member-loan-deposit", json=member_loan_records)

        body = response.json()
        assert body["success"] is True
        assert body["summary"]["inserted"] == 0
        assert body["summary"]["updated"] == 2
        assert len(memory_store.rows(MEMBER_LOAN_DEPOSIT)) == 2

    @pytest.mark.asyncio
    async def test_acc_type_is_normalized_on_write(
        self, api_client, memory_store, member_loan_records
    ):
        await api_client.post("/apcms/member-loan-deposit", json=member_loan_records)

        types = sorted(row["acc_type"] for row in memory_store.rows(MEMBER_LOAN_DEPOSIT))
        assert types == ["DEPOSIT", "LOAN"]

    @pytest.mark.asyncio
    async def test_unknown_sales_type_is_a_record_error(self, api_client):
        record = {
            "entry_date": "2024-01-15",
            "society_id": 1,
            "acc_type": "BARTER",
            "acc_sub_type": "RETAIL",
            "item_id": 5,
        }

        response = await api_client.post("/apcms/sales-purchase", json=[record])

        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["results"][0]["action"] == "error"
        assert "must be one of SALES, PURCHASE" in body["results"][0]["message"]

    @pytest.mark.asyncio
    async def test_godown_resubmission_is_skipped(self, api_client, memory_store, godown_records):
        await api_client.post("/apcms/godown-utilization", json=godown_records)
        changed = [{**godown_records[0], "bags_stored": 1}]
        response = await api_client.post("/apcms/godown-utilization", json=changed)

        body = response.json()
        assert body["summary"]["skipped"] == 1
        assert body["results"][0]["action"] == "noop"
        assert memory_store.rows(GODOWN_UTILIZATION)[0]["bags_stored"] == 400

    @pytest.mark.parametrize("payload", [[], {"records": []}, "text"])
    @pytest.mark.asyncio
    async def test_non_array_body_is_rejected(self, api_client, memory_store, payload):
        response = await api_client.post("/apcms/marketing", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == (
            "Request body must be a non-empty array of marketing records."
        )
        assert memory_store.calls == []

    @pytest.mark.asyncio
    async def test_batch_limit_comes_from_settings(
        self, api_client, test_settings, marketing_records
    ):
        test_settings.batch_max_records = 2

        response = await api_client.post("/apcms/marketing", json=marketing_records)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "exceeds the limit of 2" in response.json()["message"]


class TestTypedReads:
    """Tests for GET /member-loan-deposit/{type} and /sales-purchase/{type}."""

    @pytest.mark.asyncio
    async def test_member_loan_by_type(self, api_client, ledger_rows):
        with patch(
            f"{SERVICE}.list_by_type", AsyncMock(return_value=("LOAN", 1, ledger_rows))
        ) as list_by_type:
            response = await api_client.get(
                "/apcms/member-loan-deposit/loan",
                params={"startdate": "2024-01-01", "enddate": "2024-01-31"},
            )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 1
        assert body["data"][0]["society_name"] == "Alpha Coop"
        assert body["message"] == "Found 1 LOAN records from 2024-01-01 to 2024-01-31."
        args = list_by_type.await_args.args
        assert args[1] is MEMBER_LOAN_DEPOSIT
        assert args[2:] == ("loan", date(2024, 1, 1), date(2024, 1, 31), None, None)

    @pytest.mark.asyncio
    async def test_invalid_type_is_400(self, api_client):
        response = await api_client.get("/apcms/sales-purchase/barter")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == (
            "Invalid type 'barter'. Must be one of: SALES, PURCHASE."
        )

    @pytest.mark.asyncio
    async def test_malformed_date_is_400(self, api_client):
        response = await api_client.get(
            "/apcms/sales-purchase/sales", params={"startdate": "01-01-2024"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "query.startdate"

    @pytest.mark.asyncio
    async def test_society_and_item_filters_are_forwarded(self, api_client):
        with patch(
            f"{SERVICE}.list_by_type", AsyncMock(return_value=("PURCHASE", 0, []))
        ) as list_by_type:
            response = await api_client.get(
                "/apcms/sales-purchase/purchase",
                params={"society_id": "4", "item_id": "9", "startdate": "2024-03-01"},
            )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Found 0 PURCHASE records from 2024-03-01."
        assert list_by_type.await_args.args[2:] == ("purchase", date(2024, 3, 1), None, 4, 9)

    @pytest.mark.asyncio
    async def test_non_numeric_society_id_is_400(self, api_client):
        response = await api_client.get(
            "/apcms/member-loan-deposit/loan", params={"society_id": "alpha"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["errors"][0]["field"] == "query.society_id"

    @pytest.mark.asyncio
    async def test_no_matches_is_an_empty_list(self, api_client):
        with patch(f"{SERVICE}.list_by_type", AsyncMock(return_value=("SALES", 0, []))):
            response = await api_client.get("/apcms/sales-purchase/sales")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Found 0 SALES records."
        assert response.json()["data"] == []


class TestLedger:
    """Tests for GET /member-loan-deposit/ledger/{society_id}/{item_id}."""

    @pytest.mark.asyncio
    async def test_ledger_with_all_items(self, api_client, ledger_rows):
        with patch(
            f"{SERVICE}.ledger_report", AsyncMock(return_value=(1, ledger_rows))
        ) as ledger_report:
            response = await api_client.get(
                "/apcms/member-loan-deposit/ledger/1/ALL",
                params={"from_period": "2024-01-01"},
            )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == (
            "Found 1 member loan/deposit records for society 1 and all items from 2024-01-01."
        )
        assert ledger_report.await_args.args[1:] == ("1", "ALL", date(2024, 1, 1), None)

    @pytest.mark.asyncio
    async def test_padded_sentinel_reads_as_all(self, api_client):
        with patch(f"{SERVICE}.ledger_report", AsyncMock(return_value=(0, []))):
            response = await api_client.get("/apcms/member-loan-deposit/ledger/%20all/7")

        assert response.json()["message"] == (
            "Found 0 member loan/deposit records for all societies and item 7."
        )

    @pytest.mark.asyncio
    async def test_ledger_does_not_shadow_typed_read(self, api_client):
        with patch(f"{SERVICE}.list_by_type", AsyncMock(return_value=("MEMBER", 0, []))):
            response = await api_client.get("/apcms/member-loan-deposit/member")

        assert response.status_code == status.HTTP_200_OK


class TestEntryReads:
    """Tests for GET /marketing and /godown-utilization."""

    @pytest.mark.asyncio
    async def test_marketing_filters_are_forwarded(self, api_client):
        with patch(f"{SERVICE}.list_entries", AsyncMock(return_value=(0, []))) as list_entries:
            response = await api_client.get(
                "/apcms/marketing", params={"society_id": "3", "enddate": "2024-02-29"}
            )

        assert response.status_code == status.HTTP_200_OK
        assert list_entries.await_args.args[1:] == (
            MARKETING,
            3,
            None,
            None,
            date(2024, 2, 29),
        )

    @pytest.mark.asyncio
    async def test_godown_listing(self, api_client):
        with patch(f"{SERVICE}.list_entries", AsyncMock(return_value=(0, []))):
            response = await api_client.get("/apcms/godown-utilization")

        assert response.json()["message"] == "Found 0 godown utilization records."


class TestLastRecord:
    """Tests for GET /last-record/{entity}."""

    @pytest.mark.asyncio
    async def test_returns_latest_row(self, api_client, ledger_rows):
        with patch(f"{SERVICE}.last_record", AsyncMock(return_value=ledger_rows[0])):
            response = await api_client.get("/apcms/last-record/member-loan-deposit")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == 1
        assert body["message"] == "Retrieved the last member loan/deposit record."

    @pytest.mark.asyncio
    async def test_empty_table_is_404(self, api_client):
        with patch(
            f"{SERVICE}.last_record",
            AsyncMock(side_effect=NotFoundError("No marketing records found.")),
        ):
            response = await api_client.get("/apcms/last-record/marketing")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_unknown_entity_is_400(self, api_client):
        response = await api_client.get("/apcms/last-record/payroll")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "Invalid record type 'payroll'" in response.json()["message"]
