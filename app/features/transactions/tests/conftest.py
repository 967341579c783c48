"""Feature-specific test fixtures for transactions module."""

from typing import Any

import pytest


def _entry(acc_type: str, acc_sub_type: str, item_id: int | None, **figures: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "entry_date": "2024-01-15",
        "society_id": 1,
        "acc_type": acc_type,
        "acc_sub_type": acc_sub_type,
        "system_name": "branch-07",
        **figures,
    }
    if item_id is not None:
        record["item_id"] = item_id
    return record


@pytest.fixture
def marketing_records() -> list[dict[str, Any]]:
    """Three marketing records; the second is missing ``item_id``."""
    return [
        _entry("MKT", "PADDY", 5, no_of_lots=3, total_qty="120.5", total_amount="25000"),
        _entry("MKT", "MAIZE", None, no_of_lots=1, total_qty="40", total_amount="7000"),
        _entry("MKT", "COTTON", 6, no_of_lots=2, total_qty="80", total_amount="52000"),
    ]


@pytest.fixture
def member_loan_records() -> list[dict[str, Any]]:
    return [
        _entry("loan", "KCC", 5, member_count=12, issued_amount="150000"),
        _entry("DEPOSIT", "SAVINGS", 5, member_count=30, balance_amount="90000"),
    ]


@pytest.fixture
def godown_records() -> list[dict[str, Any]]:
    return [
        _entry("GODOWN", "MAIN", 5, capacity_kg=50000, bags_stored=400, stored_kg=20000),
    ]


@pytest.fixture
def ledger_rows() -> list[dict[str, Any]]:
    """Joined rows as the service returns them."""
    return [
        {
            "id": 1,
            "entry_date": "2024-01-15",
            "society_id": 1,
            "society_code": "ALP01",
            "society_name": "Alpha Coop",
            "acc_type": "LOAN",
            "acc_sub_type": "KCC",
            "item_id": 5,
            "item_code": "FRT01",
            "item_name": "Urea",
            "issued_amount": "150000.00",
        }
    ]
