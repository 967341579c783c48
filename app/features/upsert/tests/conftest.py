"""Feature-specific test fixtures for the upsert engine."""

from typing import Any

import pytest


@pytest.fixture
def marketing_record() -> dict[str, Any]:
    """A complete marketing record as a client would send it."""
    return {
        "entry_date": "2024-01-15",
        "society_id": 1,
        "acc_type": "MKT",
        "acc_sub_type": "PADDY",
        "item_id": 5,
        "no_of_lots": 3,
        "total_qty": "120.500",
        "total_amount": "25000.00",
        "system_name": "branch-07",
    }


@pytest.fixture
def marketing_batch(marketing_record) -> list[dict[str, Any]]:
    """Three records; the second is missing ``item_id``."""
    second = {**marketing_record, "acc_sub_type": "MAIZE"}
    del second["item_id"]
    third = {**marketing_record, "acc_sub_type": "COTTON", "item_id": 6}
    return [marketing_record, second, third]


@pytest.fixture
def godown_record() -> dict[str, Any]:
    return {
        "entry_date": "2024-02-01",
        "society_id": 2,
        "acc_type": "GODOWN",
        "acc_sub_type": "MAIN",
        "item_id": 5,
        "capacity_kg": 50000,
        "bags_stored": 400,
        "stored_kg": 20000,
        "utilization_pct": "40.00",
    }
