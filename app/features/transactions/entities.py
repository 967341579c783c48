"""Upsert definitions for the transactional tables."""

from typing import cast

from sqlalchemy import Table

from app.features.masters.models import ItemMaster, SocietyMaster
from app.features.transactions.models import (
    NATURAL_KEY,
    GodownUtilization,
    Marketing,
    MemberLoanDeposit,
    SalesPurchase,
)
from app.features.upsert.entity import EntitySchema, ReferenceJoin, UpdatePolicy

MEMBER_ACC_TYPES = ("MEMBER", "LOAN", "DEPOSIT")
SALES_ACC_TYPES = ("SALES", "PURCHASE")

REFERENCE_JOINS = (
    ReferenceJoin(
        fk_field="society_id",
        table=cast(Table, SocietyMaster.__table__),
        columns=(("society_code", "society_code"), ("society_name", "society_name")),
    ),
    ReferenceJoin(
        fk_field="item_id",
        table=cast(Table, ItemMaster.__table__),
        columns=(("item_code", "item_code"), ("item_name", "item_name")),
    ),
)


def _zero_defaults(*fields: str) -> dict[str, int]:
    return dict.fromkeys(fields, 0)


_MEMBER_FIGURES = (
    "member_count",
    "opening_qty",
    "issued_qty",
    "collected_qty",
    "balance_qty",
    "opening_amount",
    "issued_amount",
    "collected_amount",
    "balance_amount",
)

MEMBER_LOAN_DEPOSIT = EntitySchema(
    name="member_loan_deposit",
    label="Member loan/deposit",
    table=cast(Table, MemberLoanDeposit.__table__),
    key_fields=NATURAL_KEY,
    required_fields=NATURAL_KEY,
    mutable_fields=(*_MEMBER_FIGURES, "system_name"),
    defaults=_zero_defaults(*_MEMBER_FIGURES),
    policy=UpdatePolicy.UPDATE,
    joins=REFERENCE_JOINS,
    allowed_values={"acc_type": MEMBER_ACC_TYPES},
)

SALES_PURCHASE = EntitySchema(
    name="sales_purchase",
    label="Sales/purchase",
    table=cast(Table, SalesPurchase.__table__),
    key_fields=NATURAL_KEY,
    required_fields=NATURAL_KEY,
    mutable_fields=("total_qty", "total_amount", "system_name"),
    defaults=_zero_defaults("total_qty", "total_amount"),
    policy=UpdatePolicy.UPDATE,
    joins=REFERENCE_JOINS,
    allowed_values={"acc_type": SALES_ACC_TYPES},
)

MARKETING = EntitySchema(
    name="marketing",
    label="Marketing",
    table=cast(Table, Marketing.__table__),
    key_fields=NATURAL_KEY,
    required_fields=NATURAL_KEY,
    mutable_fields=("no_of_lots", "total_qty", "total_amount", "system_name"),
    defaults=_zero_defaults("no_of_lots", "total_qty", "total_amount"),
    policy=UpdatePolicy.UPDATE,
    joins=REFERENCE_JOINS,
)

# Snapshots are first-write-wins: a resubmitted day is reported as skipped
GODOWN_UTILIZATION = EntitySchema(
    name="godown_utilization",
    label="Godown utilization",
    table=cast(Table, GodownUtilization.__table__),
    key_fields=NATURAL_KEY,
    required_fields=NATURAL_KEY,
    mutable_fields=("capacity_kg", "bags_stored", "stored_kg", "utilization_pct", "system_name"),
    defaults=_zero_defaults("capacity_kg", "bags_stored", "stored_kg", "utilization_pct"),
    policy=UpdatePolicy.NOOP,
    joins=REFERENCE_JOINS,
)

# URL slug -> entity, for endpoints addressing any transactional table
TRANSACTION_ENTITIES: dict[str, EntitySchema] = {
    "member-loan-deposit": MEMBER_LOAN_DEPOSIT,
    "sales-purchase": SALES_PURCHASE,
    "marketing": MARKETING,
    "godown-utilization": GODOWN_UTILIZATION,
}
