"""Transactional tables reported by societies.

All four share one natural key, ``(entry_date, society_id, acc_type,
acc_sub_type, item_id)``, enforced by a unique constraint per table.
"""

import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.shared.models import RecordMixin

NATURAL_KEY = ("entry_date", "society_id", "acc_type", "acc_sub_type", "item_id")


class EntryKeyMixin(RecordMixin):
    """Natural-key columns plus the reporting system's name."""

    entry_date: Mapped[datetime.date] = mapped_column(Date, index=True)
    society_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("apcms_society_master.id"), index=True
    )
    acc_type: Mapped[str] = mapped_column(String(20))
    acc_sub_type: Mapped[str] = mapped_column(String(50))
    item_id: Mapped[int] = mapped_column(Integer, ForeignKey("apcms_item_master.id"), index=True)
    system_name: Mapped[str | None] = mapped_column(String(100), nullable=True)


class MemberLoanDeposit(EntryKeyMixin, Base):
    """Member counts, loans and deposits per society, item and day.

    ``acc_type`` is MEMBER, LOAN or DEPOSIT. Quantities track in-kind loans
    (e.g. fertilizer), amounts their value.
    """

    __tablename__ = "apcms_member_loan_deposit"

    member_count: Mapped[int] = mapped_column(Integer, default=0)
    opening_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    issued_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    collected_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    balance_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    opening_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    issued_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    collected_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY, name="uq_member_loan_deposit_key"),
        Index("ix_member_loan_deposit_type_date", "acc_type", "entry_date"),
        CheckConstraint(
            "acc_type IN ('MEMBER', 'LOAN', 'DEPOSIT')", name="ck_member_loan_deposit_acc_type"
        ),
    )


class SalesPurchase(EntryKeyMixin, Base):
    """Sales and purchases per society, item and day (``acc_type`` SALES/PURCHASE)."""

    __tablename__ = "apcms_sales_purchase"

    total_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY, name="uq_sales_purchase_key"),
        Index("ix_sales_purchase_type_date", "acc_type", "entry_date"),
        CheckConstraint("acc_type IN ('SALES', 'PURCHASE')", name="ck_sales_purchase_acc_type"),
    )


class Marketing(EntryKeyMixin, Base):
    """Produce marketed through the society: lots, quantity and value."""

    __tablename__ = "apcms_marketing"

    no_of_lots: Mapped[int] = mapped_column(Integer, default=0)
    total_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    __table_args__ = (UniqueConstraint(*NATURAL_KEY, name="uq_marketing_key"),)


class GodownUtilization(EntryKeyMixin, Base):
    """Daily snapshot of a society godown's storage use."""

    __tablename__ = "apcms_godown_utilization"

    capacity_kg: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    bags_stored: Mapped[int] = mapped_column(Integer, default=0)
    stored_kg: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    utilization_pct: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0)

    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY, name="uq_godown_utilization_key"),
        CheckConstraint("bags_stored >= 0", name="ck_godown_utilization_bags_positive"),
    )
