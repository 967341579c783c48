"""Society transactional data: loans/deposits, sales/purchases, marketing, godowns."""

from app.features.transactions.entities import (
    GODOWN_UTILIZATION,
    MARKETING,
    MEMBER_LOAN_DEPOSIT,
    SALES_PURCHASE,
    TRANSACTION_ENTITIES,
)
from app.features.transactions.routes import router
from app.features.transactions.service import TransactionService

__all__ = [
    "GODOWN_UTILIZATION",
    "MARKETING",
    "MEMBER_LOAN_DEPOSIT",
    "SALES_PURCHASE",
    "TRANSACTION_ENTITIES",
    "TransactionService",
    "router",
]
