"""Master (reference) tables: items and cooperative societies.

Transactional tables point at these by id; reads join them back to show
codes and names.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.shared.models import RecordMixin


class ItemMaster(RecordMixin, Base):
    """Commodity / input item.

    Attributes:
        id: Primary key, referenced as ``item_id``.
        item_code: Business code (natural key).
        category: Item category (fertilizer, paddy, ...).
        item_name: Display name.
    """

    __tablename__ = "apcms_item_master"

    item_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    category: Mapped[str] = mapped_column(String(100))
    item_name: Mapped[str] = mapped_column(String(200))


class SocietyMaster(RecordMixin, Base):
    """Cooperative society (the ledger owner in transactional tables).

    Attributes:
        id: Primary key, referenced as ``society_id``.
        society_code: Business code (natural key).
        society_name: Display name.
        status: Lifecycle flag; new societies start as "active".
    """

    __tablename__ = "apcms_society_master"

    society_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    society_name: Mapped[str] = mapped_column(String(200), index=True)
    status: Mapped[str] = mapped_column(String(20), default="active", server_default="active")
