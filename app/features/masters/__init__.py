"""Item and society master data."""

from app.features.masters.entities import ITEM_MASTER, SOCIETY_MASTER
from app.features.masters.models import ItemMaster, SocietyMaster
from app.features.masters.routes import router

__all__ = [
    "ITEM_MASTER",
    "SOCIETY_MASTER",
    "ItemMaster",
    "SocietyMaster",
    "router",
]
