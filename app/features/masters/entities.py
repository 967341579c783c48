"""Upsert definitions for the master tables."""

from typing import cast

from sqlalchemy import Table

from app.features.masters.models import ItemMaster, SocietyMaster
from app.features.upsert.entity import EntitySchema, UpdatePolicy

ITEM_MASTER = EntitySchema(
    name="item_master",
    label="Item master",
    table=cast(Table, ItemMaster.__table__),
    key_fields=("item_code",),
    required_fields=("item_code", "category", "item_name"),
    mutable_fields=("category", "item_name"),
    policy=UpdatePolicy.UPDATE,
    fresh_read=True,
)

SOCIETY_MASTER = EntitySchema(
    name="society_master",
    label="Society master",
    table=cast(Table, SocietyMaster.__table__),
    key_fields=("society_code",),
    required_fields=("society_name", "society_code"),
    mutable_fields=("society_name", "status"),
    defaults={"status": "active"},
    policy=UpdatePolicy.UPDATE,
    fresh_read=True,
)
