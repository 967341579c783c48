"""Declarative per-entity definitions consumed by the generic upsert engine.

An ``EntitySchema`` tells the resolver everything it needs about one table:
which fields form the natural key, which must be present, which may be
overwritten on update, what to fill in when a field is omitted, and what to
do when the key already exists.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Select, Table, select
from sqlalchemy.sql import FromClause

from app.core.exceptions import ValidationError
from app.features.upsert.rows import RowModel, build_row_model, to_validation_error


class UpdatePolicy(str, Enum):
    """What an upsert does when the natural key already exists."""

    UPDATE = "update"  # overwrite the mutable fields
    NOOP = "noop"  # leave the stored row alone, report it as skipped


@dataclass(frozen=True)
class ReferenceJoin:
    """Outer join from an entity table to a reference (master) table.

    Attributes:
        fk_field: Column on the entity table holding the reference id.
        table: Reference table, joined on its ``id`` column.
        columns: (reference column, output label) pairs surfaced in reads.
    """

    fk_field: str
    table: Table
    columns: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class EntitySchema:
    """Static upsert definition for one table.

    Attributes:
        name: Machine name, used in logs and URLs.
        label: Human name used in response messages ("Society master").
        table: Target table; must have an integer ``id`` primary key.
        key_fields: Natural key, in lookup order.
        required_fields: Fields that must be present and non-null.
        mutable_fields: Fields written on insert and overwritten on update.
        defaults: Insert-time values for omitted mutable fields.
        policy: Behavior when the key already exists.
        joins: Reference joins applied to reads and fresh reads.
        fresh_read: Re-read the row after a single-record write.
        allowed_values: Closed vocabularies, compared after upper-casing.
    """

    name: str
    label: str
    table: Table
    key_fields: tuple[str, ...]
    required_fields: tuple[str, ...]
    mutable_fields: tuple[str, ...]
    defaults: Mapping[str, Any] = field(default_factory=dict)
    policy: UpdatePolicy = UpdatePolicy.UPDATE
    joins: tuple[ReferenceJoin, ...] = ()
    fresh_read: bool = False
    allowed_values: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        columns = set(self.table.c.keys())
        if "id" not in columns:
            raise ValueError(f"{self.name}: table {self.table.name} has no 'id' column")
        if not self.key_fields:
            raise ValueError(f"{self.name}: natural key must not be empty")
        overlap = set(self.key_fields) & set(self.mutable_fields)
        if overlap:
            raise ValueError(f"{self.name}: fields both key and mutable: {sorted(overlap)}")
        unknown = (
            set(self.key_fields)
            | set(self.required_fields)
            | set(self.mutable_fields)
            | set(self.defaults)
            | set(self.allowed_values)
        ) - columns
        if unknown:
            raise ValueError(f"{self.name}: unknown columns {sorted(unknown)}")
        if set(self.defaults) - set(self.mutable_fields):
            raise ValueError(f"{self.name}: defaults may only cover mutable fields")

    @property
    def writable_fields(self) -> tuple[str, ...]:
        return self.key_fields + self.mutable_fields

    def missing_fields(self, record: Mapping[str, Any]) -> list[str]:
        """Return required fields that are absent or null, in declaration order."""
        return [name for name in self.required_fields if record.get(name) is None]

    def key_identifier(self, record: Any) -> dict[str, Any]:
        """Raw natural-key values of ``record`` for reporting, missing ones as None."""
        if not isinstance(record, Mapping):
            return {name: None for name in self.key_fields}
        return {name: record.get(name) for name in self.key_fields}

    @cached_property
    def row_model(self) -> type[RowModel]:
        """Pydantic model that converts this entity's writable fields."""
        return build_row_model(self)

    def validate(self, record: Any) -> dict[str, Any]:
        """Check required fields and convert every supplied writable field.

        Fields outside the key and mutable sets are dropped. Null mutable
        fields count as not supplied.

        Returns:
            Converted values keyed by field name.

        Raises:
            ValidationError: If the record is not a mapping, misses required
                fields, or carries a value its column cannot hold.
        """
        if not isinstance(record, Mapping):
            raise ValidationError(f"{self.label} record must be a JSON object")

        missing = self.missing_fields(record)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing_fields": missing},
            )

        try:
            row = self.row_model.model_validate(dict(record))
        except PydanticValidationError as e:
            raise to_validation_error(e) from e
        values = row.model_dump(exclude_none=True)

        # A key field can still be absent if it is not declared required
        absent_key = [name for name in self.key_fields if name not in values]
        if absent_key:
            raise ValidationError(
                f"Missing required fields: {', '.join(absent_key)}",
                details={"missing_fields": absent_key},
            )
        return values

    def key_of(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {name: values[name] for name in self.key_fields}

    def insert_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Key and mutable values for a new row, defaults filling the gaps."""
        row = dict(self.defaults)
        row.update({name: values[name] for name in self.writable_fields if name in values})
        return row

    def update_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Supplied mutable values only; key columns are never rewritten."""
        return {name: values[name] for name in self.mutable_fields if name in values}

    def select(self) -> Select[Any]:
        """Base read statement: every table column plus joined display columns."""
        table = self.table
        columns: list[Any] = list(table.c)
        source: FromClause = table
        for join in self.joins:
            source = source.outerjoin(join.table, table.c[join.fk_field] == join.table.c.id)
            columns.extend(join.table.c[column].label(label) for column, label in join.columns)
        return select(*columns).select_from(source)
