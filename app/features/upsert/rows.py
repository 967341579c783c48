"""Pydantic row models derived from the entity tables.

asyncpg does not cast strings for typed parameters, so every value bound
against a Date, DateTime, Integer or Numeric column has to arrive as the
matching Python object. Each entity gets a row model generated from its
table columns; validating a record through it performs that conversion.
"""

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    create_model,
)
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String

from app.core.exceptions import ValidationError

if TYPE_CHECKING:
    from app.features.upsert.entity import EntitySchema


class RowModel(BaseModel):
    """Base for generated row models.

    Unknown fields are dropped and plain numbers are accepted for string
    columns ("acc_sub_type": 101).
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


def column_annotation(column: Column[Any]) -> Any:
    """Pydantic type for values bound against ``column``."""
    column_type = column.type
    if isinstance(column_type, DateTime):
        return datetime
    if isinstance(column_type, Date):
        return date
    if isinstance(column_type, Integer):
        return int
    if isinstance(column_type, Numeric):
        return Annotated[Decimal, Field(allow_inf_nan=False)]
    if isinstance(column_type, String):
        return Annotated[
            str, StringConstraints(strip_whitespace=True, max_length=column_type.length)
        ]
    return Any


def column_adapter(column: Column[Any]) -> TypeAdapter[Any]:
    """TypeAdapter for single filter values compared against ``column``."""
    return TypeAdapter(column_annotation(column), config=RowModel.model_config)


def _one_of(allowed: tuple[str, ...]) -> Callable[[str], str]:
    def check(value: str) -> str:
        normalized = value.upper()
        if normalized not in allowed:
            raise ValueError(f"must be one of {', '.join(allowed)}")
        return normalized

    return check


def build_row_model(entity: "EntitySchema") -> type[RowModel]:
    """Generate the row model for an entity's key and mutable fields.

    Every field is optional at this level; required-field checks run
    before the model so they can report all missing fields at once.
    Closed vocabularies are upper-cased and checked by the model.
    """
    fields: dict[str, Any] = {}
    for name in entity.writable_fields:
        annotation = column_annotation(entity.table.c[name])
        allowed = entity.allowed_values.get(name)
        if allowed is not None:
            annotation = Annotated[annotation, AfterValidator(_one_of(allowed))]
        fields[name] = (annotation | None, None)

    model_name = "".join(part.capitalize() for part in entity.name.split("_")) + "Row"
    return create_model(model_name, __base__=RowModel, **fields)


def _reason(error: Any) -> str:
    if error["type"] == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return str(error["msg"])


def to_validation_error(
    exc: PydanticValidationError, field: str | None = None
) -> ValidationError:
    """Convert a pydantic error into the app's ValidationError.

    The message names the first offending field; ``details["errors"]``
    lists all of them. ``field`` names scalar values, whose errors carry
    no location.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]) or field or "value",
            "message": _reason(error),
            "type": error["type"],
        }
        for error in exc.errors(include_url=False)
    ]
    first = errors[0]
    return ValidationError(
        f"Invalid value for field '{first['field']}': {first['message']}",
        details={"field": first["field"], "errors": errors},
    )
