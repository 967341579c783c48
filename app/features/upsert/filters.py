"""Parameterized filter predicates for the read endpoints.

``build_filter`` turns a mapping of optional criteria into SQL conditions
that compare columns against named bind parameters; the values themselves
only ever travel in ``FilterClause.params``.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Column, ColumnElement, DateTime, Select, Table, bindparam, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.features.upsert.rows import column_adapter, to_validation_error

# Identifier value meaning "do not filter on this field"
SENTINEL_ALL = "all"

DATE_ADAPTER = TypeAdapter(date)


@dataclass(frozen=True)
class FilterSpec:
    """Which criteria a read endpoint understands.

    Attributes:
        exact_fields: Columns filtered by equality.
        range_field: Column filtered by an inclusive date range.
        lower_key: Criterion name holding the lower bound.
        upper_key: Criterion name holding the upper bound.
        sentinel_fields: Exact fields where "all" means no constraint.
    """

    exact_fields: tuple[str, ...] = ()
    range_field: str | None = None
    lower_key: str = "startdate"
    upper_key: str = "enddate"
    sentinel_fields: tuple[str, ...] = ()


@dataclass
class FilterClause:
    """Predicate fragments plus the values bound to them."""

    conditions: list[ColumnElement[bool]] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)

    def apply(self, stmt: Select[Any]) -> Select[Any]:
        return stmt.where(*self.conditions) if self.conditions else stmt


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_all(value: Any) -> bool:
    """True if ``value`` is the "all" sentinel (case and padding ignored)."""
    return isinstance(value, str) and value.strip().lower() == SENTINEL_ALL


def parse_date_criterion(name: str, value: Any) -> date | None:
    """Parse a ``YYYY-MM-DD`` filter value; empty means no bound.

    Raises:
        ValidationError: If the value is not a calendar date.
    """
    if _is_empty(value):
        return None
    if isinstance(value, date):
        return value
    try:
        return DATE_ADAPTER.validate_python(str(value).strip())
    except PydanticValidationError:
        raise ValidationError(
            f"Invalid {name} format. Use YYYY-MM-DD.",
            details={"field": name},
        ) from None


def _exact_value(column: Column[Any], value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
    try:
        return column_adapter(column).validate_python(value)
    except PydanticValidationError as e:
        raise to_validation_error(e, column.name) from e


def _bound(column_is_datetime: bool, day: date, upper: bool) -> date | datetime:
    if not column_is_datetime:
        return day
    return datetime.combine(day, time.max if upper else time.min)


def build_filter(
    table: Table,
    spec: FilterSpec,
    criteria: Mapping[str, Any],
) -> FilterClause:
    """Build equality and inclusive-range conditions from the supplied criteria.

    Criteria that are absent, blank, or (for sentinel fields) equal to "all"
    in any case add nothing. A date bound against a date-time column covers
    the whole day: the lower bound starts at 00:00:00 and the upper bound
    ends at 23:59:59.999999.

    Args:
        table: Table whose columns are filtered.
        spec: Criteria the endpoint accepts.
        criteria: Supplied criteria, keyed by field or bound name.

    Returns:
        FilterClause with one condition per effective criterion.

    Raises:
        ValidationError: On malformed dates or values the column cannot hold.
    """
    clause = FilterClause()

    for name in spec.exact_fields:
        value = criteria.get(name)
        if _is_empty(value):
            continue
        if name in spec.sentinel_fields and is_all(value):
            continue
        column = table.c[name]
        param = f"{name}_eq"
        clause.conditions.append(column == bindparam(param))
        clause.params[param] = _exact_value(column, value)

    if spec.range_field is not None:
        column = table.c[spec.range_field]
        is_datetime = isinstance(column.type, DateTime)
        lower = parse_date_criterion(spec.lower_key, criteria.get(spec.lower_key))
        upper = parse_date_criterion(spec.upper_key, criteria.get(spec.upper_key))
        if lower is not None:
            param = f"{spec.range_field}_from"
            clause.conditions.append(column >= bindparam(param))
            clause.params[param] = _bound(is_datetime, lower, upper=False)
        if upper is not None:
            param = f"{spec.range_field}_to"
            clause.conditions.append(column <= bindparam(param))
            clause.params[param] = _bound(is_datetime, upper, upper=True)

    return clause


async def fetch_with_count(
    db: AsyncSession,
    stmt: Select[Any],
    clause: FilterClause,
) -> tuple[int, list[dict[str, Any]]]:
    """Count matching rows, then fetch them unless the count is zero.

    Args:
        db: Database session.
        stmt: Base select (ordering included).
        clause: Filter to apply to both queries.

    Returns:
        (total, rows) where rows are plain dicts.
    """
    filtered = clause.apply(stmt)
    count_stmt = select(func.count()).select_from(filtered.order_by(None).subquery())
    total = (await db.execute(count_stmt, clause.params)).scalar_one()

    if total == 0:
        return 0, []

    result = await db.execute(filtered, clause.params)
    rows = [dict(row) for row in result.mappings().all()]
    return total, rows


def describe_criteria(clause: FilterClause) -> Sequence[str]:
    """Bound parameter names, for logging which filters were applied."""
    return sorted(clause.params)
