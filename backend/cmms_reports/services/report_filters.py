"""
Filter evaluator: declarative report filters to SQLAlchemy predicates.

Validation and construction are separate passes. ``validate_filters`` checks
every clause against the column registry and coerces values, producing typed
``FilterSpec`` objects; ``build_filter_clause`` turns a spec into an
expression and cannot fail. Clauses are AND-combined.
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Iterable, List, Optional, Union

from sqlalchemy import DateTime, and_, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from cmms_reports.core.exceptions import (
    InvalidFilterFieldError,
    InvalidFilterOperatorError,
    InvalidFilterValueError,
)
from cmms_reports.schemas.report import FilterOperator, ReportFilter
from cmms_reports.services.report_columns import (
    ColumnType,
    DataSource,
    DataSourceColumn,
    DataSourceDefinition,
    get_definition,
)

# Operators accepted per column type
RANGE_OPERATORS = {
    FilterOperator.GT,
    FilterOperator.GTE,
    FilterOperator.LT,
    FilterOperator.LTE,
    FilterOperator.BETWEEN,
}
OPERATOR_TYPES = {
    FilterOperator.EQ: set(ColumnType),
    FilterOperator.NEQ: set(ColumnType),
    FilterOperator.IN: set(ColumnType),
    FilterOperator.CONTAINS: {ColumnType.STRING},
    **{op: {ColumnType.NUMBER, ColumnType.DATE} for op in RANGE_OPERATORS},
}

OPERATOR_ALIASES = {"like": FilterOperator.CONTAINS, "ne": FilterOperator.NEQ}


@dataclass(frozen=True)
class FilterSpec:
    """A filter clause that has passed validation; ``value`` is already coerced."""
    column: DataSourceColumn
    operator: FilterOperator
    value: Any
    # Date-only value compared against a timestamp column
    whole_day: bool = False


def _parse_operator(field: str, raw: Any) -> FilterOperator:
    key = str(raw).strip().lower() if raw is not None else ""
    if key in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[key]
    try:
        return FilterOperator(key)
    except ValueError:
        raise InvalidFilterOperatorError(field, str(raw), "unsupported operator")


def _parse_date(field: str, value: Any) -> Union[date, datetime]:
    if isinstance(value, (date, datetime)):
        return value
    if not isinstance(value, str):
        raise InvalidFilterValueError(field, value, "expected an ISO-8601 date string")
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    except ValueError:
        raise InvalidFilterValueError(field, value, "expected an ISO-8601 date string")


def _coerce_value(column: DataSourceColumn, enum_class, value: Any) -> Any:
    """Convert a raw filter value to the Python type of the column."""
    field = column.field

    if column.type == ColumnType.NUMBER:
        if isinstance(value, bool):
            raise InvalidFilterValueError(field, value, "expected a number")
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                try:
                    return float(value)
                except ValueError:
                    pass
        raise InvalidFilterValueError(field, value, "expected a number")

    if column.type == ColumnType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise InvalidFilterValueError(field, value, "expected true or false")

    if column.type == ColumnType.DATE:
        return _parse_date(field, value)

    if column.type == ColumnType.ENUM:
        if isinstance(value, enum_class):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in enum_class:
                if member.value.lower() == wanted or member.name.lower() == wanted:
                    return member
        allowed = ", ".join(member.value for member in enum_class)
        raise InvalidFilterValueError(field, value, f"expected one of: {allowed}")

    # ColumnType.STRING
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise InvalidFilterValueError(field, value, "expected a string")
    return str(value)


def _normalize_temporal(value: Any, is_timestamp: bool) -> Any:
    if not is_timestamp and isinstance(value, datetime):
        return value.date()
    return value


def validate_filter(definition: DataSourceDefinition, item: ReportFilter) -> FilterSpec:
    column = definition.column(item.field)
    if column is None:
        raise InvalidFilterFieldError(item.field, definition.key.value)

    operator = _parse_operator(item.field, item.operator)
    if column.type not in OPERATOR_TYPES[operator]:
        raise InvalidFilterOperatorError(
            item.field, operator.value, f"not supported on {column.type.value} columns"
        )

    attribute = definition.attribute(column)
    enum_class = getattr(attribute.type, "enum_class", None)
    is_timestamp = isinstance(attribute.type, DateTime)
    value = item.value

    if operator == FilterOperator.IN:
        if not isinstance(value, (list, tuple)):
            raise InvalidFilterOperatorError(item.field, operator.value, "requires a list value")
        if not value:
            raise InvalidFilterValueError(item.field, value, "list must not be empty")
        coerced: Any = tuple(
            _normalize_temporal(_coerce_value(column, enum_class, v), is_timestamp) for v in value
        )
    elif operator == FilterOperator.BETWEEN:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise InvalidFilterValueError(item.field, value, "between requires exactly two values")
        coerced = tuple(
            _normalize_temporal(_coerce_value(column, enum_class, v), is_timestamp) for v in value
        )
    elif value is None:
        if operator not in (FilterOperator.EQ, FilterOperator.NEQ):
            raise InvalidFilterValueError(item.field, value, "a value is required")
        coerced = None
    else:
        coerced = _normalize_temporal(_coerce_value(column, enum_class, value), is_timestamp)

    whole_day = False
    if is_timestamp and coerced is not None:
        values = coerced if isinstance(coerced, tuple) else (coerced,)
        whole_day = all(isinstance(v, date) and not isinstance(v, datetime) for v in values)

    return FilterSpec(column=column, operator=operator, value=coerced, whole_day=whole_day)


def validate_filters(
    data_source: Union[DataSource, str],
    filters: Optional[Iterable[ReportFilter]],
) -> List[FilterSpec]:
    """Validate every filter; the first invalid clause raises."""
    definition = get_definition(data_source)
    return [validate_filter(definition, item) for item in (filters or [])]


def _day_bounds(day: date):
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def _whole_day_clause(attribute, operator: FilterOperator, value: Any) -> ColumnElement:
    """Calendar-day comparison against a timestamp column."""
    if operator == FilterOperator.IN:
        return or_(*[attribute.between(*_day_bounds(day)) for day in value])
    if operator == FilterOperator.BETWEEN:
        return attribute.between(_day_bounds(value[0])[0], _day_bounds(value[1])[1])

    start, end = _day_bounds(value)
    if operator == FilterOperator.EQ:
        return attribute.between(start, end)
    if operator == FilterOperator.NEQ:
        return not_(attribute.between(start, end))
    if operator == FilterOperator.GT:
        return attribute > end
    if operator == FilterOperator.GTE:
        return attribute >= start
    if operator == FilterOperator.LT:
        return attribute < start
    return attribute <= end


def build_filter_clause(definition: DataSourceDefinition, spec: FilterSpec) -> ColumnElement:
    """Translate a validated filter into a SQLAlchemy expression."""
    attribute = definition.attribute(spec.column)
    operator, value = spec.operator, spec.value

    if spec.whole_day:
        return _whole_day_clause(attribute, operator, value)

    if operator == FilterOperator.EQ:
        return attribute.is_(None) if value is None else attribute == value
    if operator == FilterOperator.NEQ:
        return attribute.isnot(None) if value is None else attribute != value
    if operator == FilterOperator.GT:
        return attribute > value
    if operator == FilterOperator.GTE:
        return attribute >= value
    if operator == FilterOperator.LT:
        return attribute < value
    if operator == FilterOperator.LTE:
        return attribute <= value
    if operator == FilterOperator.IN:
        return attribute.in_(value)
    if operator == FilterOperator.BETWEEN:
        return attribute.between(value[0], value[1])
    return attribute.icontains(value, autoescape=True)


def build_filter_predicate(definition: DataSourceDefinition, specs: List[FilterSpec]) -> ColumnElement:
    if not specs:
        return true()
    return and_(*[build_filter_clause(definition, spec) for spec in specs])


def build_predicate(
    data_source: Union[DataSource, str],
    filters: Optional[Iterable[ReportFilter]],
) -> ColumnElement:
    """Validate ``filters`` for ``data_source`` and return their AND-combined predicate."""
    definition = get_definition(data_source)
    return build_filter_predicate(definition, validate_filters(definition.key, filters))
