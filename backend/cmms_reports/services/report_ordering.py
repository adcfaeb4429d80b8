"""
Sort and pagination translator.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

from sqlalchemy.sql.elements import ColumnElement

from cmms_reports.core.exceptions import InvalidPaginationError, InvalidSortFieldError
from cmms_reports.schemas.report import ReportSorting, SortOrder
from cmms_reports.services.report_columns import (
    DataSource,
    DataSourceColumn,
    DataSourceDefinition,
    get_definition,
)


@dataclass(frozen=True)
class SortSpec:
    column: DataSourceColumn
    order: SortOrder


@dataclass(frozen=True)
class Window:
    offset: int
    limit: int


def validate_sorting(
    data_source: Union[DataSource, str],
    sorting: Optional[Iterable[ReportSorting]],
) -> List[SortSpec]:
    definition = get_definition(data_source)
    specs = []
    for item in sorting or []:
        column = definition.column(item.field)
        if column is None:
            raise InvalidSortFieldError(item.field, definition.key.value)
        specs.append(SortSpec(column=column, order=item.order))
    return specs


def build_order_clauses(definition: DataSourceDefinition, specs: List[SortSpec]) -> List[ColumnElement]:
    """
    ORDER BY expressions in listed order, followed by the primary key so that
    rows with equal sort keys keep a stable position between pages.
    """
    clauses = []
    for spec in specs:
        attribute = definition.attribute(spec.column)
        clauses.append(attribute.desc() if spec.order == SortOrder.DESC else attribute.asc())

    pk = definition.primary_key
    if not any(spec.column.attribute == pk.key for spec in specs):
        clauses.append(pk.asc())
    return clauses


def build_ordering(
    data_source: Union[DataSource, str],
    sorting: Optional[Iterable[ReportSorting]],
) -> List[ColumnElement]:
    definition = get_definition(data_source)
    return build_order_clauses(definition, validate_sorting(definition.key, sorting))


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidPaginationError(name, value)
    return value


def build_window(page: int, limit: int) -> Window:
    """1-indexed page and page size to offset/limit."""
    page = _positive_int("page", page)
    limit = _positive_int("limit", limit)
    return Window(offset=(page - 1) * limit, limit=limit)
