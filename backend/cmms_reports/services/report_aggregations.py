"""
Aggregation and grouping translator.

``validate_grouping`` checks group-by fields and aggregation requests against
the column registry and returns a ``GroupingSpec``. ``build_grouping_clause``
turns it into select/group-by expressions and ``shape_aggregates``
converts the rows of the aggregate query into the result payload.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement

from cmms_reports.core.exceptions import InvalidAggregationFieldError, InvalidGroupByFieldError
from cmms_reports.schemas.report import AggregationFunction, AggregationGroup, ReportAggregation
from cmms_reports.services.report_columns import (
    DataSource,
    DataSourceColumn,
    DataSourceDefinition,
    get_definition,
    render_value,
)

ROW_COUNT_LABEL = "row_count"
NULL_GROUP_LABEL = "(none)"
GROUP_LABEL_SEPARATOR = " / "

SQL_FUNCTIONS = {
    AggregationFunction.SUM: func.sum,
    AggregationFunction.AVG: func.avg,
    AggregationFunction.MIN: func.min,
    AggregationFunction.MAX: func.max,
}


@dataclass(frozen=True)
class AggregationSpec:
    function: AggregationFunction
    column: Optional[DataSourceColumn]
    key: str


@dataclass(frozen=True)
class GroupingSpec:
    group_columns: Tuple[DataSourceColumn, ...] = ()
    aggregations: Tuple[AggregationSpec, ...] = ()

    @property
    def is_grouped(self) -> bool:
        return bool(self.group_columns)


@dataclass(frozen=True)
class GroupingClause:
    """Select list and GROUP BY expressions of the aggregate query."""
    columns: Tuple[ColumnElement, ...]
    group_by: Tuple[ColumnElement, ...]


def aggregation_key(function: AggregationFunction, field: Optional[str]) -> str:
    if function == AggregationFunction.COUNT and not field:
        return "count"
    return f"{function.value}_{field}"


def _parse_function(item: ReportAggregation) -> AggregationFunction:
    try:
        return AggregationFunction(str(item.function).strip().lower())
    except ValueError:
        raise InvalidAggregationFieldError(item.field, str(item.function), "unsupported aggregation function")


def validate_aggregation(
    definition: DataSourceDefinition,
    item: ReportAggregation,
    group_fields: Sequence[str] = (),
) -> AggregationSpec:
    function = _parse_function(item)

    if function == AggregationFunction.COUNT:
        # count always counts rows, whatever field it names
        return AggregationSpec(function=function, column=None, key=aggregation_key(function, item.field))

    if not item.field:
        raise InvalidAggregationFieldError(item.field, function.value, "a field is required")
    column = definition.column(item.field)
    if column is None:
        raise InvalidAggregationFieldError(
            item.field, function.value, f"not a column of data source '{definition.key.value}'"
        )
    if not column.is_numeric:
        raise InvalidAggregationFieldError(
            item.field, function.value, f"requires a numeric field, got {column.type.value}"
        )
    if column.field in group_fields:
        raise InvalidAggregationFieldError(item.field, function.value, "field is a group-by key")

    return AggregationSpec(function=function, column=column, key=aggregation_key(function, column.field))


def validate_grouping(
    data_source: Union[DataSource, str],
    group_by: Optional[Iterable[str]],
    aggregations: Optional[Iterable[ReportAggregation]],
) -> GroupingSpec:
    definition = get_definition(data_source)

    group_columns: List[DataSourceColumn] = []
    for field in group_by or []:
        column = definition.column(field)
        if column is None:
            raise InvalidGroupByFieldError(field, definition.key.value)
        if column not in group_columns:
            group_columns.append(column)
    group_fields = [column.field for column in group_columns]

    specs: Dict[str, AggregationSpec] = {}
    for item in aggregations or []:
        spec = validate_aggregation(definition, item, group_fields)
        specs.setdefault(spec.key, spec)

    return GroupingSpec(group_columns=tuple(group_columns), aggregations=tuple(specs.values()))


def _group_label(index: int) -> str:
    return f"group_{index}"


def _aggregate_label(index: int) -> str:
    return f"agg_{index}"


def build_grouping_clause(definition: DataSourceDefinition, spec: GroupingSpec) -> GroupingClause:
    group_exprs = tuple(definition.attribute(column) for column in spec.group_columns)

    columns: List[ColumnElement] = [
        expr.label(_group_label(i)) for i, expr in enumerate(group_exprs)
    ]
    columns.append(func.count().label(ROW_COUNT_LABEL))
    for i, aggregation in enumerate(spec.aggregations):
        if aggregation.function == AggregationFunction.COUNT:
            expr = func.count()
        else:
            expr = SQL_FUNCTIONS[aggregation.function](definition.attribute(aggregation.column))
        columns.append(expr.label(_aggregate_label(i)))

    return GroupingClause(columns=tuple(columns), group_by=group_exprs)


def build_grouping(
    data_source: Union[DataSource, str],
    group_by: Optional[Iterable[str]],
    aggregations: Optional[Iterable[ReportAggregation]],
) -> GroupingClause:
    """Validate group-by and aggregation requests and return the aggregate query clause."""
    definition = get_definition(data_source)
    return build_grouping_clause(definition, validate_grouping(definition.key, group_by, aggregations))


def _aggregate_value(function: AggregationFunction, value: Any) -> Any:
    if function == AggregationFunction.COUNT:
        return int(value or 0)
    if value is None:
        return None
    if function in (AggregationFunction.SUM, AggregationFunction.AVG):
        return float(value)
    return render_value(value)


def _values(spec: GroupingSpec, row) -> Dict[str, Any]:
    mapping = row._mapping
    return {
        aggregation.key: _aggregate_value(aggregation.function, mapping[_aggregate_label(i)])
        for i, aggregation in enumerate(spec.aggregations)
    }


def _escape_label_part(text: str) -> str:
    # Escaped "/" never forms a separator, and an escaped "(none)" never reads as null
    text = text.replace("\\", "\\\\").replace("/", "\\/")
    if text == NULL_GROUP_LABEL:
        return "\\" + text
    return text


def group_label(values: Iterable[Any]) -> str:
    """
    Key of a group in the aggregations mapping.

    Distinct group values always give distinct labels. Nulls read as
    ``(none)`` and multi-column groups are joined with `` / ``.
    """
    parts = []
    for value in values:
        value = render_value(value)
        parts.append(NULL_GROUP_LABEL if value is None else _escape_label_part(str(value)))
    return GROUP_LABEL_SEPARATOR.join(parts)


def shape_aggregates(
    spec: GroupingSpec,
    rows: Sequence[Any],
) -> Tuple[Optional[Dict[str, Any]], Optional[List[AggregationGroup]], int]:
    """
    Convert aggregate query rows into ``(aggregations, groups, total)``.

    Ungrouped: one row, ``aggregations`` maps aggregation keys to values (None
    when no aggregation was requested). Grouped: one row per group present in
    the data, ``aggregations`` maps the group label to that group's values.
    """
    if not spec.is_grouped:
        row = rows[0] if rows else None
        if row is None:
            total = 0
            values = {
                aggregation.key: _aggregate_value(aggregation.function, None)
                for aggregation in spec.aggregations
            }
        else:
            total = int(row._mapping[ROW_COUNT_LABEL] or 0)
            values = _values(spec, row)
        return (values if spec.aggregations else None), None, total

    aggregations: Dict[str, Any] = {}
    groups: List[AggregationGroup] = []
    total = 0
    for row in rows:
        mapping = row._mapping
        raw_keys = [mapping[_group_label(i)] for i in range(len(spec.group_columns))]
        row_count = int(mapping[ROW_COUNT_LABEL] or 0)
        values = _values(spec, row)
        total += row_count

        aggregations[group_label(raw_keys)] = values
        groups.append(
            AggregationGroup(
                group={
                    column.field: render_value(value)
                    for column, value in zip(spec.group_columns, raw_keys)
                },
                row_count=row_count,
                values=values,
            )
        )
    return aggregations, groups, total
