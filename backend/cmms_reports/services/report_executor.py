"""
Report execution orchestrator.

An execution runs through ``validating -> querying -> shaping -> done``. The
whole configuration is validated before the first statement is sent; any
validation error moves the executor straight to ``failed``.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.sql.elements import ColumnElement

from cmms_reports.core.config import get_settings
from cmms_reports.core.exceptions import (
    DataStoreError,
    EmptyColumnSelectionError,
    InvalidPaginationError,
    ReportError,
    ReportValidationError,
    UnknownColumnError,
)
from cmms_reports.models.saved_report import SavedReport
from cmms_reports.schemas.report import (
    ChartType,
    DateRange,
    PageInfo,
    ReportColumnInfo,
    ReportConfiguration,
    ReportExecuteRequest,
    ReportExecutionResult,
    ReportResultMetadata,
)
from cmms_reports.services.report_aggregations import (
    GroupingSpec,
    build_grouping_clause,
    shape_aggregates,
    validate_grouping,
)
from cmms_reports.services.report_columns import (
    DataSource,
    DataSourceColumn,
    DataSourceDefinition,
    get_definition,
    render_value,
)
from cmms_reports.services.report_filters import FilterSpec, build_filter_predicate, validate_filters
from cmms_reports.services.report_ordering import (
    SortSpec,
    Window,
    build_order_clauses,
    build_window,
    validate_sorting,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class ExecutionState(str, enum.Enum):
    VALIDATING = "validating"
    QUERYING = "querying"
    SHAPING = "shaping"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportQuerySpec:
    """Fully validated report configuration, ready to be turned into SQL."""
    definition: DataSourceDefinition
    columns: Tuple[DataSourceColumn, ...]
    filters: Tuple[FilterSpec, ...]
    grouping: GroupingSpec
    sorting: Tuple[SortSpec, ...]
    page: int
    window: Window
    date_range: Optional[DateRange] = None
    chart_type: Optional[ChartType] = None


def parse_configuration(raw: Any) -> ReportConfiguration:
    """Load a stored configuration document."""
    if isinstance(raw, ReportConfiguration):
        return raw
    try:
        return ReportConfiguration.model_validate(raw or {})
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise ReportValidationError(f"Invalid report configuration: {field}: {error['msg']}", field=field)


def validate_columns(definition: DataSourceDefinition, fields: Sequence[str]) -> Tuple[DataSourceColumn, ...]:
    if not fields:
        raise EmptyColumnSelectionError()
    columns: List[DataSourceColumn] = []
    for field in fields:
        column = definition.column(field)
        if column is None:
            raise UnknownColumnError(field, definition.key.value)
        if column not in columns:
            columns.append(column)
    return tuple(columns)


def validate_report_configuration(
    data_source: Union[DataSource, str],
    configuration: Any,
    page: int = 1,
    limit: Optional[int] = None,
    date_range: Optional[DateRange] = None,
) -> ReportQuerySpec:
    """
    Validate every part of a configuration against the column registry.

    Used both when a report is saved and right before it is executed.
    Raises a ``ReportValidationError`` subclass on the first problem found.
    """
    definition = get_definition(data_source)
    config = parse_configuration(configuration)

    columns = validate_columns(definition, config.columns)
    filters = validate_filters(definition.key, config.filters)
    grouping = validate_grouping(definition.key, config.group_by, config.aggregations)
    sorting = validate_sorting(definition.key, config.sorting)

    if limit is None:
        limit = settings.REPORT_DEFAULT_LIMIT
    window = build_window(page, limit)
    if window.limit > settings.REPORT_MAX_LIMIT:
        raise InvalidPaginationError("limit", limit, f"must not exceed {settings.REPORT_MAX_LIMIT}")

    return ReportQuerySpec(
        definition=definition,
        columns=columns,
        filters=tuple(filters),
        grouping=grouping,
        sorting=tuple(sorting),
        page=page,
        window=window,
        date_range=date_range or config.date_range,
        chart_type=config.chart_type,
    )


class ReportExecutor:
    """Runs saved reports against the current data."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.state: Optional[ExecutionState] = None

    def _set_state(self, report: SavedReport, state: ExecutionState) -> None:
        logger.debug("Report %s: %s -> %s", report.id, self.state, state.value)
        self.state = state

    def _where_clauses(self, report: SavedReport, spec: ReportQuerySpec) -> List[ColumnElement]:
        definition = spec.definition
        model = definition.model
        clauses = [
            model.organization_id == report.organization_id,
            build_filter_predicate(definition, list(spec.filters)),
        ]
        if spec.date_range:
            # Inclusive calendar-day range on the record's creation time
            attribute = getattr(model, definition.date_attribute)
            clauses.append(
                attribute.between(
                    datetime.combine(spec.date_range.start, time.min),
                    datetime.combine(spec.date_range.end, time.max),
                )
            )
        return clauses

    def _row_query(self, spec: ReportQuerySpec, where: List[ColumnElement]):
        definition = spec.definition
        selected = [
            definition.attribute(column).label(f"col_{i}")
            for i, column in enumerate(spec.columns)
        ]
        return (
            select(*selected, definition.primary_key.label("row_id"))
            .where(*where)
            .order_by(*build_order_clauses(definition, list(spec.sorting)))
            .offset(spec.window.offset)
            .limit(spec.window.limit)
        )

    def _aggregate_query(self, spec: ReportQuerySpec, where: List[ColumnElement]):
        clause = build_grouping_clause(spec.definition, spec.grouping)
        query = select(*clause.columns).select_from(spec.definition.model).where(*where)
        if clause.group_by:
            query = query.group_by(*clause.group_by).order_by(*clause.group_by)
        return query

    async def _mark_generated(self, report: SavedReport, executed_at: datetime) -> None:
        """Partial update of ``last_generated_at``; ``updated_at`` keeps its value."""
        await self.db.execute(
            update(SavedReport)
            .where(SavedReport.id == report.id)
            .values(last_generated_at=executed_at, updated_at=SavedReport.updated_at)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        set_committed_value(report, "last_generated_at", executed_at)

    async def execute(
        self,
        report: SavedReport,
        overrides: Optional[ReportExecuteRequest] = None,
    ) -> ReportExecutionResult:
        """
        Execute a saved report.

        Only ``date_range``, ``page`` and ``limit`` can be overridden at run
        time. Raises ``ReportValidationError`` before any query is issued when
        the configuration is invalid, and ``DataStoreError`` when the database
        fails.
        """
        overrides = overrides or ReportExecuteRequest()
        self.state = None
        self._set_state(report, ExecutionState.VALIDATING)
        try:
            spec = validate_report_configuration(
                report.report_type,
                report.configuration,
                page=overrides.page or 1,
                limit=overrides.limit,
                date_range=overrides.date_range,
            )
        except ReportError:
            self._set_state(report, ExecutionState.FAILED)
            raise

        self._set_state(report, ExecutionState.QUERYING)
        where = self._where_clauses(report, spec)
        try:
            rows = (await self.db.execute(self._row_query(spec, where))).all()
            aggregate_rows = (await self.db.execute(self._aggregate_query(spec, where))).all()
        except SQLAlchemyError as exc:
            self._set_state(report, ExecutionState.FAILED)
            logger.error(f"Report {report.id} query failed: {exc}")
            raise DataStoreError(f"Report query failed: {exc.__class__.__name__}") from exc

        self._set_state(report, ExecutionState.SHAPING)
        data = [
            {column.field: render_value(row[i]) for i, column in enumerate(spec.columns)}
            for row in rows
        ]
        aggregations, groups, total = shape_aggregates(spec.grouping, aggregate_rows)
        executed_at = datetime.now(timezone.utc)

        if report.id is not None:
            try:
                await self._mark_generated(report, executed_at)
            except SQLAlchemyError as exc:
                self._set_state(report, ExecutionState.FAILED)
                logger.error(f"Failed to record execution of report {report.id}: {exc}")
                raise DataStoreError("Could not record report execution") from exc

        self._set_state(report, ExecutionState.DONE)
        logger.info(
            "Executed report %s (%s): %d rows on page %d, %d total",
            report.id, spec.definition.key.value, len(data), spec.page, total,
        )

        limit = spec.window.limit
        return ReportExecutionResult(
            data=data,
            metadata=ReportResultMetadata(
                report_id=report.id,
                report_name=report.name,
                data_source=spec.definition.key.value,
                columns=[ReportColumnInfo(**column.to_dict()) for column in spec.columns],
                chart_type=spec.chart_type,
                executed_at=executed_at,
                total=total,
            ),
            aggregations=aggregations,
            groups=groups,
            pagination=PageInfo(
                page=spec.page,
                limit=limit,
                total=total,
                total_pages=(total + limit - 1) // limit,
            ),
        )
