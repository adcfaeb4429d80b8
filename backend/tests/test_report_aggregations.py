"""
Test aggregation and grouping translation
"""
import pytest
from sqlalchemy import select

from cmms_reports.core.exceptions import InvalidAggregationFieldError, InvalidGroupByFieldError
from cmms_reports.models.work_order import WorkOrder
from cmms_reports.schemas.report import AggregationFunction, ReportAggregation
from cmms_reports.services.report_aggregations import (
    build_grouping,
    group_label,
    shape_aggregates,
    validate_grouping,
)


def _agg(function, field=None):
    return ReportAggregation(function=function, field=field)


class TestGroupingValidation:
    """Test group-by and aggregation request validation."""

    def test_count_ignores_field(self):
        """Test that count needs no field and accepts any."""
        spec = validate_grouping(
            "work_order", [], [_agg("count"), _agg("count", "status"), _agg("count", "notAColumn")]
        )

        assert [a.key for a in spec.aggregations] == ["count", "count_status", "count_notAColumn"]
        assert all(a.column is None for a in spec.aggregations)

    def test_aggregation_keys(self):
        """Test synthetic aggregation keys."""
        spec = validate_grouping(
            "work_order", [], [_agg("sum", "actualCost"), _agg("AVG", "downtimeHours")]
        )

        assert [a.key for a in spec.aggregations] == ["sum_actualCost", "avg_downtimeHours"]
        assert spec.aggregations[1].function == AggregationFunction.AVG

    def test_duplicate_aggregations_collapse(self):
        """Test that the same aggregation requested twice is computed once."""
        spec = validate_grouping("work_order", [], [_agg("sum", "actualCost"), _agg("sum", "actualCost")])
        assert len(spec.aggregations) == 1

    @pytest.mark.parametrize("function", ["sum", "avg", "min", "max"])
    def test_numeric_functions_reject_non_numeric_field(self, function):
        """Test that numeric functions need a number column."""
        with pytest.raises(InvalidAggregationFieldError) as exc_info:
            validate_grouping("work_order", [], [_agg(function, "title")])

        assert exc_info.value.field == "title"
        assert exc_info.value.function == function

    def test_unknown_aggregation_field(self):
        """Test that a non-count function on an unknown field fails."""
        with pytest.raises(InvalidAggregationFieldError):
            validate_grouping("work_order", [], [_agg("sum", "totalCost")])

    def test_missing_aggregation_field(self):
        """Test that a non-count function without a field fails."""
        with pytest.raises(InvalidAggregationFieldError):
            validate_grouping("work_order", [], [_agg("max")])

    def test_unknown_function(self):
        """Test that only count/sum/avg/min/max are accepted."""
        with pytest.raises(InvalidAggregationFieldError):
            validate_grouping("work_order", [], [_agg("median", "actualCost")])

    def test_unknown_group_by_field(self):
        """Test that group-by fields must exist."""
        with pytest.raises(InvalidGroupByFieldError) as exc_info:
            validate_grouping("work_order", ["site"], [])

        assert exc_info.value.field == "site"

    def test_aggregating_a_group_by_key(self):
        """Test that a non-count aggregation cannot target a group-by key."""
        with pytest.raises(InvalidAggregationFieldError):
            validate_grouping("work_order", ["actualCost"], [_agg("sum", "actualCost")])

    def test_group_columns(self):
        """Test grouping spec construction."""
        spec = validate_grouping("work_order", ["status", "priority", "status"], [_agg("count")])

        assert spec.is_grouped
        assert [column.field for column in spec.group_columns] == ["status", "priority"]

    def test_group_label(self):
        """Test labels of grouped aggregations."""
        assert group_label(["completed"]) == "completed"
        assert group_label(["completed", None]) == "completed / (none)"

    @pytest.mark.parametrize(
        "first,second",
        [
            ([None], ["(none)"]),
            (["a / b", "c"], ["a", "b / c"]),
            (["a\\", "b"], ["a\\ / b"]),
            (["\\(none)"], ["(none)"]),
        ],
    )
    def test_group_labels_are_distinct(self, first, second):
        """Test that different group values never share a label."""
        assert group_label(first) != group_label(second)


class TestAggregateQueries:
    """Test aggregate queries against seeded work orders."""

    async def _run(self, db_session, organization, group_by, aggregations):
        spec = validate_grouping("work_order", group_by, aggregations)
        clause = build_grouping("work_order", group_by, aggregations)
        query = (
            select(*clause.columns)
            .select_from(WorkOrder)
            .where(WorkOrder.organization_id == organization.id)
        )
        if clause.group_by:
            query = query.group_by(*clause.group_by)
        rows = (await db_session.execute(query)).all()
        return shape_aggregates(spec, rows)

    @pytest.mark.asyncio
    async def test_ungrouped_aggregations(self, db_session, organization, work_orders):
        """Test whole-set aggregation values."""
        aggregations, groups, total = await self._run(
            db_session,
            organization,
            [],
            [
                _agg("count"),
                _agg("sum", "actualCost"),
                _agg("avg", "actualCost"),
                _agg("min", "actualCost"),
                _agg("max", "actualCost"),
            ],
        )

        assert total == 25
        assert groups is None
        assert aggregations == {
            "count": 25,
            "sum_actualCost": 1200.0,
            "avg_actualCost": 120.0,
            "min_actualCost": 10.0,
            "max_actualCost": 230.0,
        }

    @pytest.mark.asyncio
    async def test_no_aggregations_requested(self, db_session, organization, work_orders):
        """Test that the row count is still computed."""
        aggregations, groups, total = await self._run(db_session, organization, [], [])

        assert aggregations is None
        assert groups is None
        assert total == 25

    @pytest.mark.asyncio
    async def test_empty_set(self, db_session, organization):
        """Test count is 0 and other functions are null over no rows."""
        aggregations, groups, total = await self._run(
            db_session, organization, [], [_agg("count"), _agg("sum", "actualCost"), _agg("min", "actualCost")]
        )

        assert total == 0
        assert aggregations == {"count": 0, "sum_actualCost": None, "min_actualCost": None}

    @pytest.mark.asyncio
    async def test_grouped_by_status(self, db_session, organization, work_orders):
        """Test per-group aggregation values."""
        aggregations, groups, total = await self._run(
            db_session, organization, ["status"], [_agg("sum", "actualCost"), _agg("count")]
        )

        assert total == 25
        assert aggregations == {
            "open": {"sum_actualCost": None, "count": 5},
            "completed": {"sum_actualCost": 1200.0, "count": 10},
            "in_progress": {"sum_actualCost": None, "count": 5},
            "cancelled": {"sum_actualCost": None, "count": 5},
        }
        by_status = {group.group["status"]: group for group in groups}
        assert by_status["completed"].row_count == 10
        assert "closed" not in by_status

    @pytest.mark.asyncio
    async def test_null_group_and_none_text_stay_separate(self, db_session, organization):
        """Test that a null group and the text "(none)" are reported apart."""
        db_session.add_all([
            WorkOrder(
                organization_id=organization.id,
                wo_number="WO-0101",
                title="Belt check",
                description="(none)",
                actual_cost=5.0,
            ),
            WorkOrder(
                organization_id=organization.id,
                wo_number="WO-0102",
                title="Filter swap",
                description=None,
                actual_cost=7.0,
            ),
        ])
        await db_session.commit()

        aggregations, groups, total = await self._run(
            db_session, organization, ["description"], [_agg("sum", "actualCost")]
        )

        assert total == 2
        assert len(groups) == 2
        assert aggregations == {
            "(none)": {"sum_actualCost": 7.0},
            "\\(none)": {"sum_actualCost": 5.0},
        }
        by_description = {group.group["description"]: group.values for group in groups}
        assert by_description == {None: {"sum_actualCost": 7.0}, "(none)": {"sum_actualCost": 5.0}}
