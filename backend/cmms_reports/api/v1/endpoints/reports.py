"""
Saved report endpoints: report definitions, column discovery and execution.
"""
from typing import Any, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query, status
from fastapi.responses import Response

from cmms_reports.api.deps import CurrentUser, DBSession, Pagination
from cmms_reports.models.saved_report import SavedReport
from cmms_reports.models.user import User
from cmms_reports.schemas.common import ErrorResponse, PaginatedResponse
from cmms_reports.schemas.report import (
    DataSourceInfo,
    ExportFormat,
    ReportColumnInfo,
    ReportExecuteRequest,
    ReportExecutionResult,
    SavedReportCreate,
    SavedReportResponse,
    SavedReportUpdate,
)
from cmms_reports.services.report_columns import get_columns, get_data_sources
from cmms_reports.services.report_executor import ReportExecutor
from cmms_reports.services.report_export import CONTENT_TYPES, ReportExporter, export_filename
from cmms_reports.services.report_service import SavedReportService

router = APIRouter()

REPORT_ERRORS = {400: {"model": ErrorResponse}}


async def _get_visible_report(db: DBSession, report_id: int, user: User) -> SavedReport:
    report = await SavedReportService(db).get(report_id)
    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found",
        )
    if not report.is_visible_to(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this report",
        )
    return report


async def _get_owned_report(db: DBSession, report_id: int, user: User) -> SavedReport:
    report = await _get_visible_report(db, report_id, user)
    if report.created_by_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the creator can modify this report",
        )
    return report


@router.get("", response_model=PaginatedResponse[SavedReportResponse])
async def list_reports(
    db: DBSession,
    current_user: CurrentUser,
    pagination: Pagination,
    data_source: Optional[str] = Query(None, description="Filter by data source"),
    search: Optional[str] = Query(None, description="Search by report name"),
) -> Any:
    """
    List saved reports visible to the caller: their own plus public reports
    of their organization, most recently updated first.
    """
    reports, total = await SavedReportService(db).list_for_user(
        current_user,
        page=pagination.page,
        page_size=pagination.page_size,
        data_source=data_source,
        search=search,
    )
    return PaginatedResponse(
        items=[SavedReportResponse.model_validate(report) for report in reports],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
        pages=(total + pagination.page_size - 1) // pagination.page_size,
    )


@router.post(
    "", response_model=SavedReportResponse, status_code=status.HTTP_201_CREATED, responses=REPORT_ERRORS,
)
async def create_report(
    db: DBSession,
    current_user: CurrentUser,
    report_in: SavedReportCreate,
) -> Any:
    """
    Create a saved report. The configuration is validated against the
    columns of its data source.
    """
    return await SavedReportService(db).create(report_in, current_user)


@router.get("/data-sources", response_model=List[DataSourceInfo])
async def list_data_sources(current_user: CurrentUser) -> Any:
    """List the data sources reports can be built against."""
    return get_data_sources()


@router.get("/columns/{data_source}", response_model=List[ReportColumnInfo])
async def list_data_source_columns(data_source: str, current_user: CurrentUser) -> Any:
    """List selectable columns of a data source."""
    return [column.to_dict() for column in get_columns(data_source)]


@router.get("/{report_id}", response_model=SavedReportResponse)
async def get_report(
    db: DBSession,
    current_user: CurrentUser,
    report_id: int,
) -> Any:
    return await _get_visible_report(db, report_id, current_user)


@router.get("/{report_id}/columns", response_model=List[ReportColumnInfo])
async def get_report_columns(
    db: DBSession,
    current_user: CurrentUser,
    report_id: int,
) -> Any:
    """Columns available to the report's data source."""
    report = await _get_visible_report(db, report_id, current_user)
    return [column.to_dict() for column in get_columns(report.report_type)]


@router.patch("/{report_id}", response_model=SavedReportResponse, responses=REPORT_ERRORS)
async def update_report(
    db: DBSession,
    current_user: CurrentUser,
    report_id: int,
    report_in: SavedReportUpdate,
) -> Any:
    """
    Update a saved report. Creator only.
    """
    report = await _get_owned_report(db, report_id, current_user)
    return await SavedReportService(db).update(report, report_in, current_user)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    db: DBSession,
    current_user: CurrentUser,
    report_id: int,
) -> Response:
    """
    Delete a saved report. Creator only.
    """
    report = await _get_owned_report(db, report_id, current_user)
    await SavedReportService(db).delete(report, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{report_id}/execute",
    response_model=ReportExecutionResult,
    responses={**REPORT_ERRORS, 503: {"model": ErrorResponse}},
)
async def execute_report(
    db: DBSession,
    current_user: CurrentUser,
    report_id: int,
    overrides: Optional[ReportExecuteRequest] = Body(None),
) -> Any:
    """
    Execute a saved report against current data.

    Only `date_range`, `page` and `limit` can be overridden. With a `format`
    other than json the result is returned as a file download.
    """
    report = await _get_visible_report(db, report_id, current_user)
    overrides = overrides or ReportExecuteRequest()

    result = await ReportExecutor(db).execute(report, overrides)
    if overrides.format == ExportFormat.JSON:
        return result

    content = ReportExporter().export(result, overrides.format)
    filename = export_filename(result, overrides.format)
    return Response(
        content=content,
        media_type=CONTENT_TYPES[overrides.format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
