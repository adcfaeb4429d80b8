"""
Pydantic schemas for API request/response validation.
"""
from cmms_reports.schemas.common import PaginatedResponse, ErrorResponse
from cmms_reports.schemas.report import (
    ReportFilter, ReportSorting, ReportAggregation, DateRange, ReportConfiguration,
    SavedReportCreate, SavedReportUpdate, SavedReportResponse,
    ReportExecuteRequest, ReportExecutionResult,
)

__all__ = [
    "PaginatedResponse",
    "ErrorResponse",
    "ReportFilter",
    "ReportSorting",
    "ReportAggregation",
    "DateRange",
    "ReportConfiguration",
    "SavedReportCreate",
    "SavedReportUpdate",
    "SavedReportResponse",
    "ReportExecuteRequest",
    "ReportExecutionResult",
]
