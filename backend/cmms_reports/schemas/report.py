"""
Report schemas: saved report configuration documents and execution results.
"""
import enum
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cmms_reports.models.saved_report import ReportScheduleFrequency


class FilterOperator(str, enum.Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    IN = "in"
    BETWEEN = "between"


class AggregationFunction(str, enum.Enum):
    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class ChartType(str, enum.Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    TABLE = "table"


class ExportFormat(str, enum.Enum):
    JSON = "json"
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"


class ReportFilter(BaseModel):
    """Single filter clause. Operator and value are checked by the filter evaluator."""
    field: str
    operator: str
    value: Any = None


class ReportSorting(BaseModel):
    field: str
    order: SortOrder = SortOrder.ASC

    @field_validator("order", mode="before")
    @classmethod
    def lowercase_order(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class ReportAggregation(BaseModel):
    """Aggregation request; ``field`` is ignored for ``count``."""
    field: Optional[str] = None
    function: str


class DateRange(BaseModel):
    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("date_range.start must not be after date_range.end")
        return self


class ReportConfiguration(BaseModel):
    """Stored configuration document of a saved report."""
    columns: List[str]
    filters: List[ReportFilter] = Field(default_factory=list)
    sorting: List[ReportSorting] = Field(default_factory=list)
    group_by: List[str] = Field(default_factory=list)
    aggregations: List[ReportAggregation] = Field(default_factory=list)
    chart_type: Optional[ChartType] = None
    date_range: Optional[DateRange] = None


class ReportConfigurationUpdate(BaseModel):
    """Partial configuration update; provided keys replace the stored ones."""
    columns: Optional[List[str]] = None
    filters: Optional[List[ReportFilter]] = None
    sorting: Optional[List[ReportSorting]] = None
    group_by: Optional[List[str]] = None
    aggregations: Optional[List[ReportAggregation]] = None
    chart_type: Optional[ChartType] = None
    date_range: Optional[DateRange] = None


class ReportScheduleFields(BaseModel):
    is_scheduled: bool = False
    schedule_frequency: Optional[ReportScheduleFrequency] = None
    schedule_recipients: Optional[List[str]] = None
    schedule_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    schedule_day_of_week: Optional[int] = Field(None, ge=0, le=6)
    schedule_day_of_month: Optional[int] = Field(None, ge=1, le=31)


class SavedReportCreate(ReportScheduleFields):
    """Saved report creation schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    data_source: str
    configuration: ReportConfiguration
    is_public: bool = False

    @model_validator(mode="after")
    def check_schedule(self) -> "SavedReportCreate":
        if self.is_scheduled and self.schedule_frequency is None:
            raise ValueError("schedule_frequency is required for scheduled reports")
        return self


class SavedReportUpdate(BaseModel):
    """Saved report update schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    configuration: Optional[ReportConfigurationUpdate] = None
    is_public: Optional[bool] = None
    is_scheduled: Optional[bool] = None
    schedule_frequency: Optional[ReportScheduleFrequency] = None
    schedule_recipients: Optional[List[str]] = None
    schedule_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    schedule_day_of_week: Optional[int] = Field(None, ge=0, le=6)
    schedule_day_of_month: Optional[int] = Field(None, ge=1, le=31)

    @model_validator(mode="after")
    def check_required_not_null(self) -> "SavedReportUpdate":
        # Columns that cannot be cleared
        for field in ("name", "is_public", "is_scheduled"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class SavedReportResponse(ReportScheduleFields):
    """Saved report response schema."""
    id: int
    name: str
    description: Optional[str] = None
    report_type: str
    configuration: ReportConfiguration
    is_public: bool
    created_by_id: Optional[int] = None
    organization_id: int
    created_at: datetime
    updated_at: datetime
    last_generated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportExecuteRequest(BaseModel):
    """Runtime overrides. Columns, filters, sorting and aggregations are fixed at save time."""
    date_range: Optional[DateRange] = None
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    format: ExportFormat = ExportFormat.JSON

    model_config = ConfigDict(extra="forbid")


class DataSourceInfo(BaseModel):
    value: str
    label: str


class ReportColumnInfo(BaseModel):
    field: str
    label: str
    type: str


class ReportResultMetadata(BaseModel):
    report_id: Optional[int] = None
    report_name: str
    data_source: str
    columns: List[ReportColumnInfo]
    chart_type: Optional[ChartType] = None
    executed_at: datetime
    total: int


class AggregationGroup(BaseModel):
    """Aggregate values for one group-by combination."""
    group: Dict[str, Any]
    row_count: int
    values: Dict[str, Any]


class PageInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ReportExecutionResult(BaseModel):
    data: List[Dict[str, Any]]
    metadata: ReportResultMetadata
    aggregations: Optional[Dict[str, Any]] = None
    groups: Optional[List[AggregationGroup]] = None
    pagination: PageInfo
