"""
Report engine error taxonomy.

Every error raised while validating or executing a report configuration is a
``ReportError``. Validation errors name the offending field and value so the
API layer can surface them verbatim.
"""
from typing import Any, Optional


class ReportError(Exception):
    """Base class for report configuration and execution failures."""

    error_code = "REPORT_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "error_code": self.error_code,
            "field": self.field,
        }


class ReportValidationError(ReportError):
    """Configuration rejected before any query is issued."""

    error_code = "REPORT_VALIDATION_ERROR"


class UnknownDataSourceError(ReportValidationError):
    error_code = "UNKNOWN_DATA_SOURCE"

    def __init__(self, data_source: Any):
        super().__init__(f"Unknown data source: {data_source}", value=data_source)
        self.data_source = data_source


class EmptyColumnSelectionError(ReportValidationError):
    error_code = "EMPTY_COLUMN_SELECTION"

    def __init__(self):
        super().__init__("At least one column must be selected")


class UnknownColumnError(ReportValidationError):
    error_code = "UNKNOWN_COLUMN"

    def __init__(self, field: str, data_source: str):
        super().__init__(
            f"Column '{field}' is not available for data source '{data_source}'",
            field=field,
        )


class InvalidFilterFieldError(ReportValidationError):
    error_code = "INVALID_FILTER_FIELD"

    def __init__(self, field: str, data_source: str):
        super().__init__(
            f"Cannot filter on '{field}': not a column of data source '{data_source}'",
            field=field,
        )


class InvalidFilterOperatorError(ReportValidationError):
    error_code = "INVALID_FILTER_OPERATOR"

    def __init__(self, field: str, operator: str, reason: str):
        super().__init__(
            f"Operator '{operator}' is not valid for field '{field}': {reason}",
            field=field,
            value=operator,
        )
        self.operator = operator


class InvalidFilterValueError(ReportValidationError):
    error_code = "INVALID_FILTER_VALUE"

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value {value!r} for field '{field}': {reason}",
            field=field,
            value=value,
        )


class InvalidAggregationFieldError(ReportValidationError):
    error_code = "INVALID_AGGREGATION_FIELD"

    def __init__(self, field: Optional[str], function: str, reason: str):
        super().__init__(
            f"Cannot apply '{function}' to field '{field}': {reason}",
            field=field,
            value=function,
        )
        self.function = function


class InvalidGroupByFieldError(ReportValidationError):
    error_code = "INVALID_GROUP_BY_FIELD"

    def __init__(self, field: str, data_source: str):
        super().__init__(
            f"Cannot group by '{field}': not a column of data source '{data_source}'",
            field=field,
        )


class InvalidSortFieldError(ReportValidationError):
    error_code = "INVALID_SORT_FIELD"

    def __init__(self, field: str, data_source: str):
        super().__init__(
            f"Cannot sort by '{field}': not a column of data source '{data_source}'",
            field=field,
        )


class InvalidPaginationError(ReportValidationError):
    error_code = "INVALID_PAGINATION"

    def __init__(self, field: str, value: Any, reason: str = "must be a positive integer"):
        super().__init__(f"'{field}' {reason}, got {value!r}", field=field, value=value)


class DataStoreError(ReportError):
    """Wraps a failure raised by the database while running a report query."""

    error_code = "DATA_STORE_ERROR"
    status_code = 503
