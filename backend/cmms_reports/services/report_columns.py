"""
Column registry for report data sources.

Each data source is a closed, statically declared set of selectable columns.
Column ``field`` identifiers are the public vocabulary stored in saved report
configurations; ``attribute`` names the mapped ORM attribute behind it.
"""
import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from cmms_reports.core.database import Base
from cmms_reports.core.exceptions import UnknownDataSourceError
from cmms_reports.models.asset import Asset
from cmms_reports.models.inventory import Part
from cmms_reports.models.preventive_maintenance import PreventiveMaintenance
from cmms_reports.models.user import User
from cmms_reports.models.work_order import WorkOrder


class DataSource(str, enum.Enum):
    """Reportable entities."""
    WORK_ORDER = "work_order"
    ASSET = "asset"
    INVENTORY = "inventory"
    PREVENTIVE_MAINTENANCE = "preventive_maintenance"
    USER = "user"


class ColumnType(str, enum.Enum):
    """Semantic column type, drives operator and aggregation compatibility."""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ENUM = "enum"


@dataclass(frozen=True)
class DataSourceColumn:
    field: str
    label: str
    type: ColumnType
    attribute: str

    @property
    def is_numeric(self) -> bool:
        return self.type == ColumnType.NUMBER

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "label": self.label, "type": self.type.value}


@dataclass(frozen=True)
class DataSourceDefinition:
    key: DataSource
    label: str
    model: Type[Base]
    columns: Tuple[DataSourceColumn, ...]
    # Attribute the report date range applies to
    date_attribute: str = "created_at"

    def column(self, field: str) -> Optional[DataSourceColumn]:
        for column in self.columns:
            if column.field == field:
                return column
        return None

    def attribute(self, column: DataSourceColumn):
        """Mapped attribute (usable in SQLAlchemy expressions) for a column."""
        return getattr(self.model, column.attribute)

    @property
    def primary_key(self):
        return self.model.id


def _col(field: str, label: str, type_: ColumnType, attribute: str) -> DataSourceColumn:
    return DataSourceColumn(field=field, label=label, type=type_, attribute=attribute)


S, N, D, B, E = ColumnType.STRING, ColumnType.NUMBER, ColumnType.DATE, ColumnType.BOOLEAN, ColumnType.ENUM

WORK_ORDER_COLUMNS = (
    _col("id", "ID", N, "id"),
    _col("woNumber", "WO Number", S, "wo_number"),
    _col("title", "Title", S, "title"),
    _col("type", "Type", E, "work_type"),
    _col("priority", "Priority", E, "priority"),
    _col("status", "Status", E, "status"),
    _col("riskLevel", "Risk Level", E, "risk_level"),
    _col("description", "Description", S, "description"),
    _col("scheduledDate", "Scheduled Date", D, "scheduled_start"),
    _col("dueDate", "Due Date", D, "due_date"),
    _col("actualStart", "Actual Start", D, "actual_start"),
    _col("actualEnd", "Actual End", D, "actual_end"),
    _col("estimatedCost", "Estimated Cost", N, "estimated_cost"),
    _col("actualCost", "Actual Cost", N, "actual_cost"),
    _col("downtimeHours", "Downtime Hours", N, "downtime_hours"),
    _col("createdAt", "Created At", D, "created_at"),
    _col("updatedAt", "Updated At", D, "updated_at"),
)

ASSET_COLUMNS = (
    _col("id", "ID", N, "id"),
    _col("assetCode", "Asset Code", S, "asset_code"),
    _col("name", "Name", S, "name"),
    _col("type", "Type", S, "asset_type"),
    _col("category", "Category", S, "category"),
    _col("status", "Status", E, "status"),
    _col("criticality", "Criticality", E, "criticality"),
    _col("manufacturer", "Manufacturer", S, "manufacturer"),
    _col("model", "Model", S, "model"),
    _col("serialNumber", "Serial Number", S, "serial_number"),
    _col("purchasePrice", "Purchase Price", N, "purchase_price"),
    _col("currentValue", "Current Value", N, "current_value"),
    _col("installedDate", "Installed Date", D, "installed_date"),
    _col("warrantyExpiry", "Warranty Expiry", D, "warranty_expiry"),
    _col("lastMaintenanceDate", "Last Maintenance", D, "last_maintenance_date"),
    _col("nextMaintenanceDate", "Next Maintenance", D, "next_maintenance_date"),
    _col("totalMaintenanceCost", "Total Maintenance Cost", N, "total_maintenance_cost"),
    _col("isActive", "Is Active", B, "is_active"),
    _col("createdAt", "Created At", D, "created_at"),
)

INVENTORY_COLUMNS = (
    _col("id", "ID", N, "id"),
    _col("sku", "SKU", S, "sku"),
    _col("name", "Name", S, "name"),
    _col("description", "Description", S, "description"),
    _col("category", "Category", E, "category"),
    _col("quantity", "Quantity", N, "quantity"),
    _col("minQuantity", "Min Quantity", N, "min_quantity"),
    _col("maxQuantity", "Max Quantity", N, "max_quantity"),
    _col("unit", "Unit", S, "uom"),
    _col("unitPrice", "Unit Price", N, "unit_price"),
    _col("location", "Location", S, "location"),
    _col("supplier", "Supplier", S, "supplier"),
    _col("manufacturer", "Manufacturer", S, "manufacturer"),
    _col("partNumber", "Part Number", S, "part_number"),
    _col("status", "Status", E, "status"),
    _col("lastRestockDate", "Last Restock", D, "last_restock_date"),
    _col("expiryDate", "Expiry Date", D, "expiry_date"),
    _col("createdAt", "Created At", D, "created_at"),
)

PM_COLUMNS = (
    _col("id", "ID", N, "id"),
    _col("pmNumber", "PM Number", S, "pm_number"),
    _col("name", "Name", S, "name"),
    _col("description", "Description", S, "description"),
    _col("triggerType", "Trigger Type", E, "trigger_type"),
    _col("frequencyType", "Frequency", E, "frequency_type"),
    _col("priority", "Priority", E, "priority"),
    _col("startDate", "Start Date", D, "start_date"),
    _col("nextDueDate", "Next Due Date", D, "next_due_date"),
    _col("lastCompletedDate", "Last Completed", D, "last_completed_date"),
    _col("estimatedHours", "Estimated Hours", N, "estimated_hours"),
    _col("isActive", "Is Active", B, "is_active"),
    _col("completedCount", "Completed Count", N, "completed_count"),
    _col("missedCount", "Missed Count", N, "missed_count"),
    _col("createdAt", "Created At", D, "created_at"),
)

USER_COLUMNS = (
    _col("id", "ID", N, "id"),
    _col("email", "Email", S, "email"),
    _col("firstName", "First Name", S, "first_name"),
    _col("lastName", "Last Name", S, "last_name"),
    _col("phone", "Phone", S, "phone"),
    _col("status", "Status", E, "status"),
    _col("isActive", "Is Active", B, "is_active"),
    _col("emailVerified", "Email Verified", B, "email_verified"),
    _col("twoFactorEnabled", "2FA Enabled", B, "two_factor_enabled"),
    _col("lastLoginAt", "Last Login", D, "last_login_at"),
    _col("createdAt", "Created At", D, "created_at"),
)

DATA_SOURCES: Dict[DataSource, DataSourceDefinition] = {
    DataSource.WORK_ORDER: DataSourceDefinition(
        DataSource.WORK_ORDER, "Work Orders", WorkOrder, WORK_ORDER_COLUMNS
    ),
    DataSource.ASSET: DataSourceDefinition(DataSource.ASSET, "Assets", Asset, ASSET_COLUMNS),
    DataSource.INVENTORY: DataSourceDefinition(DataSource.INVENTORY, "Inventory", Part, INVENTORY_COLUMNS),
    DataSource.PREVENTIVE_MAINTENANCE: DataSourceDefinition(
        DataSource.PREVENTIVE_MAINTENANCE, "PM Schedules", PreventiveMaintenance, PM_COLUMNS
    ),
    DataSource.USER: DataSourceDefinition(DataSource.USER, "Users", User, USER_COLUMNS),
}

# Plural and legacy keys still found in stored configurations
DATA_SOURCE_ALIASES: Dict[str, DataSource] = {
    "work_orders": DataSource.WORK_ORDER,
    "assets": DataSource.ASSET,
    "pm_schedules": DataSource.PREVENTIVE_MAINTENANCE,
    "pm_schedule": DataSource.PREVENTIVE_MAINTENANCE,
    "users": DataSource.USER,
    "custom": DataSource.USER,
}


def resolve_data_source(data_source: Union[DataSource, str, Any]) -> DataSource:
    """Normalize a data source key. Raises UnknownDataSourceError."""
    if isinstance(data_source, DataSource):
        return data_source
    if isinstance(data_source, str):
        key = data_source.strip().lower()
        try:
            return DataSource(key)
        except ValueError:
            pass
        if key in DATA_SOURCE_ALIASES:
            return DATA_SOURCE_ALIASES[key]
    raise UnknownDataSourceError(data_source)


def get_definition(data_source: Union[DataSource, str]) -> DataSourceDefinition:
    return DATA_SOURCES[resolve_data_source(data_source)]


def get_columns(data_source: Union[DataSource, str]) -> List[DataSourceColumn]:
    """Selectable columns for a data source, in declaration order."""
    return list(get_definition(data_source).columns)


def get_column(data_source: Union[DataSource, str], field: str) -> Optional[DataSourceColumn]:
    return get_definition(data_source).column(field)


def render_value(value: Any) -> Any:
    """Plain JSON-friendly form of a stored value (enums by value, decimals as float)."""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    return value


def get_data_sources() -> List[Dict[str, str]]:
    return [
        {"value": definition.key.value, "label": definition.label}
        for definition in DATA_SOURCES.values()
    ]
