"""
Work Order model.
"""
from datetime import datetime, date
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Text, Integer, ForeignKey, Float, Date, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from cmms_reports.core.database import Base
from cmms_reports.models.base import CreatorMixin, TenantMixin

if TYPE_CHECKING:
    from cmms_reports.models.asset import Asset
    from cmms_reports.models.user import User


class WorkOrderType(str, enum.Enum):
    """Type of work order."""
    CORRECTIVE = "corrective"  # Reactive/breakdown maintenance
    PREVENTIVE = "preventive"  # Scheduled PM
    PREDICTIVE = "predictive"  # Condition-based
    EMERGENCY = "emergency"  # Urgent breakdown
    INSPECTION = "inspection"


class WorkOrderStatus(str, enum.Enum):
    """Work order lifecycle status."""
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class WorkOrderPriority(str, enum.Enum):
    """Work order priority level."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class WorkOrder(Base, CreatorMixin, TenantMixin):
    """
    Work Order represents a maintenance task to be performed.
    """

    __tablename__ = "work_orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    wo_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    work_type: Mapped[WorkOrderType] = mapped_column(
        SQLEnum(WorkOrderType), default=WorkOrderType.CORRECTIVE, nullable=False
    )
    status: Mapped[WorkOrderStatus] = mapped_column(
        SQLEnum(WorkOrderStatus), default=WorkOrderStatus.OPEN, nullable=False, index=True
    )
    priority: Mapped[WorkOrderPriority] = mapped_column(
        SQLEnum(WorkOrderPriority), default=WorkOrderPriority.MEDIUM, nullable=False
    )
    risk_level: Mapped[Optional[RiskLevel]] = mapped_column(SQLEnum(RiskLevel), nullable=True)

    # Asset and assignment
    asset_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("assets.id"), nullable=True, index=True
    )
    assigned_to_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )

    # Scheduling
    scheduled_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Actual times
    actual_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Costs
    estimated_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    actual_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    downtime_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Relationships
    asset: Mapped[Optional["Asset"]] = relationship("Asset", foreign_keys=[asset_id])
    assigned_to: Mapped[Optional["User"]] = relationship("User", foreign_keys=[assigned_to_id])

    def __repr__(self) -> str:
        return f"<WorkOrder(id={self.id}, wo_number='{self.wo_number}', status='{self.status}')>"
