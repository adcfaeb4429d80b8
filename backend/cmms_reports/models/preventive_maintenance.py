"""
Preventive Maintenance schedule model.
"""
from datetime import date
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Boolean, Text, Integer, ForeignKey, Float, Date, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from cmms_reports.core.database import Base
from cmms_reports.models.base import CreatorMixin, TenantMixin

if TYPE_CHECKING:
    from cmms_reports.models.asset import Asset


class PMTriggerType(str, enum.Enum):
    """What triggers PM work order generation."""
    TIME = "time"  # Calendar-based
    METER = "meter"  # Usage-based
    CONDITION = "condition"  # Threshold-based


class PMFrequencyType(str, enum.Enum):
    """Calendar frequency for time-based PM scheduling."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PMPriority(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PreventiveMaintenance(Base, CreatorMixin, TenantMixin):
    """
    Preventive Maintenance schedule definition.
    """

    __tablename__ = "preventive_maintenance"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    pm_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    asset_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("assets.id"), nullable=True, index=True
    )

    # Trigger configuration
    trigger_type: Mapped[PMTriggerType] = mapped_column(
        SQLEnum(PMTriggerType), default=PMTriggerType.TIME, nullable=False
    )
    frequency_type: Mapped[Optional[PMFrequencyType]] = mapped_column(
        SQLEnum(PMFrequencyType), nullable=True
    )
    priority: Mapped[PMPriority] = mapped_column(
        SQLEnum(PMPriority), default=PMPriority.MEDIUM, nullable=False
    )

    # Schedule tracking
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    last_completed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Compliance counters
    completed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    missed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    asset: Mapped[Optional["Asset"]] = relationship("Asset", foreign_keys=[asset_id])

    def __repr__(self) -> str:
        return f"<PreventiveMaintenance(pm_number='{self.pm_number}', name='{self.name}')>"
