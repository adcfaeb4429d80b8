"""
Saved report definitions.
"""
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Boolean, Text, Integer, ForeignKey, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from cmms_reports.core.database import Base
from cmms_reports.models.base import CreatorMixin, TenantMixin

if TYPE_CHECKING:
    from cmms_reports.models.organization import Organization
    from cmms_reports.models.user import User


class ReportScheduleFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class SavedReport(Base, CreatorMixin, TenantMixin):
    """
    A named report configuration that can be re-executed on demand.

    ``report_type`` holds the data source key (see ``services.report_columns``).
    ``configuration`` is the JSON document validated by
    ``schemas.report.ReportConfiguration``.
    """

    __tablename__ = "saved_reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    configuration: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Shared within the organization when public
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Delivery schedule
    is_scheduled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    schedule_frequency: Mapped[Optional[ReportScheduleFrequency]] = mapped_column(
        SQLEnum(ReportScheduleFrequency), nullable=True
    )
    schedule_recipients: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    schedule_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)  # HH:MM
    schedule_day_of_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 0-6
    schedule_day_of_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-31

    last_generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", back_populates="saved_reports")
    created_by: Mapped[Optional["User"]] = relationship("User", foreign_keys="SavedReport.created_by_id")

    def is_visible_to(self, user: "User") -> bool:
        """Owners always see their reports; public reports are visible organization-wide."""
        if self.created_by_id == user.id:
            return True
        return self.is_public and self.organization_id == user.organization_id

    def __repr__(self) -> str:
        return f"<SavedReport(id={self.id}, name='{self.name}', report_type='{self.report_type}')>"
