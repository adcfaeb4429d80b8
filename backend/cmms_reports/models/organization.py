"""
Organization model for multi-tenancy support.
"""
from typing import List, TYPE_CHECKING
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cmms_reports.core.database import Base
from cmms_reports.models.base import TimestampMixin

if TYPE_CHECKING:
    from cmms_reports.models.user import User
    from cmms_reports.models.saved_report import SavedReport


class Organization(Base, TimestampMixin):
    """
    Organization represents a tenant.
    Report data sources and saved reports are isolated by organization.
    """

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    timezone: Mapped[str] = mapped_column(String(50), default="UTC", nullable=False)

    # Relationships
    users: Mapped[List["User"]] = relationship("User", back_populates="organization")
    saved_reports: Mapped[List["SavedReport"]] = relationship("SavedReport", back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, code='{self.code}', name='{self.name}')>"
