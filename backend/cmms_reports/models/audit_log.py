"""
Audit Log model for tracking changes to saved reports.
"""
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Text, Integer, ForeignKey, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cmms_reports.core.database import Base

if TYPE_CHECKING:
    from cmms_reports.models.user import User


class AuditLog(Base):
    """
    Audit trail entry. Report definitions are shared within an organization,
    so every create, update and delete is recorded here.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # What entity was affected
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)  # e.g., "SavedReport"
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    entity_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # Name at time of action

    # CREATE, UPDATE, DELETE
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Who performed the action
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )
    user_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # Denormalized for history

    organization_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=True, index=True
    )

    # Snapshot of the changed fields ({"field": {"old": ..., "new": ...}} for updates)
    changes: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Relationships
    user: Mapped[Optional["User"]] = relationship("User", foreign_keys=[user_id])

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, entity={self.entity_type}:{self.entity_id}, action={self.action})>"
