"""
Asset model.
"""
from datetime import date
from typing import Optional
from sqlalchemy import String, Boolean, Text, Float, Date, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
import enum

from cmms_reports.core.database import Base
from cmms_reports.models.base import CreatorMixin, TenantMixin


class AssetStatus(str, enum.Enum):
    """Asset operational status."""
    OPERATIONAL = "operational"
    UNDER_MAINTENANCE = "under_maintenance"
    OUT_OF_SERVICE = "out_of_service"
    STANDBY = "standby"
    DECOMMISSIONED = "decommissioned"


class AssetCriticality(str, enum.Enum):
    """Asset criticality for prioritization."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Asset(Base, CreatorMixin, TenantMixin):
    """
    Asset represents equipment, machinery, or any maintainable item.
    """

    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    asset_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    asset_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    # Status
    status: Mapped[AssetStatus] = mapped_column(
        SQLEnum(AssetStatus), default=AssetStatus.OPERATIONAL, nullable=False
    )
    criticality: Mapped[AssetCriticality] = mapped_column(
        SQLEnum(AssetCriticality), default=AssetCriticality.MEDIUM, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Financial
    purchase_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    current_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_maintenance_cost: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    # Lifecycle dates
    installed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    warranty_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Asset(id={self.id}, asset_code='{self.asset_code}', name='{self.name}')>"
