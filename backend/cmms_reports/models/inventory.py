"""
Inventory model: stocked spare parts and consumables.
"""
from datetime import date
from typing import Optional
from sqlalchemy import String, Text, Integer, Float, Date, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
import enum

from cmms_reports.core.database import Base
from cmms_reports.models.base import CreatorMixin, TenantMixin


class PartStatus(str, enum.Enum):
    """Part inventory status."""
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"


class PartCategory(str, enum.Enum):
    SPARE_PART = "spare_part"
    CONSUMABLE = "consumable"
    TOOL = "tool"
    SAFETY = "safety"
    OTHER = "other"


class Part(Base, CreatorMixin, TenantMixin):
    """
    Part/inventory item master record.
    """

    __tablename__ = "parts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    part_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    category: Mapped[PartCategory] = mapped_column(
        SQLEnum(PartCategory), default=PartCategory.SPARE_PART, nullable=False
    )
    status: Mapped[PartStatus] = mapped_column(
        SQLEnum(PartStatus), default=PartStatus.IN_STOCK, nullable=False
    )

    # Stock
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uom: Mapped[str] = mapped_column(String(20), default="EA", nullable=False)  # EA, BOX, CASE, etc.
    unit_price: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Sourcing
    supplier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    last_restock_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Part(sku='{self.sku}', name='{self.name}')>"
