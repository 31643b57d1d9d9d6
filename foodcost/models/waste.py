"""Waste log model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from foodcost.db.base import Base


class WasteType(str, Enum):
    """What was wasted."""

    INVENTORY = "inventory"  # Raw inventory item, qty in base units
    RECIPE = "recipe"  # Finished menu item, qty in servings


class WasteLog(Base):
    """A recorded loss event (spoilage, drop, overproduction...)."""

    __tablename__ = "waste_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    waste_type: Mapped[WasteType] = mapped_column(SQLEnum(WasteType), nullable=False)
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=True
    )
    menu_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=True
    )
    qty: Mapped[float] = mapped_column(Float, nullable=False)
    total_value: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    reason_code: Mapped[str] = mapped_column(String(50), nullable=False)  # SPOILED, DAMAGED, OVERPRODUCTION, ...
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    wasted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
