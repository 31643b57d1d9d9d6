"""Physical inventory count models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base


class InventoryCount(Base):
    """A point-in-time physical count for one store."""

    __tablename__ = "inventory_counts"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    count_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    counted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    lines: Mapped[list["InventoryCountLine"]] = relationship(
        "InventoryCountLine", back_populates="count", cascade="all, delete-orphan"
    )


class InventoryCountLine(Base):
    """Counted quantity of one item at one storage location."""

    __tablename__ = "inventory_count_lines"
    __table_args__ = (
        UniqueConstraint(
            "inventory_count_id", "inventory_item_id", "storage_location",
            name="uq_count_item_location",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_count_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_counts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    storage_location: Mapped[str] = mapped_column(String(100), default="main", nullable=False)
    qty: Mapped[float] = mapped_column(Float, default=0, nullable=False)  # base units
    unit_cost: Mapped[float] = mapped_column(Float, default=0, nullable=False)  # price snapshot

    count: Mapped["InventoryCount"] = relationship("InventoryCount", back_populates="lines")
