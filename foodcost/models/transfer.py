"""Inter-store transfer models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base


class TransferOrder(Base):
    """Stock movement between two stores of the same company."""

    __tablename__ = "transfer_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    to_store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)  # pending, in_transit, completed
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list["TransferOrderLine"]] = relationship(
        "TransferOrderLine", back_populates="transfer_order", cascade="all, delete-orphan"
    )


class TransferOrderLine(Base):
    """Per-item quantities on a transfer order (base units)."""

    __tablename__ = "transfer_order_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_order_id: Mapped[int] = mapped_column(
        ForeignKey("transfer_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    requested_qty: Mapped[float] = mapped_column(Float, nullable=False)
    shipped_qty: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    transfer_order: Mapped["TransferOrder"] = relationship("TransferOrder", back_populates="lines")
