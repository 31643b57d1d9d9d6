"""Purchasing models: purchase orders and goods receipts."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base


class PurchaseOrder(Base):
    """Order placed with a vendor for delivery to a store."""

    __tablename__ = "purchase_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)  # pending, ordered, received
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expected_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class Receipt(Base):
    """Goods-receiving event against a purchase order."""

    __tablename__ = "receipts"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purchase_order_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)  # draft, completed, locked
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    purchase_order: Mapped["PurchaseOrder"] = relationship("PurchaseOrder")
    lines: Mapped[list["ReceiptLine"]] = relationship(
        "ReceiptLine", back_populates="receipt", cascade="all, delete-orphan"
    )


class ReceiptLine(Base):
    """Received quantity of one vendor item, in the inventory item's base unit."""

    __tablename__ = "receipt_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_id: Mapped[int] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_item_id: Mapped[int] = mapped_column(
        ForeignKey("vendor_items.id"), nullable=False, index=True
    )
    received_qty: Mapped[float] = mapped_column(Float, nullable=False)
    price_each: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    receipt: Mapped["Receipt"] = relationship("Receipt", back_populates="lines")
    vendor_item: Mapped["VendorItem"] = relationship("VendorItem")
