"""Vendor order guide models (imported catalog awaiting review)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base


class OrderGuideStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"


class LineMatchStatus(str, Enum):
    """What approval will do with a line."""

    AUTO_MATCHED = "auto_matched"  # high confidence, links automatically
    NEEDS_REVIEW = "needs_review"  # medium/low confidence
    NEW_ITEM = "new_item"  # no usable match


class OrderGuide(Base):
    """An uploaded vendor order guide."""

    __tablename__ = "order_guides"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    row_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[OrderGuideStatus] = mapped_column(
        SQLEnum(OrderGuideStatus), default=OrderGuideStatus.PENDING_REVIEW, nullable=False
    )
    source: Mapped[str] = mapped_column(String(20), default="csv", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    lines: Mapped[list["OrderGuideLine"]] = relationship(
        "OrderGuideLine", back_populates="order_guide", cascade="all, delete-orphan"
    )


class OrderGuideLine(Base):
    """One vendor product row together with its match outcome."""

    __tablename__ = "order_guide_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_guide_id: Mapped[int] = mapped_column(
        ForeignKey("order_guides.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_sku: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    uom: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    case_size: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    match_status: Mapped[LineMatchStatus] = mapped_column(SQLEnum(LineMatchStatus), nullable=False)
    matched_inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True
    )
    match_confidence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # 0-100

    order_guide: Mapped["OrderGuide"] = relationship("OrderGuide", back_populates="lines")
