"""Theoretical Food Cost (TFC) models: usage runs and their ingredient lines."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base


class RunStatus(str, Enum):
    """Lifecycle of a theoretical usage run: processing -> completed | failed."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TheoreticalUsageRun(Base):
    """One recipe-explosion pass over a store's sales for one date."""

    __tablename__ = "theoretical_usage_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sales_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    source_batch_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[RunStatus] = mapped_column(
        SQLEnum(RunStatus), default=RunStatus.PROCESSING, nullable=False
    )
    items_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_menu_items_sold: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_revenue: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_theoretical_cost: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_theoretical_cost_wac: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    error_log: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list["TheoreticalUsageLine"]] = relationship(
        "TheoreticalUsageLine", back_populates="run", cascade="all, delete-orphan"
    )


class TheoreticalUsageLine(Base):
    """Aggregated base-unit requirement and cost of one inventory item in a run."""

    __tablename__ = "theoretical_usage_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    run_id: Mapped[int] = mapped_column(
        ForeignKey("theoretical_usage_runs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    required_qty_base_unit: Mapped[float] = mapped_column(Float, nullable=False)
    base_unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    cost_at_sale: Mapped[float] = mapped_column(Float, nullable=False)
    cost_at_sale_wac: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    source_menu_items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    run: Mapped["TheoreticalUsageRun"] = relationship("TheoreticalUsageRun", back_populates="lines")
