"""Catalog models: units, conversions, categories, inventory items and vendor items."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base, TimestampMixin


class Unit(Base):
    """Unit of measure. Global reference data, not tenant-scoped."""

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    abbreviation: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)  # lb, oz, g, ml, ea
    kind: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # weight, volume, count


class UnitConversion(Base):
    """Directed conversion edge: to_qty = from_qty * conversion_factor."""

    __tablename__ = "unit_conversions"
    __table_args__ = (
        UniqueConstraint("from_unit_id", "to_unit_id", name="uq_unit_conversion_pair"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    from_unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)
    to_unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)
    conversion_factor: Mapped[float] = mapped_column(Float, nullable=False)


class Category(Base):
    """Inventory category (e.g. "Dairy", "Walk-in Cooler")."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class InventoryItem(Base, TimestampMixin):
    """Company-level inventory catalog entry. Quantities are tracked per store."""

    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    plu_sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)  # base unit
    case_size: Mapped[float] = mapped_column(Float, default=1, nullable=False)
    price_per_unit: Mapped[float] = mapped_column(Float, default=0, nullable=False)  # last cost per base unit
    avg_cost_per_unit: Mapped[float] = mapped_column(Float, default=0, nullable=False)  # weighted average cost
    yield_percent: Mapped[float] = mapped_column(Float, default=95, nullable=False)  # usable % after prep loss
    par_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reorder_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped[Optional["Category"]] = relationship("Category")
    vendor_items: Mapped[list["VendorItem"]] = relationship("VendorItem", back_populates="inventory_item")


class Vendor(Base, TimestampMixin):
    """Supplier of vendor items."""

    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_key: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # sysco, gfs, usfoods, ...


class VendorItem(Base):
    """A vendor's orderable product, mapped to exactly one inventory item."""

    __tablename__ = "vendor_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    vendor_id: Mapped[int] = mapped_column(
        ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    purchase_unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    case_size: Mapped[float] = mapped_column(Float, default=1, nullable=False)
    inner_pack_size: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    inventory_item: Mapped["InventoryItem"] = relationship("InventoryItem", back_populates="vendor_items")
    vendor: Mapped["Vendor"] = relationship("Vendor")
