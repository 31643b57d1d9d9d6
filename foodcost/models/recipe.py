"""Recipe (Bill of Materials) models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Enum as SQLEnum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcost.db.base import Base, TimestampMixin


class ComponentType(str, Enum):
    """What a recipe component points at."""

    INVENTORY_ITEM = "inventory_item"
    RECIPE = "recipe"


class Recipe(Base, TimestampMixin):
    """A named recipe. Its components may be raw items or other recipes."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    yield_qty: Mapped[float] = mapped_column(Float, default=1, nullable=False)
    yield_unit_id: Mapped[Optional[int]] = mapped_column(ForeignKey("units.id"), nullable=True)
    can_be_ingredient: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    components: Mapped[list["RecipeComponent"]] = relationship(
        "RecipeComponent",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeComponent.sort_order",
    )


class RecipeComponent(Base):
    """A single line of a recipe.

    ``component_id`` references either ``inventory_items.id`` or ``recipes.id``
    depending on ``component_type``; ``qty`` is expressed in ``unit_id`` per one
    unit of the parent recipe.
    """

    __tablename__ = "recipe_components"

    id: Mapped[int] = mapped_column(primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    component_type: Mapped[ComponentType] = mapped_column(SQLEnum(ComponentType), nullable=False)
    component_id: Mapped[int] = mapped_column(Integer, nullable=False)
    qty: Mapped[float] = mapped_column(Float, nullable=False)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="components")


class MenuItem(Base, TimestampMixin):
    """A sellable menu item, optionally linked to the recipe it is made from."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    plu_sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    recipe_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
