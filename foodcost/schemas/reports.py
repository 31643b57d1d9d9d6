"""Schemas for usage, on-hand, variance and recipe cost reports."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


# ============== Ledger ==============

class UsageRowResponse(BaseModel):
    """Actual usage of one item between two counts."""
    model_config = ConfigDict(from_attributes=True)

    inventory_item_id: int
    previous_qty: float
    received_qty: float
    transferred_out_qty: float
    current_qty: float
    usage: float
    is_negative_usage: bool


class UsageReport(BaseModel):
    store_id: int
    previous_count_id: int
    current_count_id: int
    rows: List[UsageRowResponse]


class OnHandRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inventory_item_id: int
    count_qty: float
    received_qty: float
    transferred_in_qty: float
    waste_qty: float
    theoretical_usage_qty: float
    transferred_out_qty: float
    on_hand: float
    on_hand_display: float


class OnHandReport(BaseModel):
    store_id: int
    rows: List[OnHandRowResponse]


# ============== Variance ==============

class VarianceRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inventory_item_id: int
    actual_qty: float
    theoretical_qty: float
    actual_cost: float
    theoretical_cost: float
    variance_qty: float
    variance_cost: float
    variance_percent: Optional[float] = None


class VarianceReportResponse(BaseModel):
    """Variance summary; negative_variance_cost is reported as a magnitude."""
    model_config = ConfigDict(from_attributes=True)

    rows: List[VarianceRowResponse]
    total_actual_cost: float
    total_theoretical_cost: float
    positive_variance_cost: float
    negative_variance_cost: float
    net_variance_cost: float


# ============== Recipe cost ==============

class IngredientUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inventory_item_id: int
    required_qty_base_unit: float
    base_unit_id: int
    cost_at_sale: float


class RecipeCostResponse(BaseModel):
    recipe_id: int
    qty: float
    total_cost: float
    ingredients: List[IngredientUsageResponse]
    skipped_cycles: List[List[int]] = []
