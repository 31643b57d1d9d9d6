"""Schemas for theoretical usage runs."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from foodcost.models.theoretical_usage import RunStatus


class MenuItemSaleIn(BaseModel):
    menu_item_id: int
    qty_sold: float
    net_sales: float = 0.0


class TheoreticalUsageRunRequest(BaseModel):
    """Daily sales of one store, as exported by the POS."""
    sales_date: datetime
    source_batch_id: str = Field(..., min_length=1, max_length=100)
    sales: List[MenuItemSaleIn]


class TheoreticalUsageRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    store_id: int
    sales_date: datetime
    source_batch_id: str
    status: RunStatus
    items_processed: int
    total_menu_items_sold: float
    total_revenue: float
    total_theoretical_cost: float
    total_theoretical_cost_wac: float
    completed_at: Optional[datetime] = None
