"""Typed records exchanged between the costing services and storage.

Services never see ORM rows; storage maps rows into these immutable records so
the algorithms can run on pre-fetched snapshots (and across worker threads)
without touching a database session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from foodcost.models.order_guide import LineMatchStatus, OrderGuideStatus
from foodcost.models.theoretical_usage import RunStatus


# ==================== Reference data ====================

@dataclass(frozen=True)
class UnitConversionEdge:
    """Directed edge: to_qty = from_qty * factor."""

    from_unit_id: int
    to_unit_id: int
    factor: float


@dataclass(frozen=True)
class StoreRecord:
    id: int
    company_id: int
    name: str


@dataclass(frozen=True)
class CategoryRecord:
    id: int
    name: str


@dataclass(frozen=True)
class InventoryItemRecord:
    id: int
    company_id: int
    name: str
    unit_id: int
    price_per_unit: float = 0.0
    avg_cost_per_unit: float = 0.0
    yield_percent: float = 100.0
    category_id: Optional[int] = None
    plu_sku: Optional[str] = None
    active: bool = True


@dataclass(frozen=True)
class RecipeRecord:
    id: int
    company_id: int
    name: str


@dataclass(frozen=True)
class InventoryItemComponent:
    """Recipe line consuming a raw inventory item."""

    recipe_id: int
    inventory_item_id: int
    qty: float
    unit_id: int


@dataclass(frozen=True)
class SubRecipeComponent:
    """Recipe line consuming another recipe."""

    recipe_id: int
    sub_recipe_id: int
    qty: float
    unit_id: int


RecipeComponentRecord = Union[InventoryItemComponent, SubRecipeComponent]


@dataclass(frozen=True)
class MenuItemRecord:
    id: int
    company_id: int
    name: str
    recipe_id: Optional[int] = None


# ==================== Ledger data ====================

@dataclass(frozen=True)
class InventoryCountRecord:
    id: int
    company_id: int
    store_id: int
    count_date: datetime


@dataclass(frozen=True)
class ReceiptLineRecord:
    """Received quantity resolved to its inventory item.

    ``delivery_date`` is the purchase order's expected date, falling back to
    the receipt timestamp.
    """

    receipt_id: int
    inventory_item_id: int
    received_qty: float
    delivery_date: datetime
    status: str


@dataclass(frozen=True)
class TransferLineRecord:
    transfer_order_id: int
    from_store_id: int
    to_store_id: int
    inventory_item_id: int
    shipped_qty: float
    completed_at: Optional[datetime]


@dataclass(frozen=True)
class WasteRecord:
    waste_type: str
    qty: float
    wasted_at: datetime
    reason_code: str
    inventory_item_id: Optional[int] = None
    menu_item_id: Optional[int] = None


# ==================== Theoretical usage ====================

@dataclass(frozen=True)
class SourceMenuItem:
    """Trace entry: which sale produced an ingredient requirement."""

    menu_item_id: int
    menu_item_name: str
    qty_sold: float

    def to_dict(self) -> dict:
        return {
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item_name,
            "qty_sold": self.qty_sold,
        }


@dataclass(frozen=True)
class MenuItemSale:
    """Aggregated daily sales of one menu item."""

    menu_item_id: int
    qty_sold: float
    net_sales: float = 0.0


@dataclass(frozen=True)
class TheoreticalUsageRunCreate:
    company_id: int
    store_id: int
    sales_date: datetime
    source_batch_id: str
    total_menu_items_sold: float = 0.0
    total_revenue: float = 0.0


@dataclass(frozen=True)
class TheoreticalUsageLineCreate:
    inventory_item_id: int
    required_qty_base_unit: float
    base_unit_id: int
    cost_at_sale: float
    cost_at_sale_wac: float
    source_menu_items: List[SourceMenuItem] = field(default_factory=list)


@dataclass(frozen=True)
class TheoreticalUsageRunUpdate:
    status: RunStatus
    completed_at: Optional[datetime] = None
    items_processed: Optional[int] = None
    total_theoretical_cost: Optional[float] = None
    total_theoretical_cost_wac: Optional[float] = None
    error_log: Optional[str] = None


@dataclass(frozen=True)
class TheoreticalUsageRunRecord:
    id: int
    company_id: int
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
    error_log: Optional[str] = None


@dataclass(frozen=True)
class TheoreticalUsageLineRecord:
    run_id: int
    inventory_item_id: int
    required_qty_base_unit: float
    base_unit_id: int
    cost_at_sale: float
    source_menu_items: List[dict] = field(default_factory=list)


# ==================== Vendor catalog / order guides ====================

@dataclass(frozen=True)
class VendorProduct:
    """A vendor catalog row that is not (yet) an inventory item."""

    vendor_sku: str
    name: str
    category_code: Optional[str] = None
    case_size: Optional[float] = None
    unit: Optional[str] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class VendorRecord:
    id: int
    company_id: int
    name: str


@dataclass(frozen=True)
class VendorItemRecord:
    id: int
    vendor_id: int
    inventory_item_id: int
    vendor_sku: str


@dataclass(frozen=True)
class InventoryItemCreate:
    company_id: int
    name: str
    unit_id: int
    price_per_unit: float = 0.0
    yield_percent: float = 100.0
    case_size: float = 1.0
    plu_sku: Optional[str] = None


@dataclass(frozen=True)
class VendorItemCreate:
    vendor_id: int
    inventory_item_id: int
    vendor_sku: str
    purchase_unit_id: int
    case_size: float = 1.0
    last_price: Optional[float] = None


@dataclass(frozen=True)
class OrderGuideCreate:
    company_id: int
    vendor_id: int
    file_name: Optional[str]
    row_count: int
    source: str = "csv"


@dataclass(frozen=True)
class OrderGuideLineCreate:
    vendor_sku: str
    product_name: str
    match_status: LineMatchStatus
    match_confidence: int
    matched_inventory_item_id: Optional[int] = None
    category: Optional[str] = None
    uom: Optional[str] = None
    case_size: Optional[float] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class OrderGuideRecord:
    id: int
    company_id: int
    vendor_id: int
    status: OrderGuideStatus
    row_count: int


@dataclass(frozen=True)
class OrderGuideLineRecord:
    id: int
    order_guide_id: int
    vendor_sku: str
    product_name: str
    match_status: LineMatchStatus
    match_confidence: int
    matched_inventory_item_id: Optional[int] = None
    category: Optional[str] = None
    uom: Optional[str] = None
    case_size: Optional[float] = None
    price: Optional[float] = None
