"""SQLAlchemy models."""

from foodcost.models.tenant import Company, Store
from foodcost.models.catalog import (
    Unit,
    UnitConversion,
    Category,
    InventoryItem,
    Vendor,
    VendorItem,
)
from foodcost.models.recipe import Recipe, RecipeComponent, MenuItem, ComponentType
from foodcost.models.inventory import InventoryCount, InventoryCountLine
from foodcost.models.purchasing import PurchaseOrder, Receipt, ReceiptLine
from foodcost.models.transfer import TransferOrder, TransferOrderLine
from foodcost.models.waste import WasteLog, WasteType
from foodcost.models.theoretical_usage import (
    TheoreticalUsageRun,
    TheoreticalUsageLine,
    RunStatus,
)
from foodcost.models.order_guide import (
    OrderGuide,
    OrderGuideLine,
    OrderGuideStatus,
    LineMatchStatus,
)

__all__ = [
    "Company",
    "Store",
    "Unit",
    "UnitConversion",
    "Category",
    "InventoryItem",
    "Vendor",
    "VendorItem",
    "Recipe",
    "RecipeComponent",
    "MenuItem",
    "ComponentType",
    "InventoryCount",
    "InventoryCountLine",
    "PurchaseOrder",
    "Receipt",
    "ReceiptLine",
    "TransferOrder",
    "TransferOrderLine",
    "WasteLog",
    "WasteType",
    "TheoreticalUsageRun",
    "TheoreticalUsageLine",
    "RunStatus",
    "OrderGuide",
    "OrderGuideLine",
    "OrderGuideStatus",
    "LineMatchStatus",
]
