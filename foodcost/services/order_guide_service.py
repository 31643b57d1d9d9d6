"""Order guide import: match a vendor catalog, then approve it into vendor items."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from foodcost.core.config import settings
from foodcost.models.order_guide import LineMatchStatus, OrderGuideStatus
from foodcost.services.exceptions import OrderGuideError
from foodcost.services.item_matcher_service import ItemMatcher, MatchConfidence
from foodcost.services.records import (
    InventoryItemCreate,
    OrderGuideCreate,
    OrderGuideLineCreate,
    OrderGuideLineRecord,
    VendorItemCreate,
    VendorProduct,
)
from foodcost.services.storage import FoodCostStorage

logger = logging.getLogger(__name__)

MATCH_STATUS_BY_CONFIDENCE = {
    MatchConfidence.HIGH: LineMatchStatus.AUTO_MATCHED,
    MatchConfidence.MEDIUM: LineMatchStatus.NEEDS_REVIEW,
    MatchConfidence.LOW: LineMatchStatus.NEEDS_REVIEW,
    MatchConfidence.NONE: LineMatchStatus.NEW_ITEM,
}


@dataclass
class OrderGuideUploadResult:
    order_guide_id: int
    total_items: int
    high_confidence_matches: int = 0
    medium_confidence_matches: int = 0
    low_confidence_matches: int = 0
    no_matches: int = 0
    ready_for_review: bool = True


@dataclass
class OrderGuideApprovalResult:
    vendor_items_created: int = 0
    inventory_items_created: int = 0
    lines_skipped: int = 0


class OrderGuideProcessor:
    """Imports vendor order guides and links them to the inventory catalog."""

    def __init__(self, storage: FoodCostStorage, matcher: Optional[ItemMatcher] = None):
        self.storage = storage
        self.matcher = matcher or ItemMatcher(storage)

    def process(
        self,
        company_id: int,
        vendor_id: int,
        products: List[VendorProduct],
        file_name: Optional[str] = None,
        source: str = "csv",
    ) -> OrderGuideUploadResult:
        """Match every product and store the guide for review."""
        if self.storage.get_vendor(vendor_id, company_id) is None:
            raise OrderGuideError(f"Vendor {vendor_id} not found", not_found=True)
        if not products:
            raise OrderGuideError("No products found in order guide")

        matches = self.matcher.match_all(products, company_id)

        counts = {confidence: 0 for confidence in MatchConfidence}
        lines = []
        for product, match in zip(products, matches):
            counts[match.confidence] += 1
            lines.append(OrderGuideLineCreate(
                vendor_sku=product.vendor_sku,
                product_name=product.name,
                match_status=MATCH_STATUS_BY_CONFIDENCE[match.confidence],
                match_confidence=round(match.score * 100),
                matched_inventory_item_id=match.inventory_item_id,
                category=product.category_code,
                uom=product.unit,
                case_size=product.case_size,
                price=product.price,
            ))

        with self.storage.transaction():
            guide = self.storage.create_order_guide(
                OrderGuideCreate(
                    company_id=company_id,
                    vendor_id=vendor_id,
                    file_name=file_name,
                    row_count=len(products),
                    source=source,
                ),
                lines,
            )

        logger.info(
            f"Order guide {guide.id} stored: {len(products)} rows, "
            f"{counts[MatchConfidence.HIGH]} auto-matched, {counts[MatchConfidence.NONE]} new"
        )
        return OrderGuideUploadResult(
            order_guide_id=guide.id,
            total_items=len(products),
            high_confidence_matches=counts[MatchConfidence.HIGH],
            medium_confidence_matches=counts[MatchConfidence.MEDIUM],
            low_confidence_matches=counts[MatchConfidence.LOW],
            no_matches=counts[MatchConfidence.NONE],
        )

    def approve(
        self,
        order_guide_id: int,
        company_id: int,
        approved_by: Optional[str] = None,
        create_new_inventory_items: bool = False,
    ) -> OrderGuideApprovalResult:
        """
        Create vendor items for matched lines and, optionally, inventory items for new ones.

        Everything, including the status change, is committed in one transaction.
        """
        guide = self.storage.get_order_guide(order_guide_id, company_id)
        if guide is None:
            raise OrderGuideError(f"Order guide {order_guide_id} not found", not_found=True)
        if guide.status != OrderGuideStatus.PENDING_REVIEW:
            raise OrderGuideError(f"Order guide {order_guide_id} has already been processed")

        lines = self.storage.get_order_guide_lines(order_guide_id)
        known_skus = {vi.vendor_sku for vi in self.storage.get_vendor_items(guide.vendor_id)}
        result = OrderGuideApprovalResult()

        with self.storage.transaction():
            for line in lines:
                if line.vendor_sku in known_skus:
                    result.lines_skipped += 1
                    continue

                if line.match_status in (LineMatchStatus.AUTO_MATCHED, LineMatchStatus.NEEDS_REVIEW):
                    if self._link_matched_line(guide.vendor_id, company_id, line):
                        result.vendor_items_created += 1
                        known_skus.add(line.vendor_sku)
                    else:
                        result.lines_skipped += 1
                elif line.match_status == LineMatchStatus.NEW_ITEM and create_new_inventory_items:
                    if self._create_item_for_line(guide.vendor_id, company_id, line):
                        result.inventory_items_created += 1
                        result.vendor_items_created += 1
                        known_skus.add(line.vendor_sku)
                    else:
                        result.lines_skipped += 1

            self.storage.mark_order_guide_approved(order_guide_id, approved_by)

        logger.info(
            f"Order guide {order_guide_id} approved: {result.vendor_items_created} vendor items, "
            f"{result.inventory_items_created} inventory items created"
        )
        return result

    def _link_matched_line(self, vendor_id: int, company_id: int, line: OrderGuideLineRecord) -> bool:
        if line.matched_inventory_item_id is None:
            return False
        item = self.storage.get_inventory_item(line.matched_inventory_item_id, company_id)
        if item is None:
            logger.warning(
                f"Matched item {line.matched_inventory_item_id} for SKU {line.vendor_sku} no longer exists"
            )
            return False

        self.storage.create_vendor_item(VendorItemCreate(
            vendor_id=vendor_id,
            inventory_item_id=item.id,
            vendor_sku=line.vendor_sku,
            purchase_unit_id=item.unit_id,
            case_size=line.case_size or 1.0,
            last_price=line.price,
        ))
        return True

    def _create_item_for_line(self, vendor_id: int, company_id: int, line: OrderGuideLineRecord) -> bool:
        unit_id = self.storage.get_unit_id(line.uom or "")
        if unit_id is None:
            logger.warning(f"Unknown unit '{line.uom}' for SKU {line.vendor_sku}, item not created")
            return False

        case_size = line.case_size or 1.0
        price_per_unit = (line.price / case_size) if line.price else 0.0
        item = self.storage.create_inventory_item(InventoryItemCreate(
            company_id=company_id,
            name=line.product_name,
            unit_id=unit_id,
            price_per_unit=price_per_unit,
            yield_percent=settings.default_yield_percent,
            case_size=case_size,
        ))
        self.storage.create_vendor_item(VendorItemCreate(
            vendor_id=vendor_id,
            inventory_item_id=item.id,
            vendor_sku=line.vendor_sku,
            purchase_unit_id=unit_id,
            case_size=case_size,
            last_price=line.price,
        ))
        return True
