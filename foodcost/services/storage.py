"""Storage contract for the costing services and its SQLAlchemy implementation.

To back the services with another store:
1. Subclass FoodCostStorage
2. Implement all abstract methods, returning the records in services.records
3. Scope every tenant-owned read by company_id (and store_id where given)
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from foodcost.models.catalog import Category, InventoryItem, Unit, UnitConversion, Vendor, VendorItem
from foodcost.models.inventory import InventoryCount, InventoryCountLine
from foodcost.models.order_guide import OrderGuide, OrderGuideLine, OrderGuideStatus
from foodcost.models.purchasing import PurchaseOrder, Receipt, ReceiptLine
from foodcost.models.recipe import ComponentType, MenuItem, Recipe, RecipeComponent
from foodcost.models.tenant import Store
from foodcost.models.theoretical_usage import RunStatus, TheoreticalUsageLine, TheoreticalUsageRun
from foodcost.models.transfer import TransferOrder, TransferOrderLine
from foodcost.models.waste import WasteLog
from foodcost.services.records import (
    CategoryRecord,
    InventoryCountRecord,
    InventoryItemComponent,
    InventoryItemCreate,
    InventoryItemRecord,
    MenuItemRecord,
    OrderGuideCreate,
    OrderGuideLineCreate,
    OrderGuideLineRecord,
    OrderGuideRecord,
    ReceiptLineRecord,
    RecipeComponentRecord,
    RecipeRecord,
    StoreRecord,
    SubRecipeComponent,
    TheoreticalUsageLineCreate,
    TheoreticalUsageLineRecord,
    TheoreticalUsageRunCreate,
    TheoreticalUsageRunRecord,
    TheoreticalUsageRunUpdate,
    TransferLineRecord,
    UnitConversionEdge,
    VendorItemCreate,
    VendorItemRecord,
    VendorRecord,
    WasteRecord,
)

logger = logging.getLogger(__name__)

COMPLETED_TRANSFER_STATUS = "completed"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize DB datetimes (SQLite drops tzinfo) to aware UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FoodCostStorage(ABC):
    """Everything the costing services read from and write to persistence."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit everything written inside the block atomically, or nothing."""

    # ----- tenants -----

    @abstractmethod
    def get_store(self, store_id: int, company_id: int) -> Optional[StoreRecord]:
        """Store only if it belongs to the company."""

    # ----- recipes / units -----

    @abstractmethod
    def get_recipe(self, recipe_id: int, company_id: int) -> Optional[RecipeRecord]:
        pass

    @abstractmethod
    def get_recipes(self, company_id: int) -> List[RecipeRecord]:
        pass

    @abstractmethod
    def get_recipe_components(self, recipe_id: int) -> List[RecipeComponentRecord]:
        pass

    @abstractmethod
    def get_menu_items(self, company_id: int) -> List[MenuItemRecord]:
        pass

    @abstractmethod
    def get_unit_conversions(self) -> List[UnitConversionEdge]:
        pass

    @abstractmethod
    def get_unit_id(self, abbreviation: str) -> Optional[int]:
        pass

    # ----- catalog -----

    @abstractmethod
    def get_inventory_item(self, item_id: int, company_id: Optional[int] = None) -> Optional[InventoryItemRecord]:
        pass

    @abstractmethod
    def get_inventory_items(self, company_id: int, active_only: bool = True) -> List[InventoryItemRecord]:
        """Catalog snapshot in insertion (id) order."""

    @abstractmethod
    def get_categories(self, company_id: int) -> List[CategoryRecord]:
        pass

    @abstractmethod
    def create_inventory_item(self, item: InventoryItemCreate) -> InventoryItemRecord:
        pass

    @abstractmethod
    def get_vendor(self, vendor_id: int, company_id: int) -> Optional[VendorRecord]:
        pass

    @abstractmethod
    def get_vendor_items(self, vendor_id: int) -> List[VendorItemRecord]:
        pass

    @abstractmethod
    def create_vendor_item(self, vendor_item: VendorItemCreate) -> VendorItemRecord:
        pass

    # ----- ledger -----

    @abstractmethod
    def get_inventory_count(self, count_id: int, company_id: int) -> Optional[InventoryCountRecord]:
        pass

    @abstractmethod
    def get_latest_inventory_count(self, company_id: int, store_id: int) -> Optional[InventoryCountRecord]:
        pass

    @abstractmethod
    def get_inventory_count_lines(self, count_id: int) -> Dict[int, float]:
        """Counted quantity per inventory item, summed across storage locations."""

    @abstractmethod
    def get_receipt_lines_for_store(
        self, company_id: int, store_id: int, statuses: Iterable[str]
    ) -> List[ReceiptLineRecord]:
        """Receipt lines of the store whose status is in ``statuses`` (case-insensitive)."""

    @abstractmethod
    def get_completed_transfers_for_store(self, company_id: int, store_id: int) -> List[TransferLineRecord]:
        """Completed transfer lines where the store is either the source or the destination."""

    @abstractmethod
    def get_waste_logs_for_store(self, company_id: int, store_id: int) -> List[WasteRecord]:
        pass

    # ----- theoretical usage -----

    @abstractmethod
    def get_completed_runs_for_store(self, company_id: int, store_id: int) -> List[TheoreticalUsageRunRecord]:
        pass

    @abstractmethod
    def get_theoretical_usage_lines(self, run_id: int) -> List[TheoreticalUsageLineRecord]:
        pass

    @abstractmethod
    def create_theoretical_usage_run(self, run: TheoreticalUsageRunCreate) -> TheoreticalUsageRunRecord:
        pass

    @abstractmethod
    def create_theoretical_usage_lines(self, run_id: int, lines: List[TheoreticalUsageLineCreate]) -> None:
        pass

    @abstractmethod
    def update_theoretical_usage_run(
        self, run_id: int, company_id: int, update: TheoreticalUsageRunUpdate
    ) -> Optional[TheoreticalUsageRunRecord]:
        pass

    # ----- order guides -----

    @abstractmethod
    def create_order_guide(self, guide: OrderGuideCreate, lines: List[OrderGuideLineCreate]) -> OrderGuideRecord:
        pass

    @abstractmethod
    def get_order_guide(self, order_guide_id: int, company_id: int) -> Optional[OrderGuideRecord]:
        pass

    @abstractmethod
    def get_order_guide_lines(self, order_guide_id: int) -> List[OrderGuideLineRecord]:
        pass

    @abstractmethod
    def mark_order_guide_approved(self, order_guide_id: int, approved_by: Optional[str]) -> None:
        pass


class SqlAlchemyStorage(FoodCostStorage):
    """FoodCostStorage over a SQLAlchemy session.

    Writes only flush; ``transaction()`` owns commit and rollback.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ----- tenants -----

    def get_store(self, store_id: int, company_id: int) -> Optional[StoreRecord]:
        store = self.db.query(Store).filter(
            Store.id == store_id,
            Store.company_id == company_id,
        ).first()
        if not store:
            return None
        return StoreRecord(id=store.id, company_id=store.company_id, name=store.name)

    # ----- recipes / units -----

    def get_recipe(self, recipe_id: int, company_id: int) -> Optional[RecipeRecord]:
        recipe = self.db.query(Recipe).filter(
            Recipe.id == recipe_id,
            Recipe.company_id == company_id,
        ).first()
        if not recipe:
            return None
        return RecipeRecord(id=recipe.id, company_id=recipe.company_id, name=recipe.name)

    def get_recipes(self, company_id: int) -> List[RecipeRecord]:
        recipes = self.db.query(Recipe).filter(Recipe.company_id == company_id).order_by(Recipe.id).all()
        return [RecipeRecord(id=r.id, company_id=r.company_id, name=r.name) for r in recipes]

    def get_recipe_components(self, recipe_id: int) -> List[RecipeComponentRecord]:
        components = (
            self.db.query(RecipeComponent)
            .filter(RecipeComponent.recipe_id == recipe_id)
            .order_by(RecipeComponent.sort_order, RecipeComponent.id)
            .all()
        )
        result: List[RecipeComponentRecord] = []
        for c in components:
            if c.component_type == ComponentType.RECIPE:
                result.append(SubRecipeComponent(
                    recipe_id=c.recipe_id, sub_recipe_id=c.component_id, qty=c.qty, unit_id=c.unit_id,
                ))
            else:
                result.append(InventoryItemComponent(
                    recipe_id=c.recipe_id, inventory_item_id=c.component_id, qty=c.qty, unit_id=c.unit_id,
                ))
        return result

    def get_menu_items(self, company_id: int) -> List[MenuItemRecord]:
        items = self.db.query(MenuItem).filter(MenuItem.company_id == company_id).order_by(MenuItem.id).all()
        return [
            MenuItemRecord(id=m.id, company_id=m.company_id, name=m.name, recipe_id=m.recipe_id)
            for m in items
        ]

    def get_unit_conversions(self) -> List[UnitConversionEdge]:
        return [
            UnitConversionEdge(
                from_unit_id=c.from_unit_id, to_unit_id=c.to_unit_id, factor=c.conversion_factor,
            )
            for c in self.db.query(UnitConversion).order_by(UnitConversion.id).all()
        ]

    def get_unit_id(self, abbreviation: str) -> Optional[int]:
        if not abbreviation:
            return None
        unit = self.db.query(Unit).filter(
            func.lower(Unit.abbreviation) == abbreviation.strip().lower()
        ).first()
        return unit.id if unit else None

    # ----- catalog -----

    @staticmethod
    def _item_record(item: InventoryItem) -> InventoryItemRecord:
        return InventoryItemRecord(
            id=item.id,
            company_id=item.company_id,
            name=item.name,
            unit_id=item.unit_id,
            price_per_unit=item.price_per_unit or 0.0,
            avg_cost_per_unit=item.avg_cost_per_unit or 0.0,
            yield_percent=item.yield_percent if item.yield_percent is not None else 100.0,
            category_id=item.category_id,
            plu_sku=item.plu_sku,
            active=item.active,
        )

    def get_inventory_item(self, item_id: int, company_id: Optional[int] = None) -> Optional[InventoryItemRecord]:
        query = self.db.query(InventoryItem).filter(InventoryItem.id == item_id)
        if company_id is not None:
            query = query.filter(InventoryItem.company_id == company_id)
        item = query.first()
        return self._item_record(item) if item else None

    def get_inventory_items(self, company_id: int, active_only: bool = True) -> List[InventoryItemRecord]:
        query = self.db.query(InventoryItem).filter(InventoryItem.company_id == company_id)
        if active_only:
            query = query.filter(InventoryItem.active == True)
        return [self._item_record(i) for i in query.order_by(InventoryItem.id).all()]

    def get_categories(self, company_id: int) -> List[CategoryRecord]:
        categories = self.db.query(Category).filter(Category.company_id == company_id).all()
        return [CategoryRecord(id=c.id, name=c.name) for c in categories]

    def create_inventory_item(self, item: InventoryItemCreate) -> InventoryItemRecord:
        row = InventoryItem(
            company_id=item.company_id,
            name=item.name,
            unit_id=item.unit_id,
            price_per_unit=item.price_per_unit,
            avg_cost_per_unit=item.price_per_unit,
            yield_percent=item.yield_percent,
            case_size=item.case_size,
            plu_sku=item.plu_sku,
            active=True,
        )
        self.db.add(row)
        self.db.flush()
        return self._item_record(row)

    def get_vendor(self, vendor_id: int, company_id: int) -> Optional[VendorRecord]:
        vendor = self.db.query(Vendor).filter(
            Vendor.id == vendor_id,
            Vendor.company_id == company_id,
        ).first()
        if not vendor:
            return None
        return VendorRecord(id=vendor.id, company_id=vendor.company_id, name=vendor.name)

    def get_vendor_items(self, vendor_id: int) -> List[VendorItemRecord]:
        items = self.db.query(VendorItem).filter(VendorItem.vendor_id == vendor_id).all()
        return [
            VendorItemRecord(
                id=v.id, vendor_id=v.vendor_id, inventory_item_id=v.inventory_item_id, vendor_sku=v.vendor_sku,
            )
            for v in items
        ]

    def create_vendor_item(self, vendor_item: VendorItemCreate) -> VendorItemRecord:
        row = VendorItem(
            vendor_id=vendor_item.vendor_id,
            inventory_item_id=vendor_item.inventory_item_id,
            vendor_sku=vendor_item.vendor_sku,
            purchase_unit_id=vendor_item.purchase_unit_id,
            case_size=vendor_item.case_size,
            last_price=vendor_item.last_price,
        )
        self.db.add(row)
        self.db.flush()
        return VendorItemRecord(
            id=row.id, vendor_id=row.vendor_id, inventory_item_id=row.inventory_item_id, vendor_sku=row.vendor_sku,
        )

    # ----- ledger -----

    @staticmethod
    def _count_record(count: InventoryCount) -> InventoryCountRecord:
        return InventoryCountRecord(
            id=count.id,
            company_id=count.company_id,
            store_id=count.store_id,
            count_date=_as_utc(count.count_date),
        )

    def get_inventory_count(self, count_id: int, company_id: int) -> Optional[InventoryCountRecord]:
        count = self.db.query(InventoryCount).filter(
            InventoryCount.id == count_id,
            InventoryCount.company_id == company_id,
        ).first()
        return self._count_record(count) if count else None

    def get_latest_inventory_count(self, company_id: int, store_id: int) -> Optional[InventoryCountRecord]:
        count = (
            self.db.query(InventoryCount)
            .filter(
                InventoryCount.company_id == company_id,
                InventoryCount.store_id == store_id,
            )
            .order_by(InventoryCount.count_date.desc(), InventoryCount.id.desc())
            .first()
        )
        return self._count_record(count) if count else None

    def get_inventory_count_lines(self, count_id: int) -> Dict[int, float]:
        rows = (
            self.db.query(
                InventoryCountLine.inventory_item_id,
                func.sum(InventoryCountLine.qty),
            )
            .filter(InventoryCountLine.inventory_count_id == count_id)
            .group_by(InventoryCountLine.inventory_item_id)
            .all()
        )
        return {item_id: float(total or 0) for item_id, total in rows}

    def get_receipt_lines_for_store(
        self, company_id: int, store_id: int, statuses: Iterable[str]
    ) -> List[ReceiptLineRecord]:
        rows = (
            self.db.query(ReceiptLine, Receipt, PurchaseOrder, VendorItem)
            .join(Receipt, ReceiptLine.receipt_id == Receipt.id)
            .join(PurchaseOrder, Receipt.purchase_order_id == PurchaseOrder.id)
            .join(VendorItem, ReceiptLine.vendor_item_id == VendorItem.id)
            .join(InventoryItem, VendorItem.inventory_item_id == InventoryItem.id)
            .filter(
                Receipt.company_id == company_id,
                Receipt.store_id == store_id,
                func.lower(Receipt.status).in_([s.lower() for s in statuses]),
                PurchaseOrder.company_id == company_id,
                InventoryItem.company_id == company_id,
            )
            .order_by(ReceiptLine.id)
            .all()
        )
        return [
            ReceiptLineRecord(
                receipt_id=receipt.id,
                inventory_item_id=vendor_item.inventory_item_id,
                received_qty=line.received_qty,
                delivery_date=_as_utc(po.expected_date or receipt.received_at),
                status=receipt.status,
            )
            for line, receipt, po, vendor_item in rows
        ]

    def get_completed_transfers_for_store(self, company_id: int, store_id: int) -> List[TransferLineRecord]:
        rows = (
            self.db.query(TransferOrderLine, TransferOrder)
            .join(TransferOrder, TransferOrderLine.transfer_order_id == TransferOrder.id)
            .filter(
                TransferOrder.company_id == company_id,
                TransferOrder.status == COMPLETED_TRANSFER_STATUS,
                or_(TransferOrder.from_store_id == store_id, TransferOrder.to_store_id == store_id),
            )
            .order_by(TransferOrderLine.id)
            .all()
        )
        return [
            TransferLineRecord(
                transfer_order_id=order.id,
                from_store_id=order.from_store_id,
                to_store_id=order.to_store_id,
                inventory_item_id=line.inventory_item_id,
                shipped_qty=line.shipped_qty or 0.0,
                completed_at=_as_utc(order.completed_at),
            )
            for line, order in rows
        ]

    def get_waste_logs_for_store(self, company_id: int, store_id: int) -> List[WasteRecord]:
        logs = (
            self.db.query(WasteLog)
            .filter(WasteLog.company_id == company_id, WasteLog.store_id == store_id)
            .order_by(WasteLog.id)
            .all()
        )
        return [
            WasteRecord(
                waste_type=w.waste_type.value,
                qty=w.qty,
                wasted_at=_as_utc(w.wasted_at),
                reason_code=w.reason_code,
                inventory_item_id=w.inventory_item_id,
                menu_item_id=w.menu_item_id,
            )
            for w in logs
        ]

    # ----- theoretical usage -----

    @staticmethod
    def _run_record(run: TheoreticalUsageRun) -> TheoreticalUsageRunRecord:
        return TheoreticalUsageRunRecord(
            id=run.id,
            company_id=run.company_id,
            store_id=run.store_id,
            sales_date=_as_utc(run.sales_date),
            source_batch_id=run.source_batch_id,
            status=run.status,
            items_processed=run.items_processed,
            total_menu_items_sold=run.total_menu_items_sold,
            total_revenue=run.total_revenue,
            total_theoretical_cost=run.total_theoretical_cost,
            total_theoretical_cost_wac=run.total_theoretical_cost_wac,
            completed_at=_as_utc(run.completed_at),
            error_log=run.error_log,
        )

    def get_completed_runs_for_store(self, company_id: int, store_id: int) -> List[TheoreticalUsageRunRecord]:
        runs = (
            self.db.query(TheoreticalUsageRun)
            .filter(
                TheoreticalUsageRun.company_id == company_id,
                TheoreticalUsageRun.store_id == store_id,
                TheoreticalUsageRun.status == RunStatus.COMPLETED,
            )
            .order_by(TheoreticalUsageRun.sales_date, TheoreticalUsageRun.id)
            .all()
        )
        return [self._run_record(r) for r in runs]

    def get_theoretical_usage_lines(self, run_id: int) -> List[TheoreticalUsageLineRecord]:
        lines = (
            self.db.query(TheoreticalUsageLine)
            .filter(TheoreticalUsageLine.run_id == run_id)
            .order_by(TheoreticalUsageLine.id)
            .all()
        )
        return [
            TheoreticalUsageLineRecord(
                run_id=line.run_id,
                inventory_item_id=line.inventory_item_id,
                required_qty_base_unit=line.required_qty_base_unit,
                base_unit_id=line.base_unit_id,
                cost_at_sale=line.cost_at_sale,
                source_menu_items=list(line.source_menu_items or []),
            )
            for line in lines
        ]

    def create_theoretical_usage_run(self, run: TheoreticalUsageRunCreate) -> TheoreticalUsageRunRecord:
        row = TheoreticalUsageRun(
            company_id=run.company_id,
            store_id=run.store_id,
            sales_date=run.sales_date,
            source_batch_id=run.source_batch_id,
            status=RunStatus.PROCESSING,
            items_processed=0,
            total_menu_items_sold=run.total_menu_items_sold,
            total_revenue=run.total_revenue,
            total_theoretical_cost=0.0,
            total_theoretical_cost_wac=0.0,
        )
        self.db.add(row)
        self.db.flush()
        return self._run_record(row)

    def create_theoretical_usage_lines(self, run_id: int, lines: List[TheoreticalUsageLineCreate]) -> None:
        self.db.add_all([
            TheoreticalUsageLine(
                run_id=run_id,
                inventory_item_id=line.inventory_item_id,
                required_qty_base_unit=line.required_qty_base_unit,
                base_unit_id=line.base_unit_id,
                cost_at_sale=line.cost_at_sale,
                cost_at_sale_wac=line.cost_at_sale_wac,
                source_menu_items=[s.to_dict() for s in line.source_menu_items],
            )
            for line in lines
        ])
        self.db.flush()

    def update_theoretical_usage_run(
        self, run_id: int, company_id: int, update: TheoreticalUsageRunUpdate
    ) -> Optional[TheoreticalUsageRunRecord]:
        run = self.db.query(TheoreticalUsageRun).filter(
            TheoreticalUsageRun.id == run_id,
            TheoreticalUsageRun.company_id == company_id,
        ).first()
        if not run:
            return None

        run.status = update.status
        if update.completed_at is not None:
            run.completed_at = update.completed_at
        if update.items_processed is not None:
            run.items_processed = update.items_processed
        if update.total_theoretical_cost is not None:
            run.total_theoretical_cost = update.total_theoretical_cost
        if update.total_theoretical_cost_wac is not None:
            run.total_theoretical_cost_wac = update.total_theoretical_cost_wac
        if update.error_log is not None:
            run.error_log = update.error_log
        self.db.flush()
        return self._run_record(run)

    # ----- order guides -----

    def create_order_guide(self, guide: OrderGuideCreate, lines: List[OrderGuideLineCreate]) -> OrderGuideRecord:
        row = OrderGuide(
            company_id=guide.company_id,
            vendor_id=guide.vendor_id,
            file_name=guide.file_name,
            row_count=guide.row_count,
            source=guide.source,
            status=OrderGuideStatus.PENDING_REVIEW,
        )
        row.lines = [
            OrderGuideLine(
                vendor_sku=line.vendor_sku,
                product_name=line.product_name,
                category=line.category,
                uom=line.uom,
                case_size=line.case_size,
                price=line.price,
                match_status=line.match_status,
                matched_inventory_item_id=line.matched_inventory_item_id,
                match_confidence=line.match_confidence,
            )
            for line in lines
        ]
        self.db.add(row)
        self.db.flush()
        return OrderGuideRecord(
            id=row.id, company_id=row.company_id, vendor_id=row.vendor_id, status=row.status, row_count=row.row_count,
        )

    def get_order_guide(self, order_guide_id: int, company_id: int) -> Optional[OrderGuideRecord]:
        guide = self.db.query(OrderGuide).filter(
            OrderGuide.id == order_guide_id,
            OrderGuide.company_id == company_id,
        ).first()
        if not guide:
            return None
        return OrderGuideRecord(
            id=guide.id, company_id=guide.company_id, vendor_id=guide.vendor_id,
            status=guide.status, row_count=guide.row_count,
        )

    def get_order_guide_lines(self, order_guide_id: int) -> List[OrderGuideLineRecord]:
        lines = (
            self.db.query(OrderGuideLine)
            .filter(OrderGuideLine.order_guide_id == order_guide_id)
            .order_by(OrderGuideLine.id)
            .all()
        )
        return [
            OrderGuideLineRecord(
                id=line.id,
                order_guide_id=line.order_guide_id,
                vendor_sku=line.vendor_sku,
                product_name=line.product_name,
                match_status=line.match_status,
                match_confidence=line.match_confidence,
                matched_inventory_item_id=line.matched_inventory_item_id,
                category=line.category,
                uom=line.uom,
                case_size=line.case_size,
                price=line.price,
            )
            for line in lines
        ]

    def mark_order_guide_approved(self, order_guide_id: int, approved_by: Optional[str]) -> None:
        guide = self.db.query(OrderGuide).filter(OrderGuide.id == order_guide_id).first()
        if guide:
            guide.status = OrderGuideStatus.APPROVED
            guide.approved_at = datetime.now(timezone.utc)
            guide.approved_by = approved_by
            self.db.flush()
