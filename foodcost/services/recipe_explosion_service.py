"""Recipe explosion and Theoretical Food Cost (TFC) usage runs.

A recipe is a graph: components are either raw inventory items (leaves) or
other recipes (nodes). Exploding a recipe for N units sold walks that graph and
returns the base-unit quantity and cost of every raw item it consumes.

Flow for a sales batch:
1. Create the run as ``processing`` and commit it
2. Load a RecipeCatalog snapshot once for the company
3. Explode each sold menu item on a bounded worker pool (pure, no DB access)
4. Aggregate per inventory item, write lines and the completed run atomically
5. On any error mark the run ``failed`` and re-raise
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from foodcost.core.config import settings
from foodcost.core.metrics import (
    INVENTORY_ITEM_MISSING,
    MENU_ITEM_UNMAPPED,
    RECIPE_CYCLE_SKIPPED,
    RECIPE_MISSING,
    STORE_SCOPE_MISMATCH,
    YIELD_DEFAULTED,
    DataQualityMetrics,
)
from foodcost.models.theoretical_usage import RunStatus
from foodcost.services.exceptions import TheoreticalUsageRunError
from foodcost.services.records import (
    InventoryItemComponent,
    InventoryItemRecord,
    MenuItemRecord,
    MenuItemSale,
    RecipeComponentRecord,
    RecipeRecord,
    SourceMenuItem,
    SubRecipeComponent,
    TheoreticalUsageLineCreate,
    TheoreticalUsageRunCreate,
    TheoreticalUsageRunRecord,
    TheoreticalUsageRunUpdate,
)
from foodcost.services.storage import FoodCostStorage
from foodcost.services.unit_conversion_service import UnitConverter

logger = logging.getLogger(__name__)


@dataclass
class IngredientUsage:
    """Base-unit requirement of one inventory item, with the sales that caused it."""

    inventory_item_id: int
    required_qty_base_unit: float
    base_unit_id: int
    cost_at_sale: float
    cost_at_sale_wac: float = 0.0
    source_menu_items: List[SourceMenuItem] = field(default_factory=list)


@dataclass
class ExplosionResult:
    """Aggregated usages plus the cyclic branches that were skipped.

    Each entry of ``skipped_cycles`` is the recipe path that re-entered a
    recipe already on it, e.g. ``(1, 2, 1)``.
    """

    usages: List[IngredientUsage] = field(default_factory=list)
    skipped_cycles: List[Tuple[int, ...]] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return sum(u.cost_at_sale for u in self.usages)

    @property
    def total_cost_wac(self) -> float:
        return sum(u.cost_at_sale_wac for u in self.usages)


def merge_usages(into: Dict[int, IngredientUsage], usages: Iterable[IngredientUsage]) -> None:
    """Sum quantity and cost per inventory item and concatenate traces, keeping first-seen order."""
    for usage in usages:
        existing = into.get(usage.inventory_item_id)
        if existing is None:
            into[usage.inventory_item_id] = IngredientUsage(
                inventory_item_id=usage.inventory_item_id,
                required_qty_base_unit=usage.required_qty_base_unit,
                base_unit_id=usage.base_unit_id,
                cost_at_sale=usage.cost_at_sale,
                cost_at_sale_wac=usage.cost_at_sale_wac,
                source_menu_items=list(usage.source_menu_items),
            )
        else:
            existing.required_qty_base_unit += usage.required_qty_base_unit
            existing.cost_at_sale += usage.cost_at_sale
            existing.cost_at_sale_wac += usage.cost_at_sale_wac
            existing.source_menu_items.extend(usage.source_menu_items)


class RecipeCatalog:
    """Immutable per-company snapshot of everything an explosion reads."""

    def __init__(
        self,
        company_id: int,
        recipes: Dict[int, RecipeRecord],
        components: Dict[int, List[RecipeComponentRecord]],
        items: Dict[int, InventoryItemRecord],
        menu_items: Dict[int, MenuItemRecord],
        converter: UnitConverter,
    ):
        self.company_id = company_id
        self.recipes = recipes
        self.components = components
        self.items = items
        self.menu_items = menu_items
        self.converter = converter

    @classmethod
    def load(
        cls,
        storage: FoodCostStorage,
        company_id: int,
        metrics: Optional[DataQualityMetrics] = None,
    ) -> "RecipeCatalog":
        recipes = {r.id: r for r in storage.get_recipes(company_id)}
        components = {recipe_id: storage.get_recipe_components(recipe_id) for recipe_id in recipes}
        # Inactive items still carry cost for recipes that reference them
        items = {i.id: i for i in storage.get_inventory_items(company_id, active_only=False)}
        menu_items = {m.id: m for m in storage.get_menu_items(company_id)}
        converter = UnitConverter(storage.get_unit_conversions(), metrics=metrics)

        logger.debug(
            f"Loaded recipe catalog for company {company_id}: "
            f"{len(recipes)} recipes, {len(items)} items, {len(menu_items)} menu items"
        )
        return cls(company_id, recipes, components, items, menu_items, converter)


class RecipeExplosionEngine:
    """Walks the recipe graph of one catalog snapshot.

    Traversal is iterative. Each stack frame carries its own path, so a recipe
    reached twice through different branches (a diamond) is counted twice,
    while a recipe that re-enters its own path contributes nothing.
    """

    def __init__(self, catalog: RecipeCatalog, metrics: Optional[DataQualityMetrics] = None):
        self.catalog = catalog
        self.metrics = metrics

    def _record(self, event: str) -> None:
        if self.metrics is not None:
            self.metrics.record(event, self.catalog.company_id)

    def explode(
        self,
        recipe_id: int,
        sales_qty: float,
        menu_item: Optional[MenuItemRecord] = None,
    ) -> ExplosionResult:
        result = ExplosionResult()
        if recipe_id not in self.catalog.recipes:
            logger.warning(f"Recipe {recipe_id} not found for company {self.catalog.company_id}")
            self._record(RECIPE_MISSING)
            return result

        trace = []
        if menu_item is not None:
            trace = [SourceMenuItem(menu_item_id=menu_item.id, menu_item_name=menu_item.name, qty_sold=sales_qty)]

        usages: List[IngredientUsage] = []
        stack: List[Tuple[int, float, Tuple[int, ...]]] = [(recipe_id, sales_qty, (recipe_id,))]
        while stack:
            current_id, multiplier, path = stack.pop()
            children = []
            for component in self.catalog.components.get(current_id, []):
                if isinstance(component, InventoryItemComponent):
                    usage = self._leaf_usage(component, multiplier, trace)
                    if usage is not None:
                        usages.append(usage)
                elif isinstance(component, SubRecipeComponent):
                    sub_id = component.sub_recipe_id
                    if sub_id in path:
                        cycle = path + (sub_id,)
                        logger.warning(
                            f"Recipe cycle skipped for company {self.catalog.company_id}: "
                            f"{' -> '.join(str(r) for r in cycle)}"
                        )
                        self._record(RECIPE_CYCLE_SKIPPED)
                        result.skipped_cycles.append(cycle)
                        continue
                    if sub_id not in self.catalog.recipes:
                        logger.warning(f"Sub-recipe {sub_id} of recipe {current_id} not found, skipping")
                        self._record(RECIPE_MISSING)
                        continue
                    children.append((sub_id, component.qty * multiplier, path + (sub_id,)))
            # Reversed so sub-recipes are expanded in component order
            stack.extend(reversed(children))

        merged: Dict[int, IngredientUsage] = {}
        merge_usages(merged, usages)
        result.usages = list(merged.values())
        return result

    def _leaf_usage(
        self,
        component: InventoryItemComponent,
        multiplier: float,
        trace: List[SourceMenuItem],
    ) -> Optional[IngredientUsage]:
        item = self.catalog.items.get(component.inventory_item_id)
        if item is None:
            logger.warning(
                f"Inventory item {component.inventory_item_id} in recipe {component.recipe_id} not found, skipping"
            )
            self._record(INVENTORY_ITEM_MISSING)
            return None

        base_qty = self.catalog.converter.convert(
            component.qty * multiplier, component.unit_id, item.unit_id, self.catalog.company_id
        )

        if item.yield_percent > 0:
            yield_multiplier = 100.0 / item.yield_percent
        else:
            logger.info(f"Item {item.id} has yield {item.yield_percent}, treating as 100%")
            self._record(YIELD_DEFAULTED)
            yield_multiplier = 1.0

        adjusted_qty = base_qty * yield_multiplier
        wac_price = item.avg_cost_per_unit or item.price_per_unit
        return IngredientUsage(
            inventory_item_id=item.id,
            required_qty_base_unit=adjusted_qty,
            base_unit_id=item.unit_id,
            cost_at_sale=adjusted_qty * item.price_per_unit,
            cost_at_sale_wac=adjusted_qty * wac_price,
            source_menu_items=list(trace),
        )

    def recipe_cost(self, recipe_id: int) -> float:
        """Cost of one unit of a recipe at current prices."""
        return self.explode(recipe_id, 1.0).total_cost


class TheoreticalUsageService:
    """Creates theoretical usage runs from daily menu item sales."""

    def __init__(
        self,
        storage: FoodCostStorage,
        metrics: Optional[DataQualityMetrics] = None,
        max_workers: Optional[int] = None,
    ):
        self.storage = storage
        self.metrics = metrics
        self.max_workers = max_workers or settings.explosion_max_workers

    def engine_for(self, company_id: int) -> RecipeExplosionEngine:
        catalog = RecipeCatalog.load(self.storage, company_id, self.metrics)
        return RecipeExplosionEngine(catalog, self.metrics)

    def explode(self, recipe_id: int, sales_qty: float, company_id: int) -> List[IngredientUsage]:
        return self.engine_for(company_id).explode(recipe_id, sales_qty).usages

    def recipe_cost(self, recipe_id: int, company_id: int) -> float:
        return self.engine_for(company_id).recipe_cost(recipe_id)

    def calculate_theoretical_usage(
        self,
        company_id: int,
        store_id: int,
        sales_date: datetime,
        source_batch_id: str,
        sales: List[MenuItemSale],
    ) -> TheoreticalUsageRunRecord:
        store = self.storage.get_store(store_id, company_id)
        if store is None:
            logger.warning(f"Store {store_id} does not belong to company {company_id}")
            if self.metrics is not None:
                self.metrics.record(STORE_SCOPE_MISMATCH, company_id)
            raise TheoreticalUsageRunError(f"Store {store_id} not found")

        total_sold = sum(s.qty_sold or 0 for s in sales)
        total_revenue = sum(s.net_sales or 0 for s in sales)

        with self.storage.transaction():
            run = self.storage.create_theoretical_usage_run(TheoreticalUsageRunCreate(
                company_id=company_id,
                store_id=store_id,
                sales_date=sales_date,
                source_batch_id=source_batch_id,
                total_menu_items_sold=total_sold,
                total_revenue=total_revenue,
            ))
        logger.info(
            f"Created theoretical usage run {run.id} for store {store_id}: "
            f"{len(sales)} sales rows, {total_sold} items sold"
        )

        try:
            engine = self.engine_for(company_id)
            work = self._explodable_sales(engine.catalog, sales)

            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(
                    lambda job: engine.explode(job[0].recipe_id, job[1].qty_sold, job[0]),
                    work,
                ))

            aggregated: Dict[int, IngredientUsage] = {}
            for result in results:
                merge_usages(aggregated, result.usages)

            lines = [
                TheoreticalUsageLineCreate(
                    inventory_item_id=u.inventory_item_id,
                    required_qty_base_unit=u.required_qty_base_unit,
                    base_unit_id=u.base_unit_id,
                    cost_at_sale=u.cost_at_sale,
                    cost_at_sale_wac=u.cost_at_sale_wac,
                    source_menu_items=u.source_menu_items,
                )
                for u in aggregated.values()
            ]

            with self.storage.transaction():
                if lines:
                    self.storage.create_theoretical_usage_lines(run.id, lines)
                completed = self.storage.update_theoretical_usage_run(run.id, company_id, TheoreticalUsageRunUpdate(
                    status=RunStatus.COMPLETED,
                    completed_at=datetime.now(timezone.utc),
                    items_processed=len(work),
                    total_theoretical_cost=sum(line.cost_at_sale for line in lines),
                    total_theoretical_cost_wac=sum(line.cost_at_sale_wac for line in lines),
                ))
        except Exception as e:
            logger.error(f"Theoretical usage run {run.id} failed: {e}")
            with self.storage.transaction():
                self.storage.update_theoretical_usage_run(run.id, company_id, TheoreticalUsageRunUpdate(
                    status=RunStatus.FAILED,
                    completed_at=datetime.now(timezone.utc),
                    error_log=str(e),
                ))
            raise

        logger.info(
            f"Completed theoretical usage run {run.id}: {len(lines)} ingredients, "
            f"cost {completed.total_theoretical_cost:.2f}"
        )
        return completed

    def _explodable_sales(
        self,
        catalog: RecipeCatalog,
        sales: List[MenuItemSale],
    ) -> List[Tuple[MenuItemRecord, MenuItemSale]]:
        work = []
        for sale in sales:
            if not sale.qty_sold or sale.qty_sold <= 0:
                continue
            menu_item = catalog.menu_items.get(sale.menu_item_id)
            if menu_item is None or menu_item.recipe_id is None:
                logger.info(f"Menu item {sale.menu_item_id} has no recipe, skipping")
                if self.metrics is not None:
                    self.metrics.record(MENU_ITEM_UNMAPPED, catalog.company_id)
                continue
            work.append((menu_item, sale))
        return work
