"""Variance: actual usage cost against theoretical (recipe-based) cost."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from foodcost.core.metrics import DataQualityMetrics
from foodcost.services.ledger_service import LedgerReconciler
from foodcost.services.storage import FoodCostStorage

logger = logging.getLogger(__name__)


@dataclass
class VarianceRow:
    inventory_item_id: int
    actual_qty: float
    theoretical_qty: float
    actual_cost: float
    theoretical_cost: float
    variance_qty: float
    variance_cost: float  # > 0 means more was used than recipes explain
    variance_percent: Optional[float]  # None when there is no theoretical cost


@dataclass
class VarianceReport:
    rows: List[VarianceRow] = field(default_factory=list)
    total_actual_cost: float = 0.0
    total_theoretical_cost: float = 0.0
    positive_variance_cost: float = 0.0
    negative_variance_cost: float = 0.0  # magnitude

    @property
    def net_variance_cost(self) -> float:
        return self.positive_variance_cost - self.negative_variance_cost


def variance_row(
    inventory_item_id: int,
    actual_qty: float,
    theoretical_qty: float,
    actual_cost: float,
    theoretical_cost: float,
) -> VarianceRow:
    variance_cost = actual_cost - theoretical_cost
    return VarianceRow(
        inventory_item_id=inventory_item_id,
        actual_qty=actual_qty,
        theoretical_qty=theoretical_qty,
        actual_cost=actual_cost,
        theoretical_cost=theoretical_cost,
        variance_qty=actual_qty - theoretical_qty,
        variance_cost=variance_cost,
        variance_percent=(variance_cost / theoretical_cost * 100) if theoretical_cost else None,
    )


def summarize_variance(rows: List[VarianceRow]) -> VarianceReport:
    report = VarianceReport(rows=rows)
    for row in rows:
        report.total_actual_cost += row.actual_cost
        report.total_theoretical_cost += row.theoretical_cost
        if row.variance_cost > 0:
            report.positive_variance_cost += row.variance_cost
        elif row.variance_cost < 0:
            report.negative_variance_cost += -row.variance_cost
    return report


class VarianceService:
    """Compares usage between two counts with theoretical usage over the same period."""

    def __init__(self, storage: FoodCostStorage, metrics: Optional[DataQualityMetrics] = None):
        self.storage = storage
        self.ledger = LedgerReconciler(storage, metrics)

    def variance_between_counts(
        self,
        company_id: int,
        store_id: int,
        previous_count_id: int,
        current_count_id: int,
    ) -> VarianceReport:
        usage_rows = self.ledger.usage_between_counts(company_id, store_id, previous_count_id, current_count_id)
        if not usage_rows:
            return VarianceReport()

        # Both counts were scope-checked by the ledger
        start = self.storage.get_inventory_count(previous_count_id, company_id).count_date
        end = self.storage.get_inventory_count(current_count_id, company_id).count_date

        theoretical_qty: Dict[int, float] = defaultdict(float)
        theoretical_cost: Dict[int, float] = defaultdict(float)
        for run in self.storage.get_completed_runs_for_store(company_id, store_id):
            if not (start < run.sales_date <= end):
                continue
            for line in self.storage.get_theoretical_usage_lines(run.id):
                theoretical_qty[line.inventory_item_id] += line.required_qty_base_unit
                theoretical_cost[line.inventory_item_id] += line.cost_at_sale

        prices = {i.id: i.price_per_unit for i in self.storage.get_inventory_items(company_id, active_only=False)}
        actual_qty = {r.inventory_item_id: r.usage for r in usage_rows}

        rows = []
        for item_id in sorted(set(actual_qty) | set(theoretical_qty)):
            qty = actual_qty.get(item_id, 0.0)
            rows.append(variance_row(
                inventory_item_id=item_id,
                actual_qty=qty,
                theoretical_qty=theoretical_qty[item_id],
                actual_cost=qty * prices.get(item_id, 0.0),
                theoretical_cost=theoretical_cost[item_id],
            ))

        report = summarize_variance(rows)
        logger.info(
            f"Variance for store {store_id} counts {previous_count_id}->{current_count_id}: "
            f"+{report.positive_variance_cost:.2f} / -{report.negative_variance_cost:.2f}"
        )
        return report
