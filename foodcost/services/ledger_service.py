"""Ledger reconciliation: actual usage between counts and estimated on-hand.

Usage between two counts (per item touched by either count):
    usage = previous + received - transferred_out - current

Estimated on-hand since the latest count:
    on_hand = counted + received + transferred_in - waste - theoretical_usage - transferred_out

Receipts, waste and transfers on the count date belong to the period after it.
Theoretical usage only counts for sales dates strictly after the count.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Set

from foodcost.core.config import settings
from foodcost.core.metrics import COUNT_SCOPE_MISMATCH, STORE_SCOPE_MISMATCH, DataQualityMetrics
from foodcost.models.waste import WasteType
from foodcost.services.records import InventoryCountRecord
from foodcost.services.storage import FoodCostStorage

logger = logging.getLogger(__name__)


@dataclass
class UsageRow:
    """Actual usage of one item between two counts."""
    inventory_item_id: int
    previous_qty: float
    received_qty: float
    transferred_out_qty: float
    current_qty: float
    usage: float
    is_negative_usage: bool


@dataclass
class OnHandRow:
    """Estimated on-hand of one item, rolled forward from the latest count."""
    inventory_item_id: int
    count_qty: float
    received_qty: float
    transferred_in_qty: float
    waste_qty: float
    theoretical_usage_qty: float
    transferred_out_qty: float
    on_hand: float  # signed
    on_hand_display: float  # floored at zero


def _in_window(moment: Optional[datetime], start: datetime, end: datetime) -> bool:
    return moment is not None and start <= moment <= end


class LedgerReconciler:
    """Store-scoped ledger calculations for one company."""

    def __init__(self, storage: FoodCostStorage, metrics: Optional[DataQualityMetrics] = None):
        self.storage = storage
        self.metrics = metrics

    def _record(self, event: str, company_id: int) -> None:
        if self.metrics is not None:
            self.metrics.record(event, company_id)

    def _store_in_scope(self, company_id: int, store_id: int) -> bool:
        if self.storage.get_store(store_id, company_id) is None:
            logger.warning(f"Store {store_id} does not belong to company {company_id}")
            self._record(STORE_SCOPE_MISMATCH, company_id)
            return False
        return True

    def _count_in_scope(self, count: Optional[InventoryCountRecord], count_id: int, company_id: int, store_id: int) -> bool:
        if count is None or count.store_id != store_id:
            logger.warning(f"Inventory count {count_id} is not a count of store {store_id} (company {company_id})")
            self._record(COUNT_SCOPE_MISMATCH, company_id)
            return False
        return True

    def usage_between_counts(
        self,
        company_id: int,
        store_id: int,
        previous_count_id: int,
        current_count_id: int,
    ) -> List[UsageRow]:
        if not self._store_in_scope(company_id, store_id):
            return []

        previous = self.storage.get_inventory_count(previous_count_id, company_id)
        current = self.storage.get_inventory_count(current_count_id, company_id)
        if not self._count_in_scope(previous, previous_count_id, company_id, store_id):
            return []
        if not self._count_in_scope(current, current_count_id, company_id, store_id):
            return []

        previous_lines = self.storage.get_inventory_count_lines(previous.id)
        current_lines = self.storage.get_inventory_count_lines(current.id)
        item_ids: Set[int] = set(previous_lines) | set(current_lines)

        start, end = previous.count_date, current.count_date
        statuses = set(settings.receipt_statuses_list)

        received: Dict[int, float] = defaultdict(float)
        for receipt in self.storage.get_receipt_lines_for_store(company_id, store_id, statuses):
            if receipt.inventory_item_id not in item_ids:
                continue
            if _in_window(receipt.delivery_date, start, end):
                received[receipt.inventory_item_id] += receipt.received_qty

        transferred_out: Dict[int, float] = defaultdict(float)
        for transfer in self.storage.get_completed_transfers_for_store(company_id, store_id):
            if transfer.from_store_id != store_id or transfer.inventory_item_id not in item_ids:
                continue
            if _in_window(transfer.completed_at, start, end):
                transferred_out[transfer.inventory_item_id] += transfer.shipped_qty

        rows = []
        for item_id in sorted(item_ids):
            prev_qty = previous_lines.get(item_id, 0.0)
            curr_qty = current_lines.get(item_id, 0.0)
            usage = prev_qty + received[item_id] - transferred_out[item_id] - curr_qty
            rows.append(UsageRow(
                inventory_item_id=item_id,
                previous_qty=prev_qty,
                received_qty=received[item_id],
                transferred_out_qty=transferred_out[item_id],
                current_qty=curr_qty,
                usage=usage,
                is_negative_usage=usage < 0,
            ))

        negatives = sum(1 for r in rows if r.is_negative_usage)
        if negatives:
            logger.info(f"{negatives} items with negative usage between counts {previous.id} and {current.id}")
        return rows

    def estimated_on_hand(self, company_id: int, store_id: int) -> List[OnHandRow]:
        if not self._store_in_scope(company_id, store_id):
            return []

        latest = self.storage.get_latest_inventory_count(company_id, store_id)
        if latest is None:
            return []
        since = latest.count_date

        counted = self.storage.get_inventory_count_lines(latest.id)

        received: Dict[int, float] = defaultdict(float)
        statuses = set(settings.receipt_statuses_list)
        for receipt in self.storage.get_receipt_lines_for_store(company_id, store_id, statuses):
            if receipt.delivery_date is not None and receipt.delivery_date >= since:
                received[receipt.inventory_item_id] += receipt.received_qty

        transferred_in: Dict[int, float] = defaultdict(float)
        transferred_out: Dict[int, float] = defaultdict(float)
        for transfer in self.storage.get_completed_transfers_for_store(company_id, store_id):
            if transfer.completed_at is None or transfer.completed_at < since:
                continue
            if transfer.to_store_id == store_id:
                transferred_in[transfer.inventory_item_id] += transfer.shipped_qty
            if transfer.from_store_id == store_id:
                transferred_out[transfer.inventory_item_id] += transfer.shipped_qty

        # Recipe waste is recorded in servings, not item units
        wasted: Dict[int, float] = defaultdict(float)
        for waste in self.storage.get_waste_logs_for_store(company_id, store_id):
            if waste.waste_type != WasteType.INVENTORY.value or waste.inventory_item_id is None:
                continue
            if waste.wasted_at is not None and waste.wasted_at >= since:
                wasted[waste.inventory_item_id] += waste.qty

        theoretical: Dict[int, float] = defaultdict(float)
        for run in self.storage.get_completed_runs_for_store(company_id, store_id):
            if run.sales_date <= since:
                continue
            for line in self.storage.get_theoretical_usage_lines(run.id):
                theoretical[line.inventory_item_id] += line.required_qty_base_unit

        item_ids = set(counted) | set(received) | set(transferred_in) | set(transferred_out) | set(wasted) | set(theoretical)
        rows = []
        for item_id in sorted(item_ids):
            on_hand = (
                counted.get(item_id, 0.0)
                + received[item_id]
                + transferred_in[item_id]
                - wasted[item_id]
                - theoretical[item_id]
                - transferred_out[item_id]
            )
            rows.append(OnHandRow(
                inventory_item_id=item_id,
                count_qty=counted.get(item_id, 0.0),
                received_qty=received[item_id],
                transferred_in_qty=transferred_in[item_id],
                waste_qty=wasted[item_id],
                theoretical_usage_qty=theoretical[item_id],
                transferred_out_qty=transferred_out[item_id],
                on_hand=on_hand,
                on_hand_display=max(0.0, on_hand),
            ))
        return rows
