"""Prometheus-compatible data-quality counters.

The costing services deliberately absorb bad reference data (missing recipes,
unmapped unit conversions, cyclic sub-recipes) instead of failing a whole batch.
Each absorbed case is counted here so it stays discoverable.
"""

import threading
from typing import Dict, List, Tuple

UNIT_CONVERSION_PASSTHROUGH = "unit_conversion_passthrough"
YIELD_DEFAULTED = "yield_defaulted"
RECIPE_CYCLE_SKIPPED = "recipe_cycle_skipped"
RECIPE_MISSING = "recipe_missing"
INVENTORY_ITEM_MISSING = "inventory_item_missing"
MENU_ITEM_UNMAPPED = "menu_item_unmapped"
STORE_SCOPE_MISMATCH = "store_scope_mismatch"
COUNT_SCOPE_MISMATCH = "count_scope_mismatch"


class DataQualityMetrics:
    """Collects data-quality event counters in Prometheus exposition format."""

    def __init__(self):
        self._lock = threading.Lock()
        self.event_count: Dict[Tuple[str, str], int] = {}

    def record(self, event: str, company_id: object = "") -> None:
        key = (event, str(company_id))
        with self._lock:
            self.event_count[key] = self.event_count.get(key, 0) + 1

    def count(self, event: str, company_id: object = None) -> int:
        """Total for an event, optionally restricted to one tenant."""
        with self._lock:
            return sum(
                n for (name, company), n in self.event_count.items()
                if name == event and (company_id is None or company == str(company_id))
            )

    def get_prometheus_metrics(self) -> str:
        lines: List[str] = []
        with self._lock:
            snapshot = dict(self.event_count)

        lines.append("# HELP foodcost_data_quality_events_total Absorbed data-quality events")
        lines.append("# TYPE foodcost_data_quality_events_total counter")
        for (event, company), count in sorted(snapshot.items()):
            lines.append(
                f'foodcost_data_quality_events_total{{event="{event}",company="{company}"}} {count}'
            )

        return "\n".join(lines) + "\n"
