"""Unit conversion over a snapshot of directed conversion edges."""

import logging
from typing import Dict, Iterable, Optional, Tuple

from foodcost.core.metrics import UNIT_CONVERSION_PASSTHROUGH, DataQualityMetrics
from foodcost.services.records import UnitConversionEdge

logger = logging.getLogger(__name__)


class UnitConverter:
    """Converts quantities between units using one direct or reversed edge.

    There is no multi-hop chaining: lb -> oz -> g needs an explicit lb -> g
    edge. Unknown pairs pass the quantity through unchanged.
    """

    def __init__(
        self,
        conversions: Iterable[UnitConversionEdge],
        metrics: Optional[DataQualityMetrics] = None,
    ):
        self._factors: Dict[Tuple[int, int], float] = {}
        for edge in conversions:
            # First edge for a pair wins
            self._factors.setdefault((edge.from_unit_id, edge.to_unit_id), edge.factor)
        self.metrics = metrics

    def factor(self, from_unit_id: int, to_unit_id: int) -> Optional[float]:
        """Multiplier taking from_unit to to_unit, or None when unknown."""
        if from_unit_id == to_unit_id:
            return 1.0

        direct = self._factors.get((from_unit_id, to_unit_id))
        if direct is not None:
            return direct

        reverse = self._factors.get((to_unit_id, from_unit_id))
        if reverse:
            return 1.0 / reverse

        return None

    def convert(self, qty: float, from_unit_id: int, to_unit_id: int, company_id: object = "") -> float:
        factor = self.factor(from_unit_id, to_unit_id)
        if factor is None:
            logger.warning(
                f"No conversion from unit {from_unit_id} to unit {to_unit_id}, using quantity unchanged"
            )
            if self.metrics is not None:
                self.metrics.record(UNIT_CONVERSION_PASSTHROUGH, company_id)
            return qty
        return qty * factor
