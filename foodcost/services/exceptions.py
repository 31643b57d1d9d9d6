"""Domain exceptions raised by the costing services."""


class FoodCostError(Exception):
    """Base class for food cost domain errors."""


class TheoreticalUsageRunError(FoodCostError):
    """A theoretical usage run cannot be started for the requested store."""


class OrderGuideError(FoodCostError):
    """Order guide cannot be processed or approved."""

    def __init__(self, message: str, not_found: bool = False):
        super().__init__(message)
        self.not_found = not_found
