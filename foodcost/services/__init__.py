# Services module

from foodcost.services.storage import FoodCostStorage, SqlAlchemyStorage
from foodcost.services.unit_conversion_service import UnitConverter
from foodcost.services.recipe_explosion_service import (
    RecipeCatalog,
    RecipeExplosionEngine,
    TheoreticalUsageService,
    IngredientUsage,
    ExplosionResult,
)
from foodcost.services.item_matcher_service import (
    ItemMatcher,
    MatchConfidence,
    MatchResult,
    levenshtein_distance,
)
from foodcost.services.order_guide_service import (
    OrderGuideProcessor,
    OrderGuideUploadResult,
    OrderGuideApprovalResult,
)
from foodcost.services.ledger_service import LedgerReconciler, UsageRow, OnHandRow
from foodcost.services.variance_service import VarianceService, VarianceReport, VarianceRow
from foodcost.services.exceptions import FoodCostError, TheoreticalUsageRunError, OrderGuideError
