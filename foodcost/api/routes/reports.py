"""Usage, on-hand, variance and recipe cost routes."""

from fastapi import APIRouter, HTTPException, Query, status

from foodcost.core.tenancy import CurrentCompany, Metrics
from foodcost.db.session import DbSession
from foodcost.schemas.reports import (
    IngredientUsageResponse,
    OnHandReport,
    OnHandRowResponse,
    RecipeCostResponse,
    UsageReport,
    UsageRowResponse,
    VarianceReportResponse,
    VarianceRowResponse,
)
from foodcost.services.ledger_service import LedgerReconciler
from foodcost.services.recipe_explosion_service import TheoreticalUsageService
from foodcost.services.storage import SqlAlchemyStorage
from foodcost.services.variance_service import VarianceService

router = APIRouter()


# ==================== Ledger ====================

@router.get("/stores/{store_id}/usage", response_model=UsageReport)
def get_usage_between_counts(
    store_id: int,
    db: DbSession,
    company_id: CurrentCompany,
    metrics: Metrics,
    previous_count_id: int = Query(...),
    current_count_id: int = Query(...),
):
    """Actual usage per item between two inventory counts of a store."""
    reconciler = LedgerReconciler(SqlAlchemyStorage(db), metrics)
    rows = reconciler.usage_between_counts(company_id, store_id, previous_count_id, current_count_id)
    return UsageReport(
        store_id=store_id,
        previous_count_id=previous_count_id,
        current_count_id=current_count_id,
        rows=[UsageRowResponse.model_validate(r) for r in rows],
    )


@router.get("/stores/{store_id}/on-hand", response_model=OnHandReport)
def get_estimated_on_hand(store_id: int, db: DbSession, company_id: CurrentCompany, metrics: Metrics):
    """Estimated on-hand per item since the latest count."""
    reconciler = LedgerReconciler(SqlAlchemyStorage(db), metrics)
    rows = reconciler.estimated_on_hand(company_id, store_id)
    return OnHandReport(store_id=store_id, rows=[OnHandRowResponse.model_validate(r) for r in rows])


# ==================== Variance ====================

@router.get("/stores/{store_id}/variance", response_model=VarianceReportResponse)
def get_variance(
    store_id: int,
    db: DbSession,
    company_id: CurrentCompany,
    metrics: Metrics,
    previous_count_id: int = Query(...),
    current_count_id: int = Query(...),
):
    report = VarianceService(SqlAlchemyStorage(db), metrics).variance_between_counts(
        company_id, store_id, previous_count_id, current_count_id
    )
    return VarianceReportResponse(
        rows=[VarianceRowResponse.model_validate(r) for r in report.rows],
        total_actual_cost=report.total_actual_cost,
        total_theoretical_cost=report.total_theoretical_cost,
        positive_variance_cost=report.positive_variance_cost,
        negative_variance_cost=report.negative_variance_cost,
        net_variance_cost=report.net_variance_cost,
    )


# ==================== Recipes ====================

@router.get("/recipes/{recipe_id}/cost", response_model=RecipeCostResponse)
def get_recipe_cost(
    recipe_id: int,
    db: DbSession,
    company_id: CurrentCompany,
    metrics: Metrics,
    qty: float = Query(1.0, gt=0),
):
    """Ingredient breakdown and cost of a recipe at current prices."""
    storage = SqlAlchemyStorage(db)
    if storage.get_recipe(recipe_id, company_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recipe not found"
        )

    engine = TheoreticalUsageService(storage, metrics).engine_for(company_id)
    result = engine.explode(recipe_id, qty)
    return RecipeCostResponse(
        recipe_id=recipe_id,
        qty=qty,
        total_cost=result.total_cost,
        ingredients=[IngredientUsageResponse.model_validate(u) for u in result.usages],
        skipped_cycles=[list(c) for c in result.skipped_cycles],
    )
