"""Theoretical usage run routes."""

from fastapi import APIRouter, HTTPException, status

from foodcost.core.tenancy import CurrentCompany, Metrics
from foodcost.db.session import DbSession
from foodcost.schemas.theoretical_usage import TheoreticalUsageRunRequest, TheoreticalUsageRunResponse
from foodcost.services.exceptions import TheoreticalUsageRunError
from foodcost.services.records import MenuItemSale
from foodcost.services.recipe_explosion_service import TheoreticalUsageService
from foodcost.services.storage import SqlAlchemyStorage

router = APIRouter()


@router.post(
    "/stores/{store_id}/theoretical-usage-runs",
    response_model=TheoreticalUsageRunResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_theoretical_usage_run(
    store_id: int,
    body: TheoreticalUsageRunRequest,
    db: DbSession,
    company_id: CurrentCompany,
    metrics: Metrics,
):
    """
    Explode a day of menu item sales into ingredient usage.
    The run is stored as completed, or as failed if anything goes wrong.
    """
    service = TheoreticalUsageService(SqlAlchemyStorage(db), metrics)
    try:
        run = service.calculate_theoretical_usage(
            company_id=company_id,
            store_id=store_id,
            sales_date=body.sales_date,
            source_batch_id=body.source_batch_id,
            sales=[
                MenuItemSale(menu_item_id=s.menu_item_id, qty_sold=s.qty_sold, net_sales=s.net_sales)
                for s in body.sales
            ],
        )
    except TheoreticalUsageRunError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    return TheoreticalUsageRunResponse.model_validate(run)
