"""Vendor product matching and order guide routes."""

from fastapi import APIRouter, HTTPException, status

from foodcost.core.tenancy import CurrentCompany
from foodcost.db.session import DbSession
from foodcost.schemas.matching import (
    MatchResultResponse,
    OrderGuideApprovalResponse,
    OrderGuideApproveRequest,
    OrderGuideUploadRequest,
    OrderGuideUploadResponse,
    VendorMatchRequest,
    VendorMatchResponse,
    VendorProductIn,
)
from foodcost.services.exceptions import OrderGuideError
from foodcost.services.item_matcher_service import ItemMatcher
from foodcost.services.order_guide_service import OrderGuideProcessor
from foodcost.services.records import VendorProduct
from foodcost.services.storage import SqlAlchemyStorage

router = APIRouter()


def _to_vendor_product(p: VendorProductIn) -> VendorProduct:
    return VendorProduct(
        vendor_sku=p.vendor_sku,
        name=p.name,
        category_code=p.category_code,
        case_size=p.case_size,
        unit=p.unit,
        price=p.price,
    )


def _order_guide_http_error(e: OrderGuideError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND if e.not_found else status.HTTP_400_BAD_REQUEST,
        detail=str(e),
    )


@router.post("/vendor-matches", response_model=VendorMatchResponse)
def match_vendor_products(body: VendorMatchRequest, db: DbSession, company_id: CurrentCompany):
    """Best inventory item match per vendor SKU (read-only)."""
    matcher = ItemMatcher(SqlAlchemyStorage(db))
    matches = matcher.batch_match([_to_vendor_product(p) for p in body.products], company_id)
    return VendorMatchResponse(
        matches={sku: MatchResultResponse.model_validate(m) for sku, m in matches.items()}
    )


@router.post("/order-guides", response_model=OrderGuideUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_order_guide(body: OrderGuideUploadRequest, db: DbSession, company_id: CurrentCompany):
    processor = OrderGuideProcessor(SqlAlchemyStorage(db))
    try:
        result = processor.process(
            company_id=company_id,
            vendor_id=body.vendor_id,
            products=[_to_vendor_product(p) for p in body.products],
            file_name=body.file_name,
        )
    except OrderGuideError as e:
        raise _order_guide_http_error(e)
    return OrderGuideUploadResponse.model_validate(result)


@router.post("/order-guides/{order_guide_id}/approve", response_model=OrderGuideApprovalResponse)
def approve_order_guide(
    order_guide_id: int,
    body: OrderGuideApproveRequest,
    db: DbSession,
    company_id: CurrentCompany,
):
    processor = OrderGuideProcessor(SqlAlchemyStorage(db))
    try:
        result = processor.approve(
            order_guide_id=order_guide_id,
            company_id=company_id,
            approved_by=body.approved_by,
            create_new_inventory_items=body.create_new_inventory_items,
        )
    except OrderGuideError as e:
        raise _order_guide_http_error(e)
    return OrderGuideApprovalResponse.model_validate(result)
