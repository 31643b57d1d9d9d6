"""Schemas for vendor product matching."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from foodcost.services.item_matcher_service import MatchConfidence


class VendorProductIn(BaseModel):
    vendor_sku: str = Field(..., min_length=1)
    name: str
    category_code: Optional[str] = None
    case_size: Optional[float] = None
    unit: Optional[str] = None
    price: Optional[float] = None


class VendorMatchRequest(BaseModel):
    products: List[VendorProductIn] = Field(..., min_length=1)


class MatchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inventory_item_id: Optional[int] = None
    inventory_item_name: Optional[str] = None
    confidence: MatchConfidence
    score: float
    match_reason: str


class VendorMatchResponse(BaseModel):
    matches: Dict[str, MatchResultResponse]


# ============== Order guides ==============

class OrderGuideUploadRequest(BaseModel):
    vendor_id: int
    file_name: Optional[str] = None
    products: List[VendorProductIn] = Field(..., min_length=1)


class OrderGuideUploadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_guide_id: int
    total_items: int
    high_confidence_matches: int
    medium_confidence_matches: int
    low_confidence_matches: int
    no_matches: int
    ready_for_review: bool


class OrderGuideApproveRequest(BaseModel):
    approved_by: Optional[str] = None
    create_new_inventory_items: bool = False


class OrderGuideApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vendor_items_created: int
    inventory_items_created: int
    lines_skipped: int
