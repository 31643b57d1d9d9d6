"""Item Matcher: score vendor catalog rows against a company's inventory items.

Each candidate gets a weighted score:
    name (0.6) + SKU (0.25) + category (0.15)

The highest score wins; on ties the first item seen is kept.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from foodcost.core.config import settings
from foodcost.services.records import CategoryRecord, InventoryItemRecord, VendorProduct
from foodcost.services.storage import FoodCostStorage

logger = logging.getLogger(__name__)

NAME_WEIGHT = 0.6
SKU_WEIGHT = 0.25
CATEGORY_WEIGHT = 0.15

# Vendor category codes mapped to words commonly used in inventory category names
CATEGORY_MAPPINGS: Dict[str, List[str]] = {
    "dairy": ["dairy", "milk", "cheese", "walk-in"],
    "frozen": ["frozen", "freezer"],
    "produce": ["produce", "fruits", "vegetables", "fresh"],
    "meat": ["meat", "protein", "butcher", "walk-in"],
    "dry": ["dry", "pantry", "grocery"],
    "beverage": ["beverage", "drinks", "soda"],
    "bakery": ["bakery", "bread", "baked goods"],
}


class MatchConfidence(str, Enum):
    """Confidence tier of a match."""
    HIGH = "high"      # auto-link
    MEDIUM = "medium"  # review
    LOW = "low"        # review
    NONE = "none"      # new item


@dataclass
class MatchResult:
    """Result of matching one vendor product."""
    inventory_item_id: Optional[int]
    inventory_item_name: Optional[str]
    confidence: MatchConfidence
    score: float  # 0.0 to 1.0
    match_reason: str


@dataclass
class MatchScores:
    name: float
    sku: float
    category: float

    @property
    def total(self) -> float:
        return self.name * NAME_WEIGHT + self.sku * SKU_WEIGHT + self.category * CATEGORY_WEIGHT


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def name_similarity(a: str, b: str) -> float:
    """Exact 1.0, containment 0.8, otherwise normalized edit similarity."""
    s1 = (a or "").lower().strip()
    s2 = (b or "").lower().strip()

    if s1 == s2:
        return 1.0

    if s1 in s2 or s2 in s1:
        return 0.8

    distance = levenshtein_distance(s1, s2)
    max_length = max(len(s1), len(s2))
    return max(0.0, 1 - distance / max_length)


def sku_similarity(vendor_sku: Optional[str], inventory_sku: Optional[str]) -> float:
    if not vendor_sku or not inventory_sku:
        return 0.0

    v = vendor_sku.lower().strip()
    i = inventory_sku.lower().strip()

    if v == i:
        return 1.0
    if v in i or i in v:
        return 0.5
    return 0.0


def category_similarity(vendor_category: Optional[str], inventory_category: Optional[str]) -> float:
    if not vendor_category or not inventory_category:
        return 0.0

    v = vendor_category.lower().strip()
    i = inventory_category.lower().strip()

    if v == i:
        return 1.0

    # e.g. "frozen" vs "frozen foods"
    if v in i or i in v:
        return 0.8

    for key, variants in CATEGORY_MAPPINGS.items():
        if key in v or any(variant in v for variant in variants):
            if any(variant in i for variant in variants):
                return 0.7

    similarity = name_similarity(v, i)
    return similarity * 0.6 if similarity > 0.5 else 0.0


def determine_confidence(scores: MatchScores) -> MatchConfidence:
    total = scores.total
    if total >= 0.85 or scores.sku == 1.0:
        return MatchConfidence.HIGH
    if total >= 0.65:
        return MatchConfidence.MEDIUM
    if total >= 0.45:
        return MatchConfidence.LOW
    return MatchConfidence.NONE


def build_match_reason(scores: MatchScores) -> str:
    reasons = []

    if scores.name >= 0.9:
        reasons.append("Strong name match")
    elif scores.name >= 0.7:
        reasons.append("Good name match")
    elif scores.name >= 0.5:
        reasons.append("Partial name match")

    if scores.sku == 1.0:
        reasons.append("Exact SKU match")
    elif scores.sku > 0:
        reasons.append("Partial SKU match")

    return ", ".join(reasons) if reasons else "Low similarity"


class MatchCatalog:
    """Active inventory items and category names of one company, fetched once per batch."""

    def __init__(self, items: List[InventoryItemRecord], categories: List[CategoryRecord]):
        self.items = items
        self.category_names = {c.id: c.name for c in categories}

    @classmethod
    def load(cls, storage: FoodCostStorage, company_id: int) -> "MatchCatalog":
        return cls(
            storage.get_inventory_items(company_id, active_only=True),
            storage.get_categories(company_id),
        )


class ItemMatcher:
    """Finds the best inventory item for vendor products."""

    def __init__(self, storage: FoodCostStorage, max_workers: Optional[int] = None):
        self.storage = storage
        self.max_workers = max_workers or settings.match_max_workers

    def find_best_match(self, product: VendorProduct, company_id: int) -> MatchResult:
        return self.match_against(product, MatchCatalog.load(self.storage, company_id))

    def match_all(self, products: List[VendorProduct], company_id: int) -> List[MatchResult]:
        """Match many products against one catalog snapshot, in input order."""
        if not products:
            return []

        catalog = MatchCatalog.load(self.storage, company_id)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            matches = list(pool.map(lambda p: self.match_against(p, catalog), products))

        logger.info(f"Matched {len(products)} vendor products against {len(catalog.items)} items")
        return matches

    def batch_match(self, products: List[VendorProduct], company_id: int) -> Dict[str, MatchResult]:
        """Like match_all, keyed by vendor SKU.

        A SKU that appears twice keeps the result of its last occurrence.
        """
        matches = self.match_all(products, company_id)
        return {product.vendor_sku: match for product, match in zip(products, matches)}

    @staticmethod
    def match_against(product: VendorProduct, catalog: MatchCatalog) -> MatchResult:
        if not catalog.items:
            return MatchResult(
                inventory_item_id=None,
                inventory_item_name=None,
                confidence=MatchConfidence.NONE,
                score=0.0,
                match_reason="No inventory items in system",
            )

        best = MatchResult(
            inventory_item_id=None,
            inventory_item_name=None,
            confidence=MatchConfidence.NONE,
            score=0.0,
            match_reason="No match found",
        )

        for item in catalog.items:
            category_name = catalog.category_names.get(item.category_id) if item.category_id else None
            scores = MatchScores(
                name=name_similarity(product.name, item.name),
                sku=sku_similarity(product.vendor_sku, item.plu_sku),
                category=category_similarity(product.category_code, category_name),
            )
            total = scores.total
            if total > best.score:
                best = MatchResult(
                    inventory_item_id=item.id,
                    inventory_item_name=item.name,
                    confidence=determine_confidence(scores),
                    score=total,
                    match_reason=build_match_reason(scores),
                )

        return best
