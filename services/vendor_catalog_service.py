"""
Vendor catalog grouping.

A fulfillment lab lists one SKU per size ("4x6 Print", "5x7 Print", ...).
This service folds those SKUs into one product per base name with a size
variant per distinct dimension, and prices each variant from vendor cost.

Pure computation: nothing is persisted here, so the result can be shown as
a preview before it is reconciled into a price list.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable, Optional
import re
import structlog

from config.settings import settings
from models.catalog_import import VendorCatalogItem, ImportMapping
from services.reconciliation_service import ProposedProduct, ProposedSize, coerce_amount
from utils.text_utils import name_key

logger = structlog.get_logger(__name__)

FALLBACK_BASE_NAME = "Other"

# "4x6", "8 x 10", "8.5X11", "16×20"
DIMENSION_TOKEN = re.compile(r"(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+(?:\.\d+)?)")

BaseNameStrategy = Callable[[VendorCatalogItem], str]


# ===================
# BASE NAME STRATEGIES
# ===================

def strip_dimensions(item: VendorCatalogItem) -> str:
    """
    Base name with size tokens removed.

    "8x10 Metal Print" → "Metal Print". A name that is nothing but a size
    falls back to the item's category, then to "Other".
    """
    stripped = " ".join(DIMENSION_TOKEN.sub(" ", item.name or "").split())
    if stripped:
        return stripped
    category = (item.category or "").strip()
    return category or FALLBACK_BASE_NAME


# ===================
# DATA CLASSES
# ===================

@dataclass
class GroupingResult:
    """Products proposed from a vendor catalog."""
    products: list[ProposedProduct] = field(default_factory=list)
    skipped_duplicates: list[str] = field(default_factory=list)
    dimension_duplicates_skipped: int = 0
    items_total: int = 0


# ===================
# GROUPER
# ===================

class VendorCatalogGrouper:
    """
    Groups vendor SKUs into products with size variants.

    Args:
        base_name_strategy: item -> grouping name. Replace it when a vendor
            supplies its own product family key.
        default_markup: Markup percentage for items without one
    """

    def __init__(
        self,
        base_name_strategy: BaseNameStrategy = strip_dimensions,
        default_markup: Optional[float] = None,
    ):
        self.base_name_strategy = base_name_strategy
        self.default_markup = (
            settings.default_markup_percentage if default_markup is None else default_markup
        )

    def group(
        self,
        items: list[VendorCatalogItem],
        mappings: Optional[Iterable[ImportMapping]] = None,
        existing_names: Iterable[str] = (),
    ) -> GroupingResult:
        """
        Fold SKUs into proposed products.

        Args:
            items: Vendor SKUs, in catalog order
            mappings: Pricing choice per SKU; SKUs without one use the
                default markup
            existing_names: Product names already in the target price list.
                Groups matching one (case-insensitive) are skipped whole.

        Returns:
            GroupingResult with groups in first-seen order
        """
        by_sku = {m.sku: m for m in (mappings or [])}
        existing = {name_key(n) for n in existing_names}
        result = GroupingResult(items_total=len(items))

        groups: dict[str, list[VendorCatalogItem]] = {}
        for item in items:
            groups.setdefault(self.base_name_strategy(item), []).append(item)

        for base_name, group_items in groups.items():
            if name_key(base_name) in existing:
                result.skipped_duplicates.append(base_name)
                logger.info("vendor_group_skipped_duplicate", product=base_name, skus=len(group_items))
                continue

            unique = self._dedupe_dimensions(group_items, result)
            first = unique[0]

            result.products.append(ProposedProduct(
                name=base_name,
                description=first.description or f"{base_name} - Multiple sizes",
                category=first.category or FALLBACK_BASE_NAME,
                base_cost=first.cost,
                source_skus=[item.sku for item in unique],
                sizes=[self._proposed_size(item, by_sku.get(item.sku)) for item in unique],
            ))

        logger.info(
            "vendor_catalog_grouped",
            items=result.items_total,
            groups=len(result.products),
            skipped_duplicates=len(result.skipped_duplicates),
            dimension_duplicates=result.dimension_duplicates_skipped,
        )

        return result

    def retail_price(self, item: VendorCatalogItem, mapping: Optional[ImportMapping]) -> Decimal:
        """Explicit price if the mapping has one, else cost plus markup."""
        if mapping is not None and mapping.custom_price is not None:
            return coerce_amount(mapping.custom_price)

        markup = self.default_markup
        if mapping is not None and mapping.markup_percentage is not None:
            markup = mapping.markup_percentage

        multiplier = 1 + Decimal(str(markup)) / 100
        return coerce_amount(Decimal(item.cost) * multiplier)

    def _proposed_size(self, item: VendorCatalogItem, mapping: Optional[ImportMapping]) -> ProposedSize:
        width, height = item_dimensions(item)
        return ProposedSize(
            size_name=size_name_for(item),
            width=width,
            height=height,
            price=self.retail_price(item, mapping),
            cost=item.cost,
        )

    @staticmethod
    def _dedupe_dimensions(
        items: list[VendorCatalogItem],
        result: GroupingResult,
    ) -> list[VendorCatalogItem]:
        """
        First item per (width, height) wins; later ones are dropped.

        Items with no known dimensions are keyed by their name instead.
        """
        seen: set[tuple] = set()
        unique = []
        for item in items:
            width, height = item_dimensions(item)
            key = (width, height) if width and height else (name_key(item.name),)
            if key in seen:
                result.dimension_duplicates_skipped += 1
                logger.debug("vendor_sku_skipped_same_dimensions", sku=item.sku, name=item.name)
                continue
            seen.add(key)
            unique.append(item)
        return unique


def item_dimensions(item: VendorCatalogItem) -> tuple[Optional[float], Optional[float]]:
    """
    (width, height) of an item.

    Missing values are read from the first size token in the name, so
    "8x10 Print" without width/height fields is (8.0, 10.0).
    """
    width, height = item.width, item.height
    if width and height:
        return width, height

    match = DIMENSION_TOKEN.search(item.name or "")
    if match:
        width = width or float(match.group(1))
        height = height or float(match.group(2))
    return width, height


def size_name_for(item: VendorCatalogItem) -> str:
    """Size label: "8x10" when both dimensions are known, else the vendor name."""
    width, height = item_dimensions(item)
    if width and height:
        return f"{width:g}x{height:g}"
    return item.name


# Singleton instance for convenience
_grouper: Optional[VendorCatalogGrouper] = None


def get_vendor_catalog_grouper() -> VendorCatalogGrouper:
    """Get or create the default VendorCatalogGrouper."""
    global _grouper
    if _grouper is None:
        _grouper = VendorCatalogGrouper()
    return _grouper
