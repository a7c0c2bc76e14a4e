"""
Catalog import schemas.

Column mappings, vendor catalog items and the request/response shapes of the
import endpoints. Internal parse/plan records are dataclasses living next to
the code that builds them (parsers/, services/).
"""

from decimal import Decimal
from typing import Optional, Literal

from pydantic import BaseModel, Field, field_validator

from models.base import BaseSchema


IMPORT_FIELDS = ("product", "size", "price", "width", "height", "cost", "description")
REQUIRED_FIELDS = ("product", "price")

UNUSED = -1

# Largest money amount accepted from a vendor (numeric(10, 2) columns)
MAX_AMOUNT = Decimal("99999999.99")


class ColumnMapping(BaseModel):
    """
    Which column holds which field. -1 means the field is unused.

    Example:
        ColumnMapping(product=0, size=1, price=2)
    """

    product: int = Field(UNUSED, ge=UNUSED)
    size: int = Field(UNUSED, ge=UNUSED)
    price: int = Field(UNUSED, ge=UNUSED)
    width: int = Field(UNUSED, ge=UNUSED)
    height: int = Field(UNUSED, ge=UNUSED)
    cost: int = Field(UNUSED, ge=UNUSED)
    description: int = Field(UNUSED, ge=UNUSED)

    def index_of(self, field: str) -> int:
        return getattr(self, field)

    def is_used(self, field: str) -> bool:
        return self.index_of(field) != UNUSED

    @property
    def missing_required(self) -> list[str]:
        """Required fields that are still unused."""
        return [f for f in REQUIRED_FIELDS if not self.is_used(f)]

    @classmethod
    def from_string(cls, value: str) -> "ColumnMapping":
        """
        Build a mapping from "product=0,size=1,price=2".

        Raises:
            ValueError: On unknown fields or non-integer indices
        """
        values = {}
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            name, _, index = part.partition("=")
            name = name.strip().lower()
            if name not in IMPORT_FIELDS:
                raise ValueError(f"Unknown import field: {name}")
            values[name] = int(index.strip())
        return cls(**values)


class ColumnSuggestion(BaseModel):
    """Detected headers and the mapping suggested for them."""

    headers: list[str]
    mapping: ColumnMapping
    missing_required: list[str] = Field(default_factory=list)


# ===================
# VENDOR CATALOG
# ===================

class VendorCatalogItem(BaseSchema):
    """
    One size-specific SKU from a fulfillment lab's catalog.

    Already deserialized by the upstream integration.
    """

    sku: str = Field(..., min_length=1, description="Vendor SKU / product UID")
    name: str = Field(..., description="Vendor product name, e.g. '8x10 Metal Print'")
    cost: Decimal = Field(..., ge=0, le=MAX_AMOUNT, description="Vendor cost per unit")
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("sku", mode="before")
    @classmethod
    def sku_as_string(cls, v) -> str:
        return str(v)


class ImportMapping(BaseSchema):
    """Pricing choice for one vendor SKU: a markup or an explicit price."""

    sku: str
    markup_percentage: Optional[float] = Field(None, ge=0, le=1000)
    custom_price: Optional[Decimal] = Field(None, ge=0, le=MAX_AMOUNT)

    @field_validator("sku", mode="before")
    @classmethod
    def sku_as_string(cls, v) -> str:
        return str(v)


class VendorImportRequest(BaseModel):
    """Body of POST /api/price-lists/{id}/vendor-import."""

    items: list[VendorCatalogItem] = Field(..., min_length=1)
    mappings: list[ImportMapping] = Field(default_factory=list)
    dry_run: bool = False


# ===================
# RESPONSES
# ===================

ProductOutcome = Literal["created_new", "sizes_appended", "skipped_duplicate"]


class ProductOutcomeResponse(BaseModel):
    """What happened (or would happen) to one proposed product."""

    product_name: str
    outcome: ProductOutcome
    product_id: Optional[str] = None
    sizes_created: list[str] = Field(default_factory=list)
    sizes_skipped: list[str] = Field(default_factory=list)
    suggested_match: Optional[str] = None
    match_score: Optional[float] = None


class ImportSummaryResponse(BaseModel):
    """Aggregate report of one import call."""

    price_list_id: str
    dry_run: bool
    rows_parsed: int = 0
    rows_skipped: int = 0
    duplicates_skipped: int = 0
    invalid_price_skipped: int = 0
    products_created: int = 0
    products_updated: int = 0
    products_skipped: int = 0
    sizes_created: int = 0
    sizes_skipped: int = 0
    skipped_duplicates: list[str] = Field(default_factory=list)
    dimension_duplicates_skipped: int = 0
    products: list[ProductOutcomeResponse] = Field(default_factory=list)


class ImportPreviewResponse(BaseModel):
    """Dry-run summary plus the id needed to confirm it."""

    preview_id: str
    expires_in_minutes: int
    summary: ImportSummaryResponse
