"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.price_list import (
    PriceListCreate,
    PriceListUpdate,
    PriceListResponse,
    PriceListDetailResponse,
    PriceListListResponse,
    ProductResponse,
    ProductSizeResponse,
)
from models.catalog_import import (
    IMPORT_FIELDS,
    REQUIRED_FIELDS,
    UNUSED,
    ColumnMapping,
    ColumnSuggestion,
    VendorCatalogItem,
    ImportMapping,
    VendorImportRequest,
    ProductOutcomeResponse,
    ImportSummaryResponse,
    ImportPreviewResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Price lists
    "PriceListCreate",
    "PriceListUpdate",
    "PriceListResponse",
    "PriceListDetailResponse",
    "PriceListListResponse",
    "ProductResponse",
    "ProductSizeResponse",

    # Catalog import
    "IMPORT_FIELDS",
    "REQUIRED_FIELDS",
    "UNUSED",
    "ColumnMapping",
    "ColumnSuggestion",
    "VendorCatalogItem",
    "ImportMapping",
    "VendorImportRequest",
    "ProductOutcomeResponse",
    "ImportSummaryResponse",
    "ImportPreviewResponse",
]
