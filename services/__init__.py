"""
Business logic services.

Each service handles one domain area.
"""

from services.catalog_store import (
    CatalogStore,
    CatalogSnapshot,
    ExistingProduct,
    SupabaseCatalogStore,
    get_catalog_store,
)
from services.reconciliation_service import (
    ProposedProduct,
    ProposedSize,
    ProductPlan,
    ReconciliationPlan,
    plan_reconciliation,
    apply_plan,
)
from services.vendor_catalog_service import (
    VendorCatalogGrouper,
    GroupingResult,
    strip_dimensions,
    get_vendor_catalog_grouper,
)
from services.catalog_import_service import (
    CatalogImportService,
    ImportSummary,
    get_catalog_import_service,
)
from services.price_list_service import PriceListService, get_price_list_service

__all__ = [
    "CatalogStore",
    "CatalogSnapshot",
    "ExistingProduct",
    "SupabaseCatalogStore",
    "get_catalog_store",
    "ProposedProduct",
    "ProposedSize",
    "ProductPlan",
    "ReconciliationPlan",
    "plan_reconciliation",
    "apply_plan",
    "VendorCatalogGrouper",
    "GroupingResult",
    "strip_dimensions",
    "get_vendor_catalog_grouper",
    "CatalogImportService",
    "ImportSummary",
    "get_catalog_import_service",
    "PriceListService",
    "get_price_list_service",
]
