"""
Catalog import orchestration.

Runs one import end to end: price sheet rows (detect → parse → group by
product) or vendor SKUs (group → price), then reconciliation against the
target price list, then - unless it is a dry run - the writes.

Structural problems raise before anything is written. Everything else ends
up as counts in the ImportSummary.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union
import structlog

from config.settings import settings
from exceptions import PriceListNotFoundError, PriceListNameExistsError
from models.catalog_import import (
    ColumnMapping,
    ColumnSuggestion,
    VendorCatalogItem,
    ImportMapping,
    ImportSummaryResponse,
    ProductOutcomeResponse,
)
from models.price_list import PriceListCreate
from parsers.column_detector import detect_columns_from_text, suggest_columns
from parsers.price_sheet_parser import (
    ImportedRow,
    PriceSheetParseResult,
    parse_price_rows,
    split_rows,
)
from services.catalog_store import CatalogSnapshot, CatalogStore, get_catalog_store
from services.price_list_service import PriceListService, get_price_list_service
from services.reconciliation_service import (
    ProposedProduct,
    ProposedSize,
    ReconciliationPlan,
    apply_plan,
    plan_reconciliation,
)
from services.vendor_catalog_service import VendorCatalogGrouper, get_vendor_catalog_grouper
from utils.text_utils import find_best_match, name_key

logger = structlog.get_logger(__name__)


# ===================
# DATA CLASSES
# ===================

@dataclass
class ImportSummary:
    """Aggregate report of one import call."""
    price_list_id: str
    plan: ReconciliationPlan
    dry_run: bool = False

    # Price sheet statistics
    rows_parsed: int = 0
    duplicates_skipped: int = 0
    invalid_price_skipped: int = 0

    # Vendor catalog statistics
    skipped_duplicates: list[str] = field(default_factory=list)
    dimension_duplicates_skipped: int = 0

    @property
    def rows_skipped(self) -> int:
        return self.duplicates_skipped + self.invalid_price_skipped

    @property
    def products_created(self) -> int:
        return self.plan.products_created

    @property
    def products_updated(self) -> int:
        return self.plan.products_updated

    @property
    def products_skipped(self) -> int:
        """Existing products with nothing new, plus vendor groups skipped whole."""
        return self.plan.products_skipped + len(self.skipped_duplicates)

    @property
    def sizes_created(self) -> int:
        return self.plan.sizes_created

    @property
    def sizes_skipped(self) -> int:
        return self.plan.sizes_skipped

    def to_response(self) -> ImportSummaryResponse:
        """Convert to API response model."""
        return ImportSummaryResponse(
            price_list_id=self.price_list_id,
            dry_run=self.dry_run,
            rows_parsed=self.rows_parsed,
            rows_skipped=self.rows_skipped,
            duplicates_skipped=self.duplicates_skipped,
            invalid_price_skipped=self.invalid_price_skipped,
            products_created=self.products_created,
            products_updated=self.products_updated,
            products_skipped=self.products_skipped,
            sizes_created=self.sizes_created,
            sizes_skipped=self.sizes_skipped,
            skipped_duplicates=self.skipped_duplicates,
            dimension_duplicates_skipped=self.dimension_duplicates_skipped,
            products=[ProductOutcomeResponse(**p.to_dict()) for p in self.plan.products],
        )


# ===================
# HELPERS
# ===================

def rows_to_proposals(rows: list[ImportedRow]) -> list[ProposedProduct]:
    """
    Group parsed rows into one proposal per product name.

    Names group case-insensitively in first-seen order; the first spelling
    is kept. Description and base cost come from the first row that has one.
    """
    proposals: dict[str, ProposedProduct] = {}

    for row in rows:
        key = name_key(row.product_name)
        proposal = proposals.get(key)
        if proposal is None:
            proposal = ProposedProduct(name=row.product_name)
            proposals[key] = proposal

        if proposal.description is None and row.description:
            proposal.description = row.description
        if proposal.base_cost is None and row.cost is not None:
            proposal.base_cost = row.cost

        proposal.sizes.append(ProposedSize(
            size_name=row.size_name,
            price=row.price,
            cost=row.cost,
            width=row.width,
            height=row.height,
        ))

    return list(proposals.values())


# ===================
# SERVICE
# ===================

class CatalogImportService:
    """
    Catalog import business logic.

    Handles price sheet and vendor catalog imports into one price list, and
    price sheets that start a new price list.
    """

    def __init__(
        self,
        store: Optional[CatalogStore] = None,
        grouper: Optional[VendorCatalogGrouper] = None,
        match_threshold: Optional[float] = None,
        delimiter: Optional[str] = None,
        price_lists: Optional[PriceListService] = None,
    ):
        self.store = store if store is not None else get_catalog_store()
        self.grouper = grouper if grouper is not None else get_vendor_catalog_grouper()
        self.match_threshold = settings.match_threshold if match_threshold is None else match_threshold
        self.delimiter = delimiter or settings.import_delimiter
        self.price_lists = price_lists

    # ===================
    # PRICE SHEETS
    # ===================

    def detect_columns(self, source: Union[str, list[list[str]]]) -> ColumnSuggestion:
        """Headers and suggested mapping of a price sheet."""
        if isinstance(source, str):
            return detect_columns_from_text(source, self.delimiter)
        return suggest_columns(source[0] if source else [])

    def import_price_sheet(
        self,
        source: Union[str, list[list[str]]],
        price_list_id: str,
        mapping: Optional[ColumnMapping] = None,
        dry_run: bool = False,
    ) -> ImportSummary:
        """
        Import a price sheet into a price list.

        Args:
            source: Delimited text, or rows already loaded from an upload
            price_list_id: Target price list
            mapping: Manual column mapping; detected if None
            dry_run: Plan only, write nothing

        Returns:
            ImportSummary

        Raises:
            PriceListNotFoundError: Unknown price list
            EmptyFileError, MissingRequiredColumnError, NoValidRowsError:
                Structural problems with the sheet
            PersistenceFailureError: A product could not be written
        """
        logger.info("price_sheet_import_started", price_list_id=price_list_id, dry_run=dry_run)

        self._ensure_price_list(price_list_id)

        rows = split_rows(source, self.delimiter) if isinstance(source, str) else source
        parsed = parse_price_rows(rows, mapping)

        snapshot = self.store.load_snapshot(price_list_id)
        plan = plan_reconciliation(rows_to_proposals(parsed.rows), snapshot)
        self._suggest_matches(plan, snapshot)

        summary = self._summary_from_sheet(price_list_id, plan, parsed, dry_run)
        return self._finish(summary)

    def preview_price_sheet(
        self,
        source: Union[str, list[list[str]]],
        price_list_id: str,
        mapping: Optional[ColumnMapping] = None,
    ) -> ImportSummary:
        """Dry run of import_price_sheet."""
        return self.import_price_sheet(source, price_list_id, mapping, dry_run=True)

    def import_new_price_list(
        self,
        source: Union[str, list[list[str]]],
        name: str,
        description: Optional[str] = None,
        mapping: Optional[ColumnMapping] = None,
    ) -> ImportSummary:
        """
        Create a price list and fill it from a price sheet in one step.

        The sheet is parsed before the price list is created, so a sheet with
        structural problems leaves nothing behind. A write failure keeps the
        new price list with the products written before it.

        Raises:
            PriceListNameExistsError: Name already taken
            EmptyFileError, MissingRequiredColumnError, NoValidRowsError:
                Structural problems with the sheet
            PersistenceFailureError: A product could not be written
        """
        logger.info("price_list_import_started", name=name)

        price_lists = self.price_lists if self.price_lists is not None else get_price_list_service()
        if price_lists.get_by_name(name):
            raise PriceListNameExistsError(name)

        rows = split_rows(source, self.delimiter) if isinstance(source, str) else source
        parsed = parse_price_rows(rows, mapping)

        price_list = price_lists.create(PriceListCreate(name=name, description=description))

        snapshot = self.store.load_snapshot(price_list.id)
        plan = plan_reconciliation(rows_to_proposals(parsed.rows), snapshot)

        summary = self._summary_from_sheet(price_list.id, plan, parsed, dry_run=False)
        return self._finish(summary)

    # ===================
    # VENDOR CATALOGS
    # ===================

    def import_vendor_catalog(
        self,
        items: list[VendorCatalogItem],
        price_list_id: str,
        mappings: Optional[Iterable[ImportMapping]] = None,
        dry_run: bool = False,
    ) -> ImportSummary:
        """
        Import vendor SKUs into a price list.

        Groups whose name already exists in the price list are skipped
        whole and listed in skipped_duplicates.

        Raises:
            PriceListNotFoundError: Unknown price list
            PersistenceFailureError: A product could not be written
        """
        logger.info(
            "vendor_import_started",
            price_list_id=price_list_id,
            items=len(items),
            dry_run=dry_run,
        )

        self._ensure_price_list(price_list_id)

        snapshot = self.store.load_snapshot(price_list_id)
        grouping = self.grouper.group(items, mappings, snapshot.product_names)
        plan = plan_reconciliation(grouping.products, snapshot)

        summary = ImportSummary(
            price_list_id=str(price_list_id),
            plan=plan,
            dry_run=dry_run,
            skipped_duplicates=grouping.skipped_duplicates,
            dimension_duplicates_skipped=grouping.dimension_duplicates_skipped,
        )
        return self._finish(summary)

    def preview_vendor_import(
        self,
        items: list[VendorCatalogItem],
        price_list_id: str,
        mappings: Optional[Iterable[ImportMapping]] = None,
    ) -> ImportSummary:
        """Dry run of import_vendor_catalog."""
        return self.import_vendor_catalog(items, price_list_id, mappings, dry_run=True)

    # ===================
    # CONFIRMATION
    # ===================

    def commit(self, preview: ImportSummary) -> ImportSummary:
        """
        Write a previously previewed import.

        The plan is re-checked row by row against current storage, so
        anything added since the preview is skipped, not duplicated.
        """
        logger.info("import_preview_committing", price_list_id=preview.price_list_id)
        self._ensure_price_list(preview.price_list_id)
        preview.dry_run = False
        return self._finish(preview)

    # ===================
    # INTERNALS
    # ===================

    def _ensure_price_list(self, price_list_id: str) -> None:
        if not self.store.price_list_exists(price_list_id):
            raise PriceListNotFoundError(price_list_id)

    def _suggest_matches(self, plan: ReconciliationPlan, snapshot: CatalogSnapshot) -> None:
        """Attach the closest existing product to each product that will be new."""
        names = snapshot.product_names
        if not names:
            return
        for product_plan in plan.products:
            if not product_plan.is_new:
                continue
            match = find_best_match(product_plan.product_name, names, self.match_threshold)
            if match:
                product_plan.suggested_match, product_plan.match_score = match

    @staticmethod
    def _summary_from_sheet(
        price_list_id: str,
        plan: ReconciliationPlan,
        parsed: PriceSheetParseResult,
        dry_run: bool,
    ) -> ImportSummary:
        return ImportSummary(
            price_list_id=str(price_list_id),
            plan=plan,
            dry_run=dry_run,
            rows_parsed=parsed.rows_parsed,
            duplicates_skipped=parsed.duplicates_skipped,
            invalid_price_skipped=parsed.invalid_price_skipped,
        )

    def _finish(self, summary: ImportSummary) -> ImportSummary:
        if not summary.dry_run:
            apply_plan(summary.plan, self.store)

        logger.info(
            "import_completed",
            price_list_id=summary.price_list_id,
            dry_run=summary.dry_run,
            rows_parsed=summary.rows_parsed,
            rows_skipped=summary.rows_skipped,
            products_created=summary.products_created,
            products_skipped=summary.products_skipped,
            sizes_created=summary.sizes_created,
        )
        return summary


# Singleton instance for convenience
_catalog_import_service: Optional[CatalogImportService] = None


def get_catalog_import_service() -> CatalogImportService:
    """Get or create CatalogImportService instance."""
    global _catalog_import_service
    if _catalog_import_service is None:
        _catalog_import_service = CatalogImportService()
    return _catalog_import_service
