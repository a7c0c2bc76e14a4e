"""
Catalog reconciliation.

Merges proposed products (each with size variants) into a price list.
Planning is a pure function over a CatalogSnapshot so it can back a dry run;
applying replays the plan through a CatalogStore one product at a time.

Rules:
    - Products match existing ones by exact, case-insensitive name.
    - Existing sizes are never overwritten; re-importing a size is a skip.
    - Missing or unusable prices/costs are written as 0.
    - Imports to the same price list must be serialized by the caller.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import structlog

from exceptions import PersistenceFailureError
from services.catalog_store import CatalogSnapshot, CatalogStore
from utils.text_utils import name_key, clean_text

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")

CREATED_NEW = "created_new"
SIZES_APPENDED = "sizes_appended"
SKIPPED_DUPLICATE = "skipped_duplicate"


# ===================
# DATA CLASSES
# ===================

@dataclass
class ProposedSize:
    """A size variant as proposed by a parser or the vendor grouper."""
    size_name: str
    price: Any = None
    cost: Any = None
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass
class ProposedProduct:
    """A product and its sizes, before reconciliation."""
    name: str
    sizes: list[ProposedSize] = field(default_factory=list)
    description: Optional[str] = None
    category: Optional[str] = None
    base_cost: Any = None
    source_skus: list[str] = field(default_factory=list)


@dataclass
class PlannedSize:
    """A size that will be inserted, with amounts already coerced."""
    size_name: str
    price: Decimal
    cost: Decimal


@dataclass
class ProductPlan:
    """What reconciliation decided for one product."""
    product_name: str
    is_new: bool
    product_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    base_cost: Decimal = ZERO
    sizes_to_create: list[PlannedSize] = field(default_factory=list)
    sizes_skipped: list[str] = field(default_factory=list)
    suggested_match: Optional[str] = None
    match_score: Optional[float] = None
    known_sizes: set[str] = field(default_factory=set, repr=False)

    @property
    def outcome(self) -> str:
        if self.is_new:
            return CREATED_NEW
        if self.sizes_to_create:
            return SIZES_APPENDED
        return SKIPPED_DUPLICATE

    def to_dict(self) -> dict:
        return {
            "product_name": self.product_name,
            "outcome": self.outcome,
            "product_id": self.product_id,
            "sizes_created": [s.size_name for s in self.sizes_to_create],
            "sizes_skipped": list(self.sizes_skipped),
            "suggested_match": self.suggested_match,
            "match_score": round(self.match_score, 2) if self.match_score is not None else None,
        }


@dataclass
class ReconciliationPlan:
    """Per-product decisions for one import into one price list."""
    price_list_id: str
    products: list[ProductPlan] = field(default_factory=list)
    applied: bool = False

    @property
    def products_created(self) -> int:
        return sum(1 for p in self.products if p.outcome == CREATED_NEW)

    @property
    def products_updated(self) -> int:
        return sum(1 for p in self.products if p.outcome == SIZES_APPENDED)

    @property
    def products_skipped(self) -> int:
        return sum(1 for p in self.products if p.outcome == SKIPPED_DUPLICATE)

    @property
    def sizes_created(self) -> int:
        return sum(len(p.sizes_to_create) for p in self.products)

    @property
    def sizes_skipped(self) -> int:
        return sum(len(p.sizes_skipped) for p in self.products)

    def counts(self) -> dict:
        return {
            "products_created": self.products_created,
            "products_updated": self.products_updated,
            "products_skipped": self.products_skipped,
            "sizes_created": self.sizes_created,
            "sizes_skipped": self.sizes_skipped,
        }


# ===================
# COERCION
# ===================

def coerce_amount(value: Any) -> Decimal:
    """
    Money value safe to persist.

    Missing, non-numeric, non-finite, negative and unrepresentably large
    values become 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        return ZERO


# ===================
# PLANNING
# ===================

def plan_reconciliation(
    proposals: list[ProposedProduct],
    snapshot: CatalogSnapshot,
) -> ReconciliationPlan:
    """
    Decide create / reuse / skip for every proposed product and size.

    Pure: reads only the snapshot. Proposals whose names collide
    (case-insensitive) are merged into one plan entry; the first proposal's
    description, category and cost win.

    Args:
        proposals: Products in import order
        snapshot: Existing state of the target price list

    Returns:
        ReconciliationPlan in first-seen order
    """
    plan = ReconciliationPlan(price_list_id=snapshot.price_list_id)
    by_key: dict[str, ProductPlan] = {}

    for proposal in proposals:
        name = (proposal.name or "").strip()
        if not name:
            logger.debug("product_skipped_empty_name", sizes=len(proposal.sizes))
            continue

        key = name_key(name)
        product_plan = by_key.get(key)

        if product_plan is None:
            existing = snapshot.find(name)
            product_plan = ProductPlan(
                product_name=existing.name if existing else name,
                is_new=existing is None,
                product_id=existing.id if existing else None,
                description=clean_text(proposal.description, 1000),
                category=clean_text(proposal.category, 120),
                base_cost=coerce_amount(proposal.base_cost),
                known_sizes=set(existing.size_names) if existing else set(),
            )
            by_key[key] = product_plan
            plan.products.append(product_plan)

        for size in proposal.sizes:
            size_name = (size.size_name or "").strip()
            if not size_name:
                logger.debug("size_skipped_empty_name", product=name)
                continue

            size_key = name_key(size_name)
            if size_key in product_plan.known_sizes:
                product_plan.sizes_skipped.append(size_name)
                continue

            product_plan.known_sizes.add(size_key)
            product_plan.sizes_to_create.append(PlannedSize(
                size_name=size_name,
                price=coerce_amount(size.price),
                cost=coerce_amount(size.cost),
            ))

    logger.info(
        "reconciliation_planned",
        price_list_id=plan.price_list_id,
        proposals=len(proposals),
        **plan.counts(),
    )

    return plan


# ===================
# APPLYING
# ===================

def apply_plan(plan: ReconciliationPlan, store: CatalogStore) -> ReconciliationPlan:
    """
    Write a plan through the store, one unit of work per product.

    Existence is re-checked right before each insert, so rows that appeared
    since the snapshot are reused or skipped instead of duplicated. The plan
    is updated in place to reflect what was actually written.

    Raises:
        PersistenceFailureError: If a product's writes fail. That product is
            rolled back; products before it stay committed and are counted
            in the error's summary.
    """
    price_list_id = plan.price_list_id
    committed = ReconciliationPlan(price_list_id=price_list_id)

    logger.info("applying_reconciliation", price_list_id=price_list_id, products=len(plan.products))

    for product_plan in plan.products:
        if product_plan.outcome == SKIPPED_DUPLICATE:
            committed.products.append(product_plan)
            continue

        try:
            with store.transaction(product_plan.product_name):
                _apply_product(product_plan, price_list_id, store)
        except Exception as e:
            logger.error(
                "product_write_failed",
                price_list_id=price_list_id,
                product=product_plan.product_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceFailureError(
                product_plan.product_name,
                str(e),
                summary=committed.counts(),
            ) from e

        committed.products.append(product_plan)

    plan.applied = True

    logger.info(
        "reconciliation_applied",
        price_list_id=price_list_id,
        **plan.counts(),
    )

    return plan


def _apply_product(product_plan: ProductPlan, price_list_id: str, store: CatalogStore) -> None:
    name = product_plan.product_name
    product_id = product_plan.product_id or store.product_exists(price_list_id, name)

    if product_id is None:
        product_id = store.create_product(
            price_list_id,
            name,
            product_plan.description,
            product_plan.category,
            product_plan.base_cost,
        )
    else:
        product_plan.is_new = False

    created: list[PlannedSize] = []
    for size in product_plan.sizes_to_create:
        if store.size_exists(product_id, price_list_id, size.size_name):
            product_plan.sizes_skipped.append(size.size_name)
            continue
        store.create_size(product_id, price_list_id, size.size_name, size.price, size.cost)
        created.append(size)

    product_plan.product_id = product_id
    product_plan.sizes_to_create = created
