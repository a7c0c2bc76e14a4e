"""
Catalog storage for imports.

CatalogStore is the persistence collaborator the import engine hands its
mutations to. SupabaseCatalogStore implements it over the price_lists,
products, price_list_products and product_sizes tables.

Supabase's REST API has no client-side transactions, so each product's
writes run inside an undo log: if any write fails, the rows already written
for that product are deleted again in reverse order.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Optional, Protocol
import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from utils.text_utils import escape_like, name_key

logger = structlog.get_logger(__name__)


# ===================
# SNAPSHOT
# ===================

@dataclass
class ExistingProduct:
    """A product already linked to the target price list."""
    id: str
    name: str
    size_names: set[str] = field(default_factory=set)  # name_key() of each size

    def has_size(self, size_name: str) -> bool:
        return name_key(size_name) in self.size_names


@dataclass
class CatalogSnapshot:
    """Existing products and sizes of one price list, keyed case-insensitively."""
    price_list_id: str
    products: dict[str, ExistingProduct] = field(default_factory=dict)

    def find(self, name: str) -> Optional[ExistingProduct]:
        return self.products.get(name_key(name))

    @property
    def product_names(self) -> list[str]:
        return [p.name for p in self.products.values()]

    @classmethod
    def from_rows(
        cls,
        price_list_id: str,
        products: list[dict],
        sizes: list[dict],
    ) -> "CatalogSnapshot":
        """
        Build from raw rows.

        Args:
            products: [{"id", "name"}, ...] linked to the price list
            sizes: [{"product_id", "size_name"}, ...] of the price list
        """
        snapshot = cls(price_list_id=str(price_list_id))
        by_id: dict[str, ExistingProduct] = {}

        for row in products:
            key = name_key(row.get("name"))
            if not key or key in snapshot.products:
                continue
            product = ExistingProduct(id=str(row["id"]), name=row["name"])
            snapshot.products[key] = product
            by_id[product.id] = product

        for row in sizes:
            product = by_id.get(str(row.get("product_id")))
            if product and row.get("size_name"):
                product.size_names.add(name_key(row["size_name"]))

        return snapshot


# ===================
# PROTOCOL
# ===================

class CatalogStore(Protocol):
    """Persistence operations the import engine needs."""

    def price_list_exists(self, price_list_id: str) -> bool: ...

    def load_snapshot(self, price_list_id: str) -> CatalogSnapshot: ...

    def product_exists(self, price_list_id: str, name: str) -> Optional[str]: ...

    def create_product(
        self,
        price_list_id: str,
        name: str,
        description: Optional[str],
        category: Optional[str],
        cost: Decimal,
    ) -> str: ...

    def size_exists(self, product_id: str, price_list_id: str, size_name: str) -> bool: ...

    def create_size(
        self,
        product_id: str,
        price_list_id: str,
        size_name: str,
        price: Decimal,
        cost: Decimal,
    ) -> str: ...

    def transaction(self, product_name: str): ...


# ===================
# SUPABASE
# ===================

class SupabaseCatalogStore:
    """
    CatalogStore over Supabase tables.

    Name lookups are case-insensitive (ILIKE without wildcards).
    """

    def __init__(self):
        self.db = get_supabase_client()
        self._undo: Optional[list[tuple[str, str, str]]] = None

    # ===================
    # READ OPERATIONS
    # ===================

    def price_list_exists(self, price_list_id: str) -> bool:
        try:
            result = (
                self.db.table("price_lists")
                .select("id")
                .eq("id", price_list_id)
                .execute()
            )
            return bool(result.data)
        except Exception as e:
            logger.error("price_list_lookup_failed", price_list_id=price_list_id, error=str(e))
            raise DatabaseError("select", str(e))

    def load_snapshot(self, price_list_id: str) -> CatalogSnapshot:
        """Existing products and sizes of the price list."""
        logger.debug("loading_catalog_snapshot", price_list_id=price_list_id)

        try:
            product_ids = self._linked_product_ids(price_list_id)
            products = []
            if product_ids:
                products = (
                    self.db.table("products")
                    .select("id, name")
                    .in_("id", product_ids)
                    .execute()
                ).data
            sizes = (
                self.db.table("product_sizes")
                .select("product_id, size_name")
                .eq("price_list_id", price_list_id)
                .execute()
            ).data
        except Exception as e:
            logger.error("load_snapshot_failed", price_list_id=price_list_id, error=str(e))
            raise DatabaseError("select", str(e))

        snapshot = CatalogSnapshot.from_rows(price_list_id, products, sizes)

        logger.info(
            "catalog_snapshot_loaded",
            price_list_id=price_list_id,
            products=len(snapshot.products),
        )
        return snapshot

    def product_exists(self, price_list_id: str, name: str) -> Optional[str]:
        """Id of the price list's product with this name (any case), or None."""
        product_ids = self._linked_product_ids(price_list_id)
        if not product_ids:
            return None

        result = (
            self.db.table("products")
            .select("id, name")
            .in_("id", product_ids)
            .ilike("name", escape_like(name.strip()))
            .limit(1)
            .execute()
        )
        return str(result.data[0]["id"]) if result.data else None

    def size_exists(self, product_id: str, price_list_id: str, size_name: str) -> bool:
        result = (
            self.db.table("product_sizes")
            .select("id")
            .eq("product_id", product_id)
            .eq("price_list_id", price_list_id)
            .ilike("size_name", escape_like(size_name.strip()))
            .limit(1)
            .execute()
        )
        return bool(result.data)

    def _linked_product_ids(self, price_list_id: str) -> list:
        result = (
            self.db.table("price_list_products")
            .select("product_id")
            .eq("price_list_id", price_list_id)
            .execute()
        )
        return [row["product_id"] for row in result.data]

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create_product(
        self,
        price_list_id: str,
        name: str,
        description: Optional[str],
        category: Optional[str],
        cost: Decimal,
    ) -> str:
        """Insert a product and link it to the price list."""
        result = (
            self.db.table("products")
            .insert({
                "name": name,
                "description": description or "",
                "category": category or "Other",
                "base_cost": float(cost),
            })
            .execute()
        )
        product_id = str(result.data[0]["id"])
        self._record("products", "id", product_id)

        link = (
            self.db.table("price_list_products")
            .insert({"price_list_id": price_list_id, "product_id": product_id})
            .execute()
        )
        self._record("price_list_products", "id", str(link.data[0]["id"]))

        logger.debug("product_created", product_id=product_id, name=name, price_list_id=price_list_id)
        return product_id

    def create_size(
        self,
        product_id: str,
        price_list_id: str,
        size_name: str,
        price: Decimal,
        cost: Decimal,
    ) -> str:
        result = (
            self.db.table("product_sizes")
            .insert({
                "product_id": product_id,
                "price_list_id": price_list_id,
                "size_name": size_name,
                "price": float(price),
                "cost": float(cost),
            })
            .execute()
        )
        size_id = str(result.data[0]["id"])
        self._record("product_sizes", "id", size_id)

        logger.debug("size_created", size_id=size_id, product_id=product_id, size_name=size_name)
        return size_id

    # ===================
    # UNIT OF WORK
    # ===================

    @contextmanager
    def transaction(self, product_name: str) -> Iterator[None]:
        """
        Group one product's writes.

        On error, deletes every row written inside the block (newest first)
        and re-raises the original exception.
        """
        self._undo = []
        try:
            yield
        except Exception as e:
            logger.warning(
                "rolling_back_product",
                product=product_name,
                rows=len(self._undo),
                error=str(e),
            )
            self._rollback(product_name)
            raise
        finally:
            self._undo = None

    def _record(self, table: str, column: str, value: str) -> None:
        if self._undo is not None:
            self._undo.append((table, column, value))

    def _rollback(self, product_name: str) -> None:
        for table, column, value in reversed(self._undo or []):
            try:
                self.db.table(table).delete().eq(column, value).execute()
            except Exception as e:
                logger.error(
                    "rollback_delete_failed",
                    product=product_name,
                    table=table,
                    row_id=value,
                    error=str(e),
                )


# Singleton instance for convenience
_catalog_store: Optional[SupabaseCatalogStore] = None


def get_catalog_store() -> SupabaseCatalogStore:
    """Get or create SupabaseCatalogStore instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SupabaseCatalogStore()
    return _catalog_store
