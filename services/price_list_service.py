"""
Price list service for business logic operations.

Price lists own products through price_list_products; sizes carry the
price_list_id themselves. Deleting a price list relies on the database's
cascade rules for both.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.price_list import (
    PriceListCreate,
    PriceListUpdate,
    PriceListResponse,
    PriceListDetailResponse,
    ProductResponse,
    ProductSizeResponse,
)
from exceptions import (
    PriceListNotFoundError,
    PriceListNameExistsError,
    DatabaseError
)
from utils.text_utils import escape_like

logger = structlog.get_logger(__name__)


class PriceListService:
    """
    Price list business logic.

    Handles CRUD operations and the default flag.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "price_lists"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[PriceListResponse]:
        """
        Get all price lists ordered by name.

        Returns:
            List of PriceListResponse
        """
        logger.info("getting_price_lists")

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("name")
                .execute()
            )

            price_lists = [PriceListResponse(**row) for row in result.data]

            logger.info("price_lists_retrieved", count=len(price_lists))

            return price_lists

        except Exception as e:
            logger.error("get_price_lists_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, price_list_id: str) -> PriceListResponse:
        """
        Get a single price list by ID.

        Raises:
            PriceListNotFoundError: If price list doesn't exist
        """
        logger.debug("getting_price_list", price_list_id=price_list_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", price_list_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_price_list_failed", price_list_id=price_list_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise PriceListNotFoundError(price_list_id)

        return PriceListResponse(**result.data[0])

    def get_by_name(self, name: str) -> Optional[PriceListResponse]:
        """
        Get a price list by name (case-insensitive).

        Returns:
            PriceListResponse or None if not found
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .ilike("name", escape_like(name.strip()))
                .execute()
            )
        except Exception as e:
            logger.error("get_price_list_by_name_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None

        return PriceListResponse(**result.data[0])

    def get_detail(self, price_list_id: str) -> PriceListDetailResponse:
        """
        Get a price list with its products and sizes.

        Products are ordered by name, sizes by product then size name.

        Raises:
            PriceListNotFoundError: If price list doesn't exist
        """
        price_list = self.get_by_id(price_list_id)

        try:
            links = (
                self.db.table("price_list_products")
                .select("product_id")
                .eq("price_list_id", price_list_id)
                .execute()
            )
            product_ids = [row["product_id"] for row in links.data]

            products = []
            if product_ids:
                products = (
                    self.db.table("products")
                    .select("*")
                    .in_("id", product_ids)
                    .order("name")
                    .execute()
                ).data

            sizes = (
                self.db.table("product_sizes")
                .select("*")
                .eq("price_list_id", price_list_id)
                .order("size_name")
                .execute()
            ).data

        except Exception as e:
            logger.error("get_price_list_detail_failed", price_list_id=price_list_id, error=str(e))
            raise DatabaseError("select", str(e))

        logger.info(
            "price_list_detail_retrieved",
            price_list_id=price_list_id,
            products=len(products),
            sizes=len(sizes)
        )

        return PriceListDetailResponse(
            **price_list.model_dump(),
            products=[ProductResponse(**row) for row in products],
            sizes=[ProductSizeResponse(**row) for row in sizes],
        )

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: PriceListCreate) -> PriceListResponse:
        """
        Create a new price list.

        Raises:
            PriceListNameExistsError: If the name is taken
        """
        logger.info("creating_price_list", name=data.name)

        if self.get_by_name(data.name):
            raise PriceListNameExistsError(data.name)

        if data.is_default:
            self._clear_default()

        try:
            result = (
                self.db.table(self.table)
                .insert({
                    "name": data.name,
                    "description": data.description,
                    "is_default": data.is_default,
                })
                .execute()
            )

            price_list = PriceListResponse(**result.data[0])

            logger.info("price_list_created", price_list_id=price_list.id, name=price_list.name)

            return price_list

        except Exception as e:
            logger.error("create_price_list_failed", name=data.name, error=str(e))
            raise DatabaseError("insert", str(e))

    def update(self, price_list_id: str, data: PriceListUpdate) -> PriceListResponse:
        """
        Update an existing price list.

        Raises:
            PriceListNotFoundError: If price list doesn't exist
            PriceListNameExistsError: If the new name is taken
        """
        logger.info("updating_price_list", price_list_id=price_list_id)

        existing = self.get_by_id(price_list_id)

        if data.name and data.name.lower() != existing.name.lower():
            if self.get_by_name(data.name):
                raise PriceListNameExistsError(data.name)

        update_data = data.model_dump(exclude_none=True)
        if not update_data:
            return existing

        if update_data.get("is_default"):
            self._clear_default(exclude_id=price_list_id)

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", price_list_id)
                .execute()
            )

            logger.info(
                "price_list_updated",
                price_list_id=price_list_id,
                fields=list(update_data.keys())
            )

            return PriceListResponse(**result.data[0])

        except Exception as e:
            logger.error("update_price_list_failed", price_list_id=price_list_id, error=str(e))
            raise DatabaseError("update", str(e))

    def set_default(self, price_list_id: str) -> PriceListResponse:
        """Make this the only default price list."""
        return self.update(price_list_id, PriceListUpdate(is_default=True))

    def delete(self, price_list_id: str) -> bool:
        """
        Delete a price list. Links and sizes cascade in the database.

        Raises:
            PriceListNotFoundError: If price list doesn't exist
        """
        logger.info("deleting_price_list", price_list_id=price_list_id)

        self.get_by_id(price_list_id)

        try:
            self.db.table(self.table).delete().eq("id", price_list_id).execute()

            logger.info("price_list_deleted", price_list_id=price_list_id)

            return True

        except Exception as e:
            logger.error("delete_price_list_failed", price_list_id=price_list_id, error=str(e))
            raise DatabaseError("delete", str(e))

    def _clear_default(self, exclude_id: Optional[str] = None) -> None:
        try:
            query = self.db.table(self.table).update({"is_default": False}).eq("is_default", True)
            if exclude_id:
                query = query.neq("id", exclude_id)
            query.execute()
        except Exception as e:
            logger.error("clear_default_price_list_failed", error=str(e))
            raise DatabaseError("update", str(e))


# Singleton instance for convenience
_price_list_service: Optional[PriceListService] = None


def get_price_list_service() -> PriceListService:
    """Get or create PriceListService instance."""
    global _price_list_service
    if _price_list_service is None:
        _price_list_service = PriceListService()
    return _price_list_service
