"""
Price list, product and product size schemas.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from models.base import BaseSchema, TimestampMixin


class PriceListCreate(BaseSchema):
    """
    Create a new price list.

    Setting is_default clears the flag on every other price list.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=120,
        description="Unique price list name",
        examples=["Spring Sports 2026", "Studio Standard"]
    )
    description: Optional[str] = Field(None, max_length=500)
    is_default: bool = Field(False, description="Use for albums without a price list")


class PriceListUpdate(BaseSchema):
    """
    Update an existing price list.

    All fields optional - only provided fields are updated.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    is_default: Optional[bool] = None


class PriceListResponse(BaseSchema, TimestampMixin):
    """Price list row."""

    id: str = Field(..., description="Price list id")
    name: str
    description: Optional[str] = None
    is_default: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v) -> str:
        return str(v)


class ProductResponse(BaseSchema):
    """Catalog product, independent of size."""

    id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    base_cost: Optional[Decimal] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v) -> str:
        return str(v)


class ProductSizeResponse(BaseSchema):
    """One priced size of a product inside one price list."""

    id: str
    product_id: str
    price_list_id: str
    size_name: str
    price: Decimal = Field(..., ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)

    @field_validator("id", "product_id", "price_list_id", mode="before")
    @classmethod
    def ids_as_string(cls, v) -> str:
        return str(v)


class PriceListDetailResponse(PriceListResponse):
    """Price list with its products and their sizes."""

    products: list[ProductResponse] = Field(default_factory=list)
    sizes: list[ProductSizeResponse] = Field(default_factory=list)


class PriceListListResponse(BaseSchema):
    """All price lists."""

    data: list[PriceListResponse]
    total: int
