"""
Price list API routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.price_list import (
    PriceListCreate,
    PriceListUpdate,
    PriceListResponse,
    PriceListDetailResponse,
    PriceListListResponse,
)
from services.price_list_service import get_price_list_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=PriceListListResponse)
async def list_price_lists():
    """List all price lists ordered by name."""
    try:
        price_lists = get_price_list_service().get_all()
        return PriceListListResponse(data=price_lists, total=len(price_lists))

    except Exception as e:
        return handle_error(e)


@router.get("/{price_list_id}", response_model=PriceListDetailResponse)
async def get_price_list(price_list_id: str):
    """
    Get a price list with its products and sizes.

    Raises:
        404: Price list not found
    """
    try:
        return get_price_list_service().get_detail(price_list_id)

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=PriceListResponse, status_code=201)
async def create_price_list(data: PriceListCreate):
    """
    Create a new price list.

    Raises:
        409: Name already exists
        422: Validation error
    """
    try:
        return get_price_list_service().create(data)

    except Exception as e:
        return handle_error(e)


@router.put("/{price_list_id}", response_model=PriceListResponse)
async def update_price_list(price_list_id: str, data: PriceListUpdate):
    """
    Update a price list. Only provided fields change.

    Raises:
        404: Price list not found
        409: Name already exists
    """
    try:
        return get_price_list_service().update(price_list_id, data)

    except Exception as e:
        return handle_error(e)


@router.post("/{price_list_id}/default", response_model=PriceListResponse)
async def set_default_price_list(price_list_id: str):
    """Make this price list the default."""
    try:
        return get_price_list_service().set_default(price_list_id)

    except Exception as e:
        return handle_error(e)


@router.delete("/{price_list_id}", status_code=204)
async def delete_price_list(price_list_id: str):
    """
    Delete a price list with its product links and sizes.

    Raises:
        404: Price list not found
    """
    try:
        get_price_list_service().delete(price_list_id)
        return None

    except Exception as e:
        return handle_error(e)
