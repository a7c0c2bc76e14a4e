"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.price_lists import router as price_lists_router
from routes.catalog_import import router as catalog_import_router

__all__ = [
    "price_lists_router",
    "catalog_import_router",
]
