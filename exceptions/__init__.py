"""
Custom exceptions module.

Import errors abort the call before any write; row and product skips are
reported in the import summary instead.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Price lists
    PriceListNotFoundError,
    PriceListNameExistsError,

    # Catalog import
    EmptyFileError,
    MissingRequiredColumnError,
    NoValidRowsError,
    PreviewExpiredError,
    PersistenceFailureError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Price lists
    "PriceListNotFoundError",
    "PriceListNameExistsError",

    # Catalog import
    "EmptyFileError",
    "MissingRequiredColumnError",
    "NoValidRowsError",
    "PreviewExpiredError",
    "PersistenceFailureError",
]
