"""
Custom exception classes for the application.

Structural import failures abort before any write. Data-quality problems
(duplicate rows, bad prices, duplicate products) are counted in the import
summary instead of raised.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRICE_LIST_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper().replace(' ', '_')}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# PRICE LIST ERRORS
# ===================

class PriceListNotFoundError(NotFoundError):
    """Price list not found."""

    def __init__(self, price_list_id: str):
        super().__init__(
            resource="Price list",
            identifier=str(price_list_id),
            code="PRICE_LIST_NOT_FOUND"
        )


class PriceListNameExistsError(DuplicateError):
    """Price list name already taken."""

    def __init__(self, name: str):
        super().__init__(
            resource="Price list",
            field="name",
            value=name
        )


# ===================
# IMPORT ERRORS
# ===================

class EmptyFileError(ValidationError):
    """Uploaded sheet has no header row."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__(
            code="IMPORT_EMPTY_FILE",
            message="Import file is empty",
            details={"filename": filename} if filename else None
        )


class MissingRequiredColumnError(ValidationError):
    """Product or price column could not be detected and was not supplied."""

    def __init__(self, columns: list[str], headers: Optional[list[str]] = None):
        self.columns = columns
        super().__init__(
            code="IMPORT_MISSING_REQUIRED_COLUMN",
            message=f"Missing required column(s): {', '.join(columns)}",
            details={"missing": columns, "headers": headers or []}
        )


class NoValidRowsError(ValidationError):
    """Every data row was dropped as a duplicate or for an invalid price."""

    def __init__(self, rows_total: int, duplicates: int = 0, invalid_prices: int = 0):
        super().__init__(
            code="IMPORT_NO_VALID_ROWS",
            message="No valid pricing data found in file",
            details={
                "rows_total": rows_total,
                "duplicates_skipped": duplicates,
                "invalid_price_skipped": invalid_prices,
            }
        )


class PreviewExpiredError(NotFoundError):
    """Cached import preview expired or never existed."""

    def __init__(self, preview_id: str):
        super().__init__(
            resource="Import preview",
            identifier=preview_id,
            code="IMPORT_PREVIEW_NOT_FOUND"
        )


class PersistenceFailureError(DatabaseError):
    """
    Storage failed while writing one product and its sizes.

    The product's unit of work has been rolled back. ``details["summary"]``
    carries the counts of products committed before the failure.
    """

    def __init__(
        self,
        product_name: str,
        message: str,
        summary: Optional[dict] = None
    ):
        self.product_name = product_name
        super().__init__(
            operation="import",
            message=f"could not write product '{product_name}': {message}",
            details={"product": product_name, "summary": summary or {}}
        )
        self.code = "IMPORT_PERSISTENCE_FAILURE"
