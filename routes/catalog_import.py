"""
Catalog import API routes.

Price sheet uploads (CSV or Excel) and vendor catalog imports into one
price list. Every import can run as a dry run first; previews are cached so
they can be confirmed without uploading again.
"""

from fastapi import APIRouter, UploadFile, File, Form
from fastapi.responses import JSONResponse
from typing import Optional
import json
import structlog

from config.settings import settings
from models.catalog_import import (
    ColumnMapping,
    ColumnSuggestion,
    ImportSummaryResponse,
    ImportPreviewResponse,
    VendorImportRequest,
)
from parsers.price_sheet_parser import load_sheet_rows
from services.catalog_import_service import get_catalog_import_service
from services import preview_cache_service
from exceptions import AppError, ValidationError

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
    # Unexpected error
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
# HELPERS
# ===================

async def _read_upload(file: UploadFile) -> list[list[str]]:
    """Rows of an uploaded CSV or Excel sheet."""
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise ValidationError(
            f"File exceeds {settings.max_upload_bytes} bytes",
            code="IMPORT_FILE_TOO_LARGE",
            details={"filename": file.filename, "size": len(content)}
        )

    logger.info("price_sheet_uploaded", filename=file.filename, size=len(content))
    return load_sheet_rows(content, file.filename, settings.import_delimiter)


def _parse_mapping(mapping: Optional[str]) -> Optional[ColumnMapping]:
    """
    Manual mapping from a form field.

    Accepts JSON ({"product": 0, "price": 2}) or "product=0,price=2".
    """
    if not mapping or not mapping.strip():
        return None
    try:
        if mapping.strip().startswith("{"):
            return ColumnMapping(**json.loads(mapping))
        return ColumnMapping.from_string(mapping)
    except (ValueError, TypeError) as e:
        raise ValidationError(
            f"Invalid column mapping: {e}",
            code="IMPORT_INVALID_MAPPING",
            details={"mapping": mapping}
        )


# ===================
# PRICE SHEET ROUTES
# ===================

@router.post("/{price_list_id}/import/detect", response_model=ColumnSuggestion)
async def detect_columns(price_list_id: str, file: UploadFile = File(...)):
    """
    Detect headers and suggest a column mapping.

    Missing product/price columns are listed, not rejected, so they can be
    picked by hand before previewing.
    """
    try:
        rows = await _read_upload(file)
        return get_catalog_import_service().detect_columns(rows)

    except Exception as e:
        return handle_error(e)


@router.post("/{price_list_id}/import/preview", response_model=ImportPreviewResponse)
async def preview_price_sheet(
    price_list_id: str,
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(None, description="Manual column mapping"),
):
    """
    Dry-run a price sheet import and cache the result.

    Returns the summary and a preview_id for /import/confirm.

    Raises:
        404: Price list not found
        422: Empty file, missing required column, or no valid rows
    """
    try:
        rows = await _read_upload(file)
        service = get_catalog_import_service()
        summary = service.preview_price_sheet(rows, price_list_id, _parse_mapping(mapping))

        preview_id = preview_cache_service.store_preview(price_list_id, summary)

        return ImportPreviewResponse(
            preview_id=preview_id,
            expires_in_minutes=settings.preview_ttl_minutes,
            summary=summary.to_response(),
        )

    except Exception as e:
        return handle_error(e)


@router.post("/{price_list_id}/import/confirm/{preview_id}", response_model=ImportSummaryResponse)
async def confirm_preview(price_list_id: str, preview_id: str):
    """
    Write a cached preview.

    Raises:
        404: Price list or preview not found
        500: A product could not be written
    """
    try:
        preview = preview_cache_service.take_preview(preview_id, price_list_id)
        summary = get_catalog_import_service().commit(preview)
        return summary.to_response()

    except Exception as e:
        return handle_error(e)


@router.post("/{price_list_id}/import", response_model=ImportSummaryResponse)
async def import_price_sheet(
    price_list_id: str,
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(None, description="Manual column mapping"),
    dry_run: bool = Form(False),
):
    """
    Import a price sheet in one call.

    Existing products gain only the sizes they lack; existing sizes keep
    their prices.
    """
    try:
        rows = await _read_upload(file)
        summary = get_catalog_import_service().import_price_sheet(
            rows,
            price_list_id,
            mapping=_parse_mapping(mapping),
            dry_run=dry_run,
        )
        return summary.to_response()

    except Exception as e:
        return handle_error(e)


@router.post("/import", response_model=ImportSummaryResponse, status_code=201)
async def import_new_price_list(
    file: UploadFile = File(...),
    name: str = Form(..., min_length=1, max_length=120, description="Name of the new price list"),
    description: Optional[str] = Form(None, max_length=500),
    mapping: Optional[str] = Form(None, description="Manual column mapping"),
):
    """
    Create a price list from a price sheet.

    Raises:
        409: Price list name already exists
        422: Empty file, missing required column, or no valid rows
    """
    try:
        rows = await _read_upload(file)
        summary = get_catalog_import_service().import_new_price_list(
            rows,
            name.strip(),
            description=description,
            mapping=_parse_mapping(mapping),
        )
        return summary.to_response()

    except Exception as e:
        return handle_error(e)


# ===================
# VENDOR CATALOG ROUTES
# ===================

@router.post("/{price_list_id}/vendor-import", response_model=ImportSummaryResponse)
async def import_vendor_catalog(price_list_id: str, data: VendorImportRequest):
    """
    Import vendor SKUs grouped into products with size variants.

    Groups named like an existing product are skipped whole and listed in
    skipped_duplicates.
    """
    try:
        summary = get_catalog_import_service().import_vendor_catalog(
            data.items,
            price_list_id,
            mappings=data.mappings,
            dry_run=data.dry_run,
        )
        return summary.to_response()

    except Exception as e:
        return handle_error(e)
