"""
Temporary storage for import previews.

Holds dry-run reconciliation plans in memory with TTL expiration so the admin
can confirm a preview without uploading again. Single-process only.
"""
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional
import structlog

from config.settings import settings
from exceptions import PreviewExpiredError

logger = structlog.get_logger(__name__)

_cache: dict[str, tuple[datetime, str, Any]] = {}


def store_preview(price_list_id: str, data: Any, ttl_minutes: Optional[int] = None) -> str:
    """Store a preview for one price list, return preview_id."""
    ttl = ttl_minutes if ttl_minutes is not None else settings.preview_ttl_minutes
    preview_id = str(uuid.uuid4())
    expires_at = datetime.now() + timedelta(minutes=ttl)
    _cache[preview_id] = (expires_at, str(price_list_id), data)
    _cleanup_expired()
    logger.debug("preview_stored", preview_id=preview_id, price_list_id=price_list_id, ttl_minutes=ttl)
    return preview_id


def retrieve_preview(preview_id: str, price_list_id: Optional[str] = None) -> Optional[Any]:
    """
    Preview data by id. None if expired, unknown, or stored for another
    price list.
    """
    entry = _cache.get(preview_id)
    if entry is None:
        return None
    expires_at, owner, data = entry
    if datetime.now() > expires_at:
        del _cache[preview_id]
        return None
    if price_list_id is not None and owner != str(price_list_id):
        return None
    return data


def take_preview(preview_id: str, price_list_id: str) -> Any:
    """
    Retrieve and remove a preview for confirmation.

    Raises:
        PreviewExpiredError: If the preview is gone or belongs elsewhere
    """
    data = retrieve_preview(preview_id, price_list_id)
    if data is None:
        logger.warning("preview_not_found", preview_id=preview_id, price_list_id=price_list_id)
        raise PreviewExpiredError(preview_id)
    delete_preview(preview_id)
    return data


def delete_preview(preview_id: str) -> None:
    """Remove preview after confirm or cancel."""
    _cache.pop(preview_id, None)


def clear_previews() -> None:
    """Drop every cached preview."""
    _cache.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
