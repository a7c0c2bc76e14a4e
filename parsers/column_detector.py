"""
Header detection for uploaded price sheets.

Guesses which column holds which import field from the header row by keyword
scoring. The admin can always replace the guess with a manual mapping.
"""

from typing import Optional
import structlog

from exceptions import EmptyFileError, MissingRequiredColumnError
from models.catalog_import import ColumnMapping, ColumnSuggestion, UNUSED

logger = structlog.get_logger(__name__)


# ===================
# FIELD KEYWORDS
# ===================

# A header scores one point per keyword it contains (lower-cased substring).
FIELD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "product": ("product", "name"),
    "size": ("size",),
    "price": ("price",),
    "width": ("width", "w"),
    "height": ("height", "h"),
    "cost": ("cost",),
    "description": ("description", "desc"),
}


def _score(header: str, keywords: tuple[str, ...]) -> int:
    return sum(1 for keyword in keywords if keyword in header)


def find_best_column(headers: list[str], keywords: tuple[str, ...]) -> int:
    """
    Index of the header scoring highest for keywords.

    Ties go to the leftmost column. Returns -1 if nothing scores.
    """
    best_idx = UNUSED
    best_score = 0

    for idx, header in enumerate(headers):
        score = _score(header.strip().lower(), keywords)
        if score > best_score:
            best_score = score
            best_idx = idx

    return best_idx


def detect_columns(headers: list[str]) -> ColumnMapping:
    """
    Suggest a ColumnMapping for a header row.

    Args:
        headers: Header cells in column order

    Returns:
        ColumnMapping with -1 for every field no header mentions
    """
    mapping = ColumnMapping(**{
        field: find_best_column(headers, keywords)
        for field, keywords in FIELD_KEYWORDS.items()
    })

    logger.debug(
        "columns_detected",
        headers=headers,
        mapping=mapping.model_dump(),
    )

    return mapping


def split_header(text: str, delimiter: str = ",") -> list[str]:
    """
    Header cells of a delimited sheet.

    Raises:
        EmptyFileError: If the text has no non-blank line
    """
    for line in text.splitlines():
        if line.strip():
            return [cell.strip() for cell in line.split(delimiter)]
    raise EmptyFileError()


def detect_columns_from_text(text: str, delimiter: str = ",") -> ColumnSuggestion:
    """
    Detect headers and suggest a mapping for the "map your columns" screen.

    Never raises for missing required fields - they are listed instead so
    the admin can pick them by hand.
    """
    return suggest_columns(split_header(text, delimiter))


def suggest_columns(headers: list[str]) -> ColumnSuggestion:
    """Suggested mapping for already split header cells."""
    if not any(headers):
        raise EmptyFileError()

    mapping = detect_columns(headers)

    return ColumnSuggestion(
        headers=headers,
        mapping=mapping,
        missing_required=mapping.missing_required,
    )


def resolve_mapping(
    headers: list[str],
    override: Optional[ColumnMapping] = None,
) -> ColumnMapping:
    """
    Mapping to parse with: the manual override if given, else detection.

    Raises:
        MissingRequiredColumnError: If product or price ends up unused or
            points past the last header
    """
    mapping = override if override is not None else detect_columns(headers)

    missing = [
        field for field in ("product", "price")
        if not mapping.is_used(field) or mapping.index_of(field) >= len(headers)
    ]

    if missing:
        logger.warning(
            "required_columns_missing",
            missing=missing,
            headers=headers,
            manual_override=override is not None,
        )
        raise MissingRequiredColumnError(missing, headers)

    return mapping
