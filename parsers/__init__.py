"""
Price sheet parsers module.

Header detection and row parsing for uploaded price sheets.
"""

from parsers.column_detector import (
    FIELD_KEYWORDS,
    detect_columns,
    detect_columns_from_text,
    suggest_columns,
    resolve_mapping,
)
from parsers.price_sheet_parser import (
    parse_price_sheet,
    parse_price_rows,
    load_sheet_rows,
    ImportedRow,
    SkippedRow,
    PriceSheetParseResult,
)

__all__ = [
    "FIELD_KEYWORDS",
    "detect_columns",
    "detect_columns_from_text",
    "suggest_columns",
    "resolve_mapping",
    "parse_price_sheet",
    "parse_price_rows",
    "load_sheet_rows",
    "ImportedRow",
    "SkippedRow",
    "PriceSheetParseResult",
]
