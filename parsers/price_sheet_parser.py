"""
Price sheet parser.

Turns an uploaded price sheet (delimited text, or an Excel workbook converted
to rows) plus a column mapping into deduplicated, validated ImportedRow
records.

Row-level problems never abort the parse: duplicate product/size keys and
unparsable prices are dropped and counted. Only an empty file, missing
required columns, or a sheet where nothing survives raise.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
import math
import structlog

import pandas as pd

from exceptions import EmptyFileError, NoValidRowsError
from models.catalog_import import ColumnMapping
from parsers.column_detector import resolve_mapping

logger = structlog.get_logger(__name__)

DEFAULT_PRODUCT_NAME = "Unknown"
DEFAULT_SIZE_NAME = "Default"

EXCEL_SUFFIXES = (".xlsx", ".xlsm")
TEXT_ENCODINGS = ("utf-8-sig", "latin-1")

CENTS = Decimal("0.01")


# ===================
# DATA CLASSES
# ===================

@dataclass
class ImportedRow:
    """One validated price sheet row. Never persisted directly."""
    product_name: str
    size_name: str
    price: Decimal
    width: Optional[float] = None
    height: Optional[float] = None
    cost: Optional[Decimal] = None
    description: Optional[str] = None

    @property
    def key(self) -> str:
        """Dedup key: product and size, case-insensitive."""
        return f"{self.product_name.lower()}|{self.size_name.lower()}"


@dataclass
class SkippedRow:
    """A data row dropped during parsing."""
    row: int
    reason: str  # "duplicate" or "invalid_price"
    value: Optional[str] = None


@dataclass
class PriceSheetParseResult:
    """Result of parsing one price sheet."""
    headers: list[str] = field(default_factory=list)
    mapping: Optional[ColumnMapping] = None
    rows: list[ImportedRow] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)

    # Statistics
    rows_total: int = 0
    duplicates_skipped: int = 0
    invalid_price_skipped: int = 0

    @property
    def rows_parsed(self) -> int:
        return len(self.rows)

    @property
    def rows_skipped(self) -> int:
        return self.duplicates_skipped + self.invalid_price_skipped


# ===================
# MAIN PARSER
# ===================

def parse_price_sheet(
    text: str,
    mapping: Optional[ColumnMapping] = None,
    delimiter: str = ",",
) -> PriceSheetParseResult:
    """
    Parse delimited price sheet text.

    Args:
        text: Header row followed by data rows
        mapping: Manual column mapping; detected from the header if None
        delimiter: Cell delimiter

    Returns:
        PriceSheetParseResult with rows in file order

    Raises:
        EmptyFileError: If there is no header row
        MissingRequiredColumnError: If product or price column is missing
        NoValidRowsError: If no data row survives
    """
    return parse_price_rows(split_rows(text, delimiter), mapping)


def parse_price_rows(
    rows: list[list[str]],
    mapping: Optional[ColumnMapping] = None,
) -> PriceSheetParseResult:
    """
    Parse already-split rows (first row is the header).

    See parse_price_sheet for errors.
    """
    if not rows:
        raise EmptyFileError()

    headers = rows[0]
    mapping = resolve_mapping(headers, mapping)

    logger.info(
        "parsing_price_sheet",
        headers=headers,
        data_rows=len(rows) - 1,
    )

    result = PriceSheetParseResult(headers=headers, mapping=mapping)
    seen: set[str] = set()

    for idx, cells in enumerate(rows[1:]):
        row_num = idx + 2  # 1-indexed + header
        result.rows_total += 1

        raw_price = _cell(cells, mapping.price)
        price = _parse_amount(raw_price)
        if price is None:
            result.invalid_price_skipped += 1
            result.skipped.append(SkippedRow(row=row_num, reason="invalid_price", value=raw_price[:50]))
            logger.debug("row_skipped_invalid_price", row=row_num, value=raw_price)
            continue

        product_name = _cell(cells, mapping.product) or DEFAULT_PRODUCT_NAME
        size_name = _cell(cells, mapping.size) or DEFAULT_SIZE_NAME

        row = ImportedRow(
            product_name=product_name,
            size_name=size_name,
            price=price,
            width=_parse_dimension(_cell(cells, mapping.width)),
            height=_parse_dimension(_cell(cells, mapping.height)),
            cost=_parse_amount(_cell(cells, mapping.cost)),
            description=_cell(cells, mapping.description) or None,
        )

        if row.key in seen:
            result.duplicates_skipped += 1
            result.skipped.append(SkippedRow(
                row=row_num,
                reason="duplicate",
                value=f"{product_name} / {size_name}",
            ))
            logger.debug("row_skipped_duplicate", row=row_num, product=product_name, size=size_name)
            continue

        seen.add(row.key)
        result.rows.append(row)

    if not result.rows:
        logger.warning(
            "price_sheet_no_valid_rows",
            rows_total=result.rows_total,
            duplicates=result.duplicates_skipped,
            invalid_prices=result.invalid_price_skipped,
        )
        raise NoValidRowsError(
            rows_total=result.rows_total,
            duplicates=result.duplicates_skipped,
            invalid_prices=result.invalid_price_skipped,
        )

    logger.info(
        "price_sheet_parsed",
        rows_total=result.rows_total,
        rows_parsed=result.rows_parsed,
        duplicates_skipped=result.duplicates_skipped,
        invalid_price_skipped=result.invalid_price_skipped,
    )

    return result


# ===================
# LOADING
# ===================

def split_rows(text: str, delimiter: str = ",") -> list[list[str]]:
    """Split delimited text into trimmed cells, dropping blank lines."""
    return [
        [cell.strip() for cell in line.split(delimiter)]
        for line in text.splitlines()
        if line.strip()
    ]


def load_sheet_rows(
    file: Union[str, Path, bytes, BytesIO],
    filename: Optional[str] = None,
    delimiter: str = ",",
) -> list[list[str]]:
    """
    Load an uploaded price sheet as rows of cells.

    Excel workbooks (by filename suffix) are read from their first sheet with
    pandas. Anything else is decoded as delimited text, trying UTF-8 (with
    BOM) before latin-1.

    Raises:
        EmptyFileError: If the upload has no content
    """
    if isinstance(file, Path):
        filename = filename or file.name
        file = file.read_bytes()
    elif isinstance(file, BytesIO):
        file = file.getvalue()

    name = (filename or "").lower()

    if isinstance(file, bytes):
        if not file.strip():
            raise EmptyFileError(filename)
        if name.endswith(EXCEL_SUFFIXES):
            return _load_excel_rows(file, filename)
        file = _decode(file)

    rows = split_rows(file, delimiter)
    if not rows:
        raise EmptyFileError(filename)
    return rows


def _load_excel_rows(content: bytes, filename: Optional[str]) -> list[list[str]]:
    """Read the first sheet of a workbook into trimmed string cells."""
    try:
        df = pd.read_excel(BytesIO(content), header=None, dtype=str, engine="openpyxl")
    except Exception as e:
        logger.error("excel_read_failed", filename=filename, error=str(e))
        raise EmptyFileError(filename) from e

    df = df.fillna("")
    rows = [
        [str(cell).strip() for cell in record]
        for record in df.values.tolist()
    ]
    rows = [row for row in rows if any(row)]

    if not rows:
        raise EmptyFileError(filename)

    logger.debug("excel_loaded", filename=filename, rows=len(rows), columns=len(df.columns))
    return rows


def _decode(content: bytes) -> str:
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("utf-8", errors="replace")


# ===================
# CELL PARSING
# ===================

def _cell(cells: list[str], index: int) -> str:
    """Cell at index, or "" when the field is unused or the row is short."""
    if index < 0 or index >= len(cells):
        return ""
    return cells[index]


def _parse_amount(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a money cell to cents.

    Tolerates "$" and thousands separators. Returns None for empty,
    non-numeric, non-finite, negative or unrepresentably large values.
    """
    if value is None:
        return None
    value_str = str(value).strip().replace("$", "").replace(",", "").replace(" ", "")
    if not value_str:
        return None
    try:
        amount = Decimal(value_str)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        return None


def _parse_dimension(value: Optional[str]) -> Optional[float]:
    """Parse a width/height cell. None if absent, unparsable or not positive."""
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number
