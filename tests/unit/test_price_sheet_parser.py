"""
Unit tests for the price sheet parser.

Run: pytest tests/unit/test_price_sheet_parser.py -v
"""

from decimal import Decimal
from io import BytesIO

import pandas as pd
import pytest

from parsers.price_sheet_parser import (
    parse_price_sheet,
    parse_price_rows,
    load_sheet_rows,
    split_rows,
)
from models.catalog_import import ColumnMapping
from exceptions import EmptyFileError, MissingRequiredColumnError, NoValidRowsError


class TestParsePriceSheet:
    """Tests for parse_price_sheet()"""

    def test_end_to_end_sample(self, e2e_price_sheet):
        """Should keep two rows and skip one duplicate and one bad price."""
        # Act
        result = parse_price_sheet(e2e_price_sheet)

        # Assert
        assert [(r.product_name, r.size_name, r.price) for r in result.rows] == [
            ("Print", "4x6", Decimal("2.99")),
            ("Print", "5x7", Decimal("4.99")),
        ]
        assert result.rows_total == 4
        assert result.rows_parsed == 2
        assert result.duplicates_skipped == 1
        assert result.invalid_price_skipped == 1
        assert result.rows_skipped == 2

    def test_skip_notes_carry_row_numbers(self, e2e_price_sheet):
        """Should record file row numbers (header is row 1)."""
        result = parse_price_sheet(e2e_price_sheet)

        assert [(s.row, s.reason) for s in result.skipped] == [
            (3, "duplicate"),
            (5, "invalid_price"),
        ]

    def test_dedup_is_case_insensitive(self):
        """Should treat 'PRINT / 4X6' as a duplicate of 'Print / 4x6'."""
        text = "Product,Size,Price\nPrint,4x6,2.99\nPRINT,4X6,3.50\n"

        result = parse_price_sheet(text)

        assert result.rows_parsed == 1
        assert result.rows[0].price == Decimal("2.99")
        assert result.duplicates_skipped == 1

    def test_defaults_for_missing_names(self):
        """Should default an empty product to 'Unknown' and empty size to 'Default'."""
        text = "Product,Size,Price\n,,1.00\nMug,,2.00\n"

        result = parse_price_sheet(text)

        assert [(r.product_name, r.size_name) for r in result.rows] == [
            ("Unknown", "Default"),
            ("Mug", "Default"),
        ]

    def test_unused_size_column_defaults(self):
        """Should use 'Default' for every row when there is no size column."""
        result = parse_price_sheet("Product,Price\nMug,12.00\n")

        assert result.rows[0].size_name == "Default"

    def test_price_formats(self):
        """Should accept currency symbols and thousands separators."""
        text = 'Product;Size;Price\nCanvas;16x20;$1,250.50\nCanvas;8x10; 45 \n'

        result = parse_price_sheet(text, delimiter=";")

        assert [r.price for r in result.rows] == [Decimal("1250.50"), Decimal("45.00")]

    @pytest.mark.parametrize("bad_price", ["N/A", "", "-5", "nan", "inf", "abc"])
    def test_invalid_prices_are_counted(self, bad_price):
        """Should drop rows whose price is not a finite, non-negative number."""
        text = f"Product,Size,Price\nPrint,4x6,2.99\nPrint,5x7,{bad_price}\n"

        result = parse_price_sheet(text)

        assert result.rows_parsed == 1
        assert result.invalid_price_skipped == 1

    def test_price_too_large_for_cents_is_counted(self):
        """Should drop a price too large to round to cents instead of failing."""
        text = "Product,Size,Price\nPrint,4x6,2.99\nPoster,24x36,1e30\n"

        result = parse_price_sheet(text)

        assert [r.product_name for r in result.rows] == ["Print"]
        assert result.invalid_price_skipped == 1
        assert result.skipped[0].reason == "invalid_price"

    def test_invalid_price_does_not_claim_dedup_key(self):
        """Should keep a later valid row for a key whose first row had a bad price."""
        text = "Product,Size,Price\nPrint,4x6,N/A\nPrint,4x6,2.99\n"

        result = parse_price_sheet(text)

        assert result.rows_parsed == 1
        assert result.duplicates_skipped == 0
        assert result.invalid_price_skipped == 1

    def test_optional_fields_parsed_opportunistically(self):
        """Should parse width/height/cost/description and leave bad ones None."""
        text = (
            "Product,Size,Width,Height,Price,Cost,Description\n"
            "Canvas,8x10,8,10,45.00,12.5,Gallery wrap\n"
            "Canvas,11x14,wide,,60.00,n/a,\n"
        )

        result = parse_price_sheet(text)

        first, second = result.rows
        assert (first.width, first.height) == (8.0, 10.0)
        assert first.cost == Decimal("12.50")
        assert first.description == "Gallery wrap"
        assert (second.width, second.height, second.cost, second.description) == (None, None, None, None)

    def test_short_rows_read_missing_cells_as_empty(self):
        """Should not fail when a row has fewer cells than the header."""
        text = "Product,Price,Size\nMug,9.99\n"

        result = parse_price_sheet(text)

        assert result.rows[0].size_name == "Default"

    def test_blank_lines_are_ignored(self):
        """Should not count blank lines as rows."""
        text = "Product,Price\n\nMug,9.99\n   \n"

        result = parse_price_sheet(text)

        assert result.rows_total == 1

    def test_manual_mapping(self):
        """Should parse with the supplied mapping instead of detection."""
        text = "Col A,Col B,Col C\n11x14,Metal,80\n"

        result = parse_price_sheet(text, ColumnMapping(product=1, size=0, price=2))

        assert (result.rows[0].product_name, result.rows[0].size_name) == ("Metal", "11x14")


class TestParsePriceSheetErrors:
    """Structural failures abort the whole parse."""

    def test_empty_text_raises(self):
        """Should raise EmptyFileError when there is no header."""
        with pytest.raises(EmptyFileError):
            parse_price_sheet("")

    def test_missing_price_column_raises_before_rows(self):
        """Should raise MissingRequiredColumnError naming price."""
        with pytest.raises(MissingRequiredColumnError) as exc_info:
            parse_price_sheet("Product,Size\nPrint,4x6\n")

        assert exc_info.value.columns == ["price"]

    def test_header_only_raises_no_valid_rows(self):
        """Should raise NoValidRowsError when no data rows exist."""
        with pytest.raises(NoValidRowsError):
            parse_price_sheet("Product,Price\n")

    def test_all_rows_invalid_raises_with_counts(self):
        """Should report counts in NoValidRowsError details."""
        with pytest.raises(NoValidRowsError) as exc_info:
            parse_price_sheet("Product,Price\nMug,N/A\nCup,free\n")

        assert exc_info.value.details["invalid_price_skipped"] == 2
        assert exc_info.value.details["rows_total"] == 2

    def test_dedup_state_is_call_local(self):
        """Should not remember keys across calls."""
        text = "Product,Price\nMug,9.99\n"

        parse_price_sheet(text)
        result = parse_price_sheet(text)

        assert result.duplicates_skipped == 0


class TestLoadSheetRows:
    """Tests for load_sheet_rows() and split_rows()"""

    def test_split_rows_trims_cells(self):
        """Should trim cells and drop blank lines."""
        assert split_rows(" a , b \n\n c,d ") == [["a", "b"], ["c", "d"]]

    def test_decodes_utf8_with_bom(self):
        """Should strip a UTF-8 BOM from the first header."""
        content = "Product,Price\nCafé Print,5.00\n".encode("utf-8-sig")

        rows = load_sheet_rows(content, "prices.csv")

        assert rows[0] == ["Product", "Price"]
        assert rows[1][0] == "Café Print"

    def test_falls_back_to_latin1(self):
        """Should decode latin-1 bytes that are not valid UTF-8."""
        content = "Product,Price\nCafé Print,5.00\n".encode("latin-1")

        rows = load_sheet_rows(content, "prices.csv")

        assert rows[1][0] == "Café Print"

    def test_empty_upload_raises(self):
        """Should raise EmptyFileError for an empty upload."""
        with pytest.raises(EmptyFileError):
            load_sheet_rows(b"   ", "prices.csv")

    def test_reads_excel_first_sheet(self):
        """Should read an .xlsx workbook into string cells."""
        # Arrange
        buffer = BytesIO()
        pd.DataFrame(
            [["Product", "Size", "Price"], ["Print", "4x6", "2.99"], ["Print", "5x7", "4.99"]]
        ).to_excel(buffer, header=False, index=False)

        # Act
        rows = load_sheet_rows(buffer.getvalue(), "prices.xlsx")
        result = parse_price_rows(rows)

        # Assert
        assert rows[0] == ["Product", "Size", "Price"]
        assert [r.price for r in result.rows] == [Decimal("2.99"), Decimal("4.99")]
