"""
Unit tests for price sheet header detection.

Run: pytest tests/unit/test_column_detector.py -v
"""

import pytest

from parsers.column_detector import (
    detect_columns,
    detect_columns_from_text,
    find_best_column,
    resolve_mapping,
    suggest_columns,
)
from models.catalog_import import ColumnMapping, UNUSED
from exceptions import EmptyFileError, MissingRequiredColumnError


class TestDetectColumns:
    """Tests for detect_columns()"""

    def test_detects_standard_headers(self):
        """Should map each field to the header naming it."""
        # Act
        mapping = detect_columns(["Product", "Size", "Price", "Cost", "Description"])

        # Assert
        assert mapping.product == 0
        assert mapping.size == 1
        assert mapping.price == 2
        assert mapping.cost == 3
        assert mapping.description == 4

    def test_headers_are_case_and_whitespace_insensitive(self):
        """Should match '  PRICE ' as the price column."""
        mapping = detect_columns(["  PRODUCT NAME", "  PRICE "])

        assert mapping.product == 0
        assert mapping.price == 1

    def test_unmentioned_fields_are_unused(self):
        """Should leave fields nobody mentions at -1."""
        mapping = detect_columns(["Product", "Price"])

        assert mapping.size == UNUSED
        assert mapping.cost == UNUSED
        assert mapping.description == UNUSED

    def test_higher_score_wins_over_position(self):
        """Should prefer 'Product Name' (2 keywords) over 'Name' (1)."""
        mapping = detect_columns(["Name", "Product Name", "Price"])

        assert mapping.product == 1

    def test_width_and_height_by_full_word(self):
        """Should pick Width/Height over headers that only contain a letter."""
        mapping = detect_columns(["Product", "Width", "Height", "Price"])

        assert mapping.width == 1
        assert mapping.height == 2


class TestFindBestColumn:
    """Tests for find_best_column()"""

    def test_tie_goes_to_leftmost(self):
        """Should return the first of equally scoring headers."""
        assert find_best_column(["Price A", "Price B"], ("price",)) == 0

    def test_no_match_returns_unused(self):
        """Should return -1 when no header scores."""
        assert find_best_column(["Foo", "Bar"], ("price",)) == UNUSED


class TestDetectColumnsFromText:
    """Tests for detect_columns_from_text() and suggest_columns()"""

    def test_returns_headers_and_mapping(self):
        """Should split the header row and suggest a mapping."""
        # Act
        suggestion = detect_columns_from_text("Product,Size,Price\nPrint,4x6,2.99\n")

        # Assert
        assert suggestion.headers == ["Product", "Size", "Price"]
        assert suggestion.mapping.price == 2
        assert suggestion.missing_required == []

    def test_lists_missing_required_instead_of_raising(self):
        """Should report undetected required fields for manual mapping."""
        suggestion = detect_columns_from_text("Item,Amount\nPrint,2.99\n")

        assert suggestion.missing_required == ["product", "price"]

    def test_skips_leading_blank_lines(self):
        """Should use the first non-blank line as the header."""
        suggestion = detect_columns_from_text("\n\nProduct;Price\n", delimiter=";")

        assert suggestion.headers == ["Product", "Price"]

    def test_empty_text_raises(self):
        """Should raise EmptyFileError for blank input."""
        with pytest.raises(EmptyFileError):
            detect_columns_from_text("   \n\n")

    def test_suggest_columns_empty_header_raises(self):
        """Should raise EmptyFileError when the header has no cells."""
        with pytest.raises(EmptyFileError):
            suggest_columns([])


class TestResolveMapping:
    """Tests for resolve_mapping()"""

    def test_detects_when_no_override(self):
        """Should fall back to detection."""
        mapping = resolve_mapping(["Product", "Price"])

        assert mapping == ColumnMapping(product=0, price=1)

    def test_missing_price_raises_naming_column(self):
        """Should name the undetected required column."""
        # Act
        with pytest.raises(MissingRequiredColumnError) as exc_info:
            resolve_mapping(["Product", "Size", "Amount"])

        # Assert
        assert exc_info.value.columns == ["price"]
        assert exc_info.value.status_code == 422
        assert exc_info.value.details["headers"] == ["Product", "Size", "Amount"]

    def test_override_replaces_detection(self):
        """Should use the manual mapping even when headers are unrecognisable."""
        override = ColumnMapping(product=1, price=0)

        mapping = resolve_mapping(["A", "B"], override)

        assert mapping is override

    def test_override_without_price_raises(self):
        """Should reject an override that leaves price unused."""
        with pytest.raises(MissingRequiredColumnError) as exc_info:
            resolve_mapping(["Product", "Price"], ColumnMapping(product=0))

        assert exc_info.value.columns == ["price"]

    def test_override_past_last_header_raises(self):
        """Should reject a required index beyond the header row."""
        with pytest.raises(MissingRequiredColumnError) as exc_info:
            resolve_mapping(["Product", "Price"], ColumnMapping(product=0, price=5))

        assert exc_info.value.columns == ["price"]


class TestColumnMappingFromString:
    """Tests for ColumnMapping.from_string()"""

    def test_parses_pairs(self):
        """Should build a mapping from field=index pairs."""
        mapping = ColumnMapping.from_string("product=0, size=1,price=3")

        assert mapping.product == 0
        assert mapping.size == 1
        assert mapping.price == 3
        assert mapping.cost == UNUSED

    def test_unknown_field_raises(self):
        """Should reject fields that are not import fields."""
        with pytest.raises(ValueError):
            ColumnMapping.from_string("product=0,sku=1")
