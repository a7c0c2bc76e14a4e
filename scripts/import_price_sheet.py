"""
Import a price sheet (CSV or Excel) or a vendor catalog dump into a price list.

Usage:
    # Price sheet, columns detected from headers
    python scripts/import_price_sheet.py data/spring_prices.csv \
        --price-list-id 3f2c...

    # Manual column mapping, plan only
    python scripts/import_price_sheet.py data/prices.xlsx \
        --price-list-id 3f2c... --mapping product=0,size=1,price=3 --dry-run

    # New price list named "Spring Sports" filled from the sheet
    python scripts/import_price_sheet.py data/spring_prices.csv \
        --new-price-list "Spring Sports"

    # Vendor catalog ({"items": [...], "mappings": [...]} or a bare item list)
    python scripts/import_price_sheet.py --vendor-json data/lab_catalog.json \
        --price-list-id 3f2c...
"""

import argparse
import json
import os
import sys
from pathlib import Path

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from exceptions import AppError
from models.catalog_import import ColumnMapping, VendorImportRequest
from parsers.price_sheet_parser import load_sheet_rows
from services.catalog_import_service import ImportSummary, get_catalog_import_service


def print_summary(summary: ImportSummary) -> None:
    mode = "DRY RUN" if summary.dry_run else "IMPORTED"
    print("=" * 60)
    print(f"{mode} into price list {summary.price_list_id}")
    print("=" * 60)

    if summary.rows_parsed or summary.rows_skipped:
        print(f"  Rows parsed:        {summary.rows_parsed}")
        print(f"  Rows skipped:       {summary.rows_skipped}"
              f" ({summary.duplicates_skipped} duplicate, {summary.invalid_price_skipped} bad price)")
    print(f"  Products created:   {summary.products_created}")
    print(f"  Products updated:   {summary.products_updated}")
    print(f"  Products skipped:   {summary.products_skipped}")
    print(f"  Sizes created:      {summary.sizes_created}")
    print(f"  Sizes skipped:      {summary.sizes_skipped}")
    if summary.dimension_duplicates_skipped:
        print(f"  Same-size SKUs:     {summary.dimension_duplicates_skipped}")

    print()
    for product in summary.plan.products:
        sizes = ", ".join(s.size_name for s in product.sizes_to_create) or "-"
        line = f"  [{product.outcome}] {product.product_name}: {sizes}"
        if product.suggested_match:
            line += f"  (similar to '{product.suggested_match}', {product.match_score:.2f})"
        print(line)
    for name in summary.skipped_duplicates:
        print(f"  [skipped_duplicate] {name}")


def main():
    parser = argparse.ArgumentParser(
        description="Import a price sheet or vendor catalog into a price list",
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="Price sheet (.csv, .xlsx)"
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--price-list-id",
        help="Target price list id"
    )
    target.add_argument(
        "--new-price-list",
        metavar="NAME",
        help="Create a price list with this name from the price sheet"
    )
    parser.add_argument(
        "--mapping",
        help="Manual column mapping, e.g. product=0,size=1,price=2"
    )
    parser.add_argument(
        "--vendor-json",
        help="Vendor catalog JSON file instead of a price sheet"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan the import without writing"
    )
    args = parser.parse_args()

    if not args.file and not args.vendor_json:
        parser.error("a price sheet FILE or --vendor-json is required")
    if args.new_price_list and (args.vendor_json or args.dry_run):
        parser.error("--new-price-list takes a price sheet FILE and no --dry-run")

    service = get_catalog_import_service()

    try:
        if args.vendor_json:
            payload = json.loads(Path(args.vendor_json).read_text(encoding="utf-8"))
            if isinstance(payload, list):
                payload = {"items": payload}
            request = VendorImportRequest(**payload)
            summary = service.import_vendor_catalog(
                request.items,
                args.price_list_id,
                mappings=request.mappings,
                dry_run=args.dry_run or request.dry_run,
            )
        else:
            path = Path(args.file)
            mapping = ColumnMapping.from_string(args.mapping) if args.mapping else None
            rows = load_sheet_rows(path, path.name)
            if args.new_price_list:
                summary = service.import_new_price_list(rows, args.new_price_list, mapping=mapping)
            else:
                summary = service.import_price_sheet(
                    rows,
                    args.price_list_id,
                    mapping=mapping,
                    dry_run=args.dry_run,
                )
    except AppError as e:
        print(f"ERROR [{e.code}]: {e.message}")
        if e.details:
            print(f"  {json.dumps(e.details, default=str)}")
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print_summary(summary)


if __name__ == "__main__":
    main()
