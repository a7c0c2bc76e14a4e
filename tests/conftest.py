"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import copy
import itertools
import re
import pytest
from contextlib import contextmanager
from unittest.mock import patch
from datetime import datetime
from decimal import Decimal
from typing import Generator, Optional

from services.catalog_store import CatalogSnapshot
from utils.text_utils import name_key


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else (len(self.data) if isinstance(self.data, list) else 1)


def _like_regex(pattern: str) -> re.Pattern:
    """ILIKE pattern as a regex: % and _ are wildcards unless escaped."""
    parts = []
    for escaped, char in re.findall(r"(\\)?(.)", pattern, flags=re.DOTALL):
        if not escaped and char == "%":
            parts.append(".*")
        elif not escaped and char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters (eq, neq, in_, ilike) are applied to the table's rows, so
    inserts, updates and deletes are visible to later queries.
    """

    def __init__(self, table: "MockSupabaseTable", action: str = "select", payload=None):
        self._table = table
        self._action = action
        self._payload = payload
        self._filters = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: str(row.get(column)) != str(value))
        return self

    def in_(self, column, values):
        allowed = {str(v) for v in values}
        self._filters.append(lambda row: str(row.get(column)) in allowed)
        return self

    def ilike(self, column, pattern):
        regex = _like_regex(pattern)
        self._filters.append(lambda row: regex.fullmatch(str(row.get(column) or "")) is not None)
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self) -> list[dict]:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        table = self._table

        if self._action == "insert":
            return MockSupabaseResponse(data=table.insert_rows(self._payload))

        matched = self._matches()

        if self._action == "update":
            for row in matched:
                row.update(self._payload)
                row["updated_at"] = datetime.utcnow().isoformat() + "Z"
            return MockSupabaseResponse(data=[dict(r) for r in matched])

        if self._action == "delete":
            table.rows = [r for r in table.rows if not any(r is m for m in matched)]
            return MockSupabaseResponse(data=[dict(r) for r in matched])

        data = [dict(r) for r in matched]
        if self._order:
            column, desc = self._order
            data.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self._limit is not None:
            data = data[:self._limit]

        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=1 if data else 0)

        count = table.count if table.count is not None else len(matched)
        return MockSupabaseResponse(data=data, count=count)


class MockSupabaseTable:
    """Mock Supabase table holding rows in memory."""

    def __init__(self, name: str, data: list = None, count: int = None):
        self.name = name
        self.rows = [dict(r) for r in (data or [])]
        self.count = count
        self.fail_after: Optional[int] = None
        self._ids = itertools.count(1)

    def insert_rows(self, data) -> list[dict]:
        items = [data] if isinstance(data, dict) else list(data)
        if self.fail_after is not None:
            if self.fail_after <= 0:
                raise RuntimeError(f"insert into {self.name} failed")
            self.fail_after -= 1

        inserted = []
        for item in items:
            row = dict(item)
            row.setdefault("id", f"{self.name}-{next(self._ids)}")
            row.setdefault("created_at", datetime.utcnow().isoformat() + "Z")
            self.rows.append(row)
            inserted.append(dict(row))
        return inserted

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self)

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = MockSupabaseTable(table_name, data, count)

    def fail_inserts(self, table_name: str, after: int = 0):
        """Make inserts into a table raise once `after` inserts succeeded."""
        self.table(table_name).fail_after = after

    def rows(self, table_name: str) -> list[dict]:
        return self.table(table_name).rows

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(name)
        return self._tables[name]


# ===================
# IN-MEMORY CATALOG STORE
# ===================

class InMemoryCatalogStore:
    """
    CatalogStore kept in dicts.

    transaction() restores the state it saw on entry when the block fails.
    Set fail_on_size to a size name to make create_size raise for it.
    """

    def __init__(self, price_list_ids=("pl-1",)):
        self.price_lists = set(price_list_ids)
        self.products: dict[str, dict] = {}
        self.links: list[tuple[str, str]] = []
        self.sizes: list[dict] = []
        self.fail_on_size: Optional[str] = None
        self.transactions: list[str] = []
        self._ids = itertools.count(1)

    # Seeding helpers

    def add_product(self, price_list_id: str, name: str, sizes: dict = None) -> str:
        product_id = self.create_product(price_list_id, name, None, None, Decimal("0"))
        for size_name, price in (sizes or {}).items():
            self.create_size(product_id, price_list_id, size_name, Decimal(str(price)), Decimal("0"))
        return product_id

    def products_in(self, price_list_id: str) -> list[dict]:
        return [self.products[pid] for pl, pid in self.links if pl == price_list_id]

    def sizes_of(self, price_list_id: str, product_name: str) -> dict[str, Decimal]:
        product_id = self.product_exists(price_list_id, product_name)
        return {
            s["size_name"]: s["price"]
            for s in self.sizes
            if s["product_id"] == product_id and s["price_list_id"] == price_list_id
        }

    # CatalogStore

    def price_list_exists(self, price_list_id: str) -> bool:
        return price_list_id in self.price_lists

    def load_snapshot(self, price_list_id: str) -> CatalogSnapshot:
        return CatalogSnapshot.from_rows(
            price_list_id,
            self.products_in(price_list_id),
            [s for s in self.sizes if s["price_list_id"] == price_list_id],
        )

    def product_exists(self, price_list_id: str, name: str) -> Optional[str]:
        for product in self.products_in(price_list_id):
            if name_key(product["name"]) == name_key(name):
                return product["id"]
        return None

    def create_product(self, price_list_id, name, description, category, cost) -> str:
        product_id = f"prod-{next(self._ids)}"
        self.products[product_id] = {
            "id": product_id,
            "name": name,
            "description": description,
            "category": category,
            "base_cost": cost,
        }
        self.links.append((price_list_id, product_id))
        return product_id

    def size_exists(self, product_id, price_list_id, size_name) -> bool:
        return any(
            s["product_id"] == product_id
            and s["price_list_id"] == price_list_id
            and name_key(s["size_name"]) == name_key(size_name)
            for s in self.sizes
        )

    def create_size(self, product_id, price_list_id, size_name, price, cost) -> str:
        if self.fail_on_size and name_key(size_name) == name_key(self.fail_on_size):
            raise RuntimeError(f"size insert failed: {size_name}")
        size_id = f"size-{next(self._ids)}"
        self.sizes.append({
            "id": size_id,
            "product_id": product_id,
            "price_list_id": price_list_id,
            "size_name": size_name,
            "price": price,
            "cost": cost,
        })
        return size_id

    @contextmanager
    def transaction(self, product_name: str):
        self.transactions.append(product_name)
        saved = (copy.deepcopy(self.products), list(self.links), copy.deepcopy(self.sizes))
        try:
            yield
        except Exception:
            self.products, self.links, self.sizes = saved
            raise


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("price_lists", [
                {"id": "pl-1", "name": "Studio Standard", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_store.get_supabase_client", return_value=mock_supabase):
            with patch("services.price_list_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture
def memory_store() -> InMemoryCatalogStore:
    """Empty in-memory catalog with one price list, "pl-1"."""
    return InMemoryCatalogStore()


@pytest.fixture(autouse=True)
def clear_preview_cache():
    """Previews are module-level state; start every test empty."""
    from services import preview_cache_service
    preview_cache_service.clear_previews()
    yield
    preview_cache_service.clear_previews()


@pytest.fixture
def sample_price_list_data() -> dict:
    """Sample price list row."""
    return {
        "id": "pl-1",
        "name": "Studio Standard",
        "description": "Default studio pricing",
        "is_default": True,
        "created_at": "2026-03-02T10:00:00Z"
    }


@pytest.fixture
def e2e_price_sheet() -> str:
    """Sheet with one duplicate row and one unparsable price."""
    return (
        "Product,Size,Price\n"
        "Print,4x6,2.99\n"
        "Print,4x6,2.99\n"
        "Print,5x7,4.99\n"
        "Frame,,N/A\n"
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
