"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are read at import time; give them something to load
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from typing import Generator

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data
        if count is not None:
            self.count = count
        elif isinstance(data, list):
            self.count = len(data)
        else:
            self.count = 1 if data else 0


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        # Filter rows that carry the column; leave the rest alone
        self._data = [
            row for row in self._data
            if column not in row or row[column] == value
        ]
        return self

    def limit(self, count):
        self._data = self._data[:count]
        return self

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._count)


class MockRpcCall:
    """Pending RPC call; raises on execute() when configured to fail."""

    def __init__(self, data=None, error: Exception = None):
        self._data = data
        self._error = error

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        return MockSupabaseResponse(data=self._data)


class MockSupabaseClient:
    """Mock Supabase client with tables and RPCs."""

    def __init__(self):
        self._tables = {}
        self._rpc_results = {}
        self._rpc_errors = {}
        self.rpc_calls: list[tuple[str, dict]] = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def set_rpc_result(self, name: str, data):
        """Configure what an RPC returns."""
        self._rpc_results[name] = data

    def set_rpc_error(self, name: str, error: Exception):
        """Make an RPC raise on execute()."""
        self._rpc_errors[name] = error

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"])

    def rpc(self, name: str, params: dict = None) -> MockRpcCall:
        """Record the call and return a pending RPC."""
        params = params or {}
        self.rpc_calls.append((name, params))

        data = self._rpc_results.get(name, True)
        # Paged RPCs return the requested slice
        if isinstance(data, list) and "p_limit" in params:
            start = params.get("p_offset") or 0
            data = data[start:start + params["p_limit"]]

        return MockRpcCall(data=data, error=self._rpc_errors.get(name))

    def rpc_names(self) -> list[str]:
        """Names of RPCs called so far, in order."""
        return [name for name, _ in self.rpc_calls]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_rpc_result("get_queue", [{...}])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch every service's database client with the mock.

    Usage:
        def test_something(mock_db):
            mock_db.set_rpc_result("get_order", [{...}])
            service = QueueService()
    """
    with patch("services.queue_service.get_supabase_client", return_value=mock_supabase):
        with patch("services.stage_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.due_date_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture
def sample_order_row() -> dict:
    """Raw order row as returned by get_order / get_queue."""
    return {
        "id": "order-uuid-123",
        "store": "bannos",
        "stage": "Filling",
        "human_id": "bannos-12345",
        "shopify_order_number": "12345",
        "due_date": "2024-12-26",
        "cancelled_at": None,
        "assignee_id": "staff-uuid-1",
        "delivery_method": "Delivery",
        "customer_name": "Jane Citizen",
        "product_title": "Chocolate Mud Cake",
        "size": "M",
        "item_qty": 1,
        "flavour": "Chocolate",
        "storage": "Fridge A",
        "covering_start_ts": None,
        "decorating_start_ts": None,
    }


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
