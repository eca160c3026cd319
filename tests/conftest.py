"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for the inventory insight test suite.
"""

import threading
from unittest.mock import MagicMock

import pytest

from inventory_insight.core.config import reset_settings
from inventory_insight.core.errors import BackendError
from inventory_insight.core.services.inventory_backend import MemoryInventoryBackend
from inventory_insight.nl_query.pipeline import InsightPipeline


# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def mock_environment(monkeypatch):
    """Keep every test on in-memory data with no real API keys."""
    monkeypatch.setenv("INVENTORY_BACKEND", "memory")
    monkeypatch.setenv("SAMPLE_ROWS", "40")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# FAKES
# =============================================================================

PROMPT_ROUTES = (
    ("You are an expert SQL query generator", "sql"),
    ("You are an AI inventory analyst", "insight"),
    ("You are an expert data visualization analyst", "charts"),
    ("Analyze this inventory management query", "intent"),
)


class FakeOracle:
    """
    Scripted text-completion oracle.

    Replies are chosen by which prompt is being sent, since insight and chart
    prompts run concurrently. A reply that is an Exception gets raised.
    """

    model_name = "fake-model"

    def __init__(self, sql="SELECT * FROM Inventory", insight="Here is what I found.",
                 charts='{"insights": "", "charts": []}', intent="not json"):
        self.replies = {"sql": sql, "insight": insight, "charts": charts, "intent": intent}
        self.prompts = []
        self._lock = threading.Lock()

    def kind_of(self, prompt: str) -> str:
        for prefix, kind in PROMPT_ROUTES:
            if prompt.startswith(prefix):
                return kind
        raise AssertionError(f"Unexpected prompt: {prompt[:80]!r}")

    def prompts_for(self, kind: str):
        return [p for k, p in self.prompts if k == kind]

    def complete(self, prompt: str) -> str:
        kind = self.kind_of(prompt)
        with self._lock:
            self.prompts.append((kind, prompt))
        reply = self.replies[kind]
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingBackend(MemoryInventoryBackend):
    """In-memory backend that remembers every call issued against it."""

    def __init__(self, rows, table_name="Inventory"):
        super().__init__(rows, table_name=table_name)
        self.calls = []

    def fetch(self, query):
        self.calls.append(("fetch", query))
        return super().fetch(query)

    def count(self, filters=()):
        self.calls.append(("count", list(filters)))
        return super().count(filters)


class FailingBackend(RecordingBackend):

    def fetch(self, query):
        self.calls.append(("fetch", query))
        raise BackendError("Database query failed: connection refused")

    def count(self, filters=()):
        self.calls.append(("count", list(filters)))
        raise BackendError("Database error: connection refused")


# =============================================================================
# DATA FIXTURES
# =============================================================================

@pytest.fixture
def stock_rows():
    """Four rows; items 1 and 3 are below their reorder threshold."""
    return [
        {"item_id": 1, "item_name": "Widget A", "brand": "Acme", "category": "Tools",
         "quantity": 5, "threshold": 10, "selling_price": 25.0, "total_stock_value": 125.0,
         "supplier_name": "TechCorp", "supplier_rating": 4.5, "supplier_contact": "+1-555-1000",
         "status": "active", "expired": False, "sales_velocity": 1.5, "days_out_of_stock": 0},
        {"item_id": 2, "item_name": "Widget B", "brand": "Acme", "category": "Tools",
         "quantity": 15, "threshold": 10, "selling_price": 80.0, "total_stock_value": 1200.0,
         "supplier_name": "TechCorp", "supplier_rating": 3.5, "supplier_contact": "+1-555-1000",
         "status": "active", "expired": False, "sales_velocity": 4.2, "days_out_of_stock": 0},
        {"item_id": 3, "item_name": "Gadget C", "brand": "Globex", "category": "Food",
         "quantity": 0, "threshold": 5, "selling_price": 12.5, "total_stock_value": 0.0,
         "supplier_name": "FoodDist", "supplier_rating": None, "supplier_contact": "+1-555-2000",
         "status": "low_stock", "expired": True, "sales_velocity": 0.3, "days_out_of_stock": 3},
        {"item_id": 4, "item_name": "Gadget D", "brand": None, "category": "Food",
         "quantity": 20, "threshold": 1, "selling_price": 60.0, "total_stock_value": 1200.0,
         "supplier_name": "FoodDist", "supplier_rating": 5.0, "supplier_contact": "+1-555-2000",
         "status": "active", "expired": False, "sales_velocity": 2.0, "days_out_of_stock": 0},
    ]


@pytest.fixture
def backend(stock_rows):
    return RecordingBackend(stock_rows)


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def pipeline(oracle, backend):
    return InsightPipeline(oracle, backend)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    mock = MagicMock()
    mock.table.return_value.select.return_value.execute.return_value.data = []
    mock.table.return_value.select.return_value.execute.return_value.count = 0
    return mock
