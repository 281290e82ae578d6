"""Shared fixtures: settings, a scripted Admin client and the API test client"""

import os
from pathlib import Path

TEST_DB = Path(__file__).parent / "test_audience.db"

os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB}"
os.environ["SHOPIFY_API_KEY"] = "test-api-key"
os.environ["SHOPIFY_API_SECRET"] = "test-api-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DASHBOARD_CACHE_TTL"] = "0"
os.environ["SEGMENT_PREVIEW_DEBOUNCE_MS"] = "0"
os.environ["STORE_TIMEZONE"] = "UTC"
os.environ.pop("REDIS_URL", None)
os.environ.pop("AI_WEBHOOK_URL", None)

if TEST_DB.exists():
    TEST_DB.unlink()

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

import pytest
from fastapi.testclient import TestClient

from app.core.security import get_current_shop
from app.services.shopify_client import Page
from app.utils.dependencies import get_admin_client, get_clock

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

class FakeAdminClient:
    """
    Scripted stand-in for ShopifyAdminClient

    Pages are served per connection in order, every call is recorded.
    """

    def __init__(self, shop: str = "test-shop.myshopify.com"):
        self.shop = shop
        self.pages: Dict[str, List[Page]] = defaultdict(list)
        self.nodes: Dict[str, Dict[str, Any]] = {}
        self.execute_result: Dict[str, Any] = {}
        self.error: Optional[Exception] = None
        self.connection_errors: Dict[str, Exception] = {}
        self.calls: List[Dict[str, Any]] = []

    def add_page(self, connection: str, nodes: List[Dict[str, Any]], has_next_page: bool = False):
        cursor = f"cursor-{len(self.pages[connection]) + 1}" if has_next_page else None
        self.pages[connection].append(Page(nodes=nodes, has_next_page=has_next_page, end_cursor=cursor))

    async def fetch_page(self, connection, fields, search=None, cursor=None, first=250, scope=None):
        self.calls.append({
            "method": "fetch_page",
            "connection": connection,
            "fields": fields,
            "search": search,
            "cursor": cursor,
            "first": first,
            "scope": scope,
        })
        if self.error:
            raise self.error
        if connection in self.connection_errors:
            raise self.connection_errors[connection]
        pages = self.pages.get(connection) or [Page()]
        index = 0 if cursor is None else int(cursor.split("-")[1])
        return pages[index] if index < len(pages) else Page()

    async def fetch_nodes(self, ids, fields, type_name="Customer", scope="customers"):
        self.calls.append({"method": "fetch_nodes", "ids": list(ids)})
        if self.error:
            raise self.error
        return [self.nodes[i] for i in ids if i in self.nodes]

    async def execute(self, query, variables=None, scope="orders"):
        self.calls.append({"method": "execute", "query": query})
        if self.error:
            raise self.error
        return self.execute_result

def customer_node(number: int, **overrides) -> Dict[str, Any]:
    node = {
        "id": f"gid://shopify/Customer/{number}",
        "displayName": f"Customer {number}",
        "email": f"customer{number}@example.com",
        "createdAt": "2024-06-01T10:00:00Z",
        "numberOfOrders": 1,
        "amountSpent": {"amount": "100.0", "currencyCode": "USD"},
        "defaultAddress": {"country": "United States", "countryCodeV2": "US"},
    }
    node.update(overrides)
    return node

@pytest.fixture(autouse=True)
def clear_cache():
    from app.core.cache import cache

    cache.clear_fallback()
    yield
    cache.clear_fallback()

@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW

@pytest.fixture
def shop():
    return f"shop-{uuid.uuid4().hex[:8]}.myshopify.com"

@pytest.fixture
def fake_client(shop):
    return FakeAdminClient(shop=shop)

@pytest.fixture
def client(shop, fake_client, fixed_clock):
    from app.main import app

    app.dependency_overrides[get_current_shop] = lambda: {
        "shop": shop,
        "user_id": "1",
        "session_id": "test-session",
    }
    app.dependency_overrides[get_admin_client] = lambda: fake_client
    app.dependency_overrides[get_clock] = lambda: fixed_clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
