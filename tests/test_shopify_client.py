"""Tests for the Admin GraphQL client"""

import json

import httpx
import pytest

from app.core.exceptions import ProtectedDataAccessError, RemoteQueryError
from app.services.shopify_client import ShopifyAdminClient, classify_errors

def client_for(handler):
    return ShopifyAdminClient(
        shop="demo.myshopify.com",
        access_token="shpat_test",
        api_version="2024-10",
        transport=httpx.MockTransport(handler),
    )

class TestClassifyErrors:

    def test_not_approved_is_protected(self):
        error = classify_errors(
            [{"message": "This app is not approved to access the Customer object."}],
            scope="customers",
        )

        assert isinstance(error, ProtectedDataAccessError)
        assert error.status_code == 403
        assert error.error_code == "PROTECTED_CUSTOMER_DATA_ACCESS_DENIED"

    def test_protected_signature_is_case_insensitive(self):
        error = classify_errors([{"message": "Access to PROTECTED order data denied"}])

        assert isinstance(error, ProtectedDataAccessError)
        assert error.error_code == "PROTECTED_ORDER_DATA_ACCESS_DENIED"

    def test_other_errors_keep_first_message(self):
        error = classify_errors([{"message": "Throttled"}, {"message": "Other"}])

        assert isinstance(error, RemoteQueryError)
        assert error.status_code == 502
        assert error.detail == "Throttled"

    def test_string_payload(self):
        error = classify_errors("Field 'foo' doesn't exist")

        assert isinstance(error, RemoteQueryError)
        assert error.detail == "Field 'foo' doesn't exist"

class TestShopifyAdminClient:

    async def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["token"] = request.headers["X-Shopify-Access-Token"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"shop": {"name": "Demo"}}})

        data = await client_for(handler).execute("{ shop { name } }")

        assert data == {"shop": {"name": "Demo"}}
        assert seen["url"] == "https://demo.myshopify.com/admin/api/2024-10/graphql.json"
        assert seen["token"] == "shpat_test"
        assert seen["body"] == {"query": "{ shop { name } }"}

    async def test_fetch_page_parses_page_info(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["variables"] == {"first": 50, "after": "abc", "query": "created_at:>='x'"}
            return httpx.Response(200, json={
                "data": {
                    "orders": {
                        "pageInfo": {"hasNextPage": True, "endCursor": "def"},
                        "nodes": [{"id": "gid://shopify/Order/1"}],
                    }
                }
            })

        page = await client_for(handler).fetch_page(
            "orders", "id", search="created_at:>='x'", cursor="abc", first=50
        )

        assert page.nodes == [{"id": "gid://shopify/Order/1"}]
        assert page.has_next_page is True
        assert page.end_cursor == "def"

    async def test_protected_error_payload_raises(self):
        def handler(request):
            return httpx.Response(200, json={
                "errors": [{"message": "This app is not approved to access the Order object."}]
            })

        with pytest.raises(ProtectedDataAccessError) as exc_info:
            await client_for(handler).fetch_page("orders", "id")

        assert exc_info.value.error_code == "PROTECTED_ORDER_DATA_ACCESS_DENIED"

    async def test_fetch_page_scope_follows_connection(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "not approved"}]})

        with pytest.raises(ProtectedDataAccessError) as exc_info:
            await client_for(handler).fetch_page("customers", "id")

        assert exc_info.value.scope == "customers"

    async def test_other_error_payload_raises_remote_error(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Throttled"}]})

        with pytest.raises(RemoteQueryError) as exc_info:
            await client_for(handler).execute("{ shop { name } }")

        assert exc_info.value.detail == "Throttled"

    async def test_non_200_raises(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        with pytest.raises(RemoteQueryError) as exc_info:
            await client_for(handler).execute("{ shop { name } }")

        assert "500" in exc_info.value.detail

    async def test_transport_failure_raises(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(RemoteQueryError):
            await client_for(handler).execute("{ shop { name } }")

    async def test_fetch_nodes_skips_missing(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["variables"] == {"ids": ["gid://shopify/Customer/1", "gid://shopify/Customer/2"]}
            assert "... on Customer" in body["query"]
            return httpx.Response(200, json={"data": {"nodes": [{"id": "gid://shopify/Customer/1"}, None]}})

        nodes = await client_for(handler).fetch_nodes(
            ["gid://shopify/Customer/1", "gid://shopify/Customer/2"], "id"
        )

        assert nodes == [{"id": "gid://shopify/Customer/1"}]

    async def test_fetch_nodes_without_ids_makes_no_call(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert await client_for(handler).fetch_nodes([], "id") == []
