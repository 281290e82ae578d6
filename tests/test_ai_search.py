"""Tests for AI search chat, history, query execution and export"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from app.core.exceptions import AIServiceError, ValidationException
from app.services.query_runner import customer_ids_in, find_rows, flatten_row, prepare_query
from tests.conftest import customer_node

BASE = "/api/v1/ai-search"

STRUCTURED = json.dumps({
    "schema_version": 1,
    "reply": "Here are your top 3 customers",
    "query": "customers(first: 3, sortKey: AMOUNT_SPENT) { nodes { id } }",
    "needs_clarification": False,
})

def webhook_returning(value):
    return patch(
        "app.api.v1.ai_search.services.AIChatService.send_message",
        new=AsyncMock(return_value=value),
    )

class TestPrepareQuery:

    def test_bare_selection_is_wrapped(self):
        assert prepare_query("shop { name }") == "query {\n  shop { name }\n}"

    def test_full_query_is_kept(self):
        assert prepare_query("  Query { shop { name } } ") == "Query { shop { name } }"

    def test_customer_nodes_get_an_id(self):
        query = prepare_query("customers(first: 2) { edges { node { email } } }")

        assert "node { id " in query

    def test_fields_containing_id_letters_still_get_an_id(self):
        query = prepare_query("customers(first: 2) { edges { node { validEmailAddress paid } } }")

        assert "node { id " in query
        assert "validEmailAddress paid" in query

    def test_selected_id_is_not_duplicated(self):
        query = prepare_query("customers(first: 2) { nodes { email } edges { node { id email } } }")

        assert query.count("id") == 1

    def test_empty_query_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            prepare_query("   ")

        assert exc_info.value.detail == "Query cannot be empty"

class TestRows:

    def test_find_rows_unwraps_connections(self):
        data = {"customers": {"edges": [{"node": {"id": "a"}}, {"node": {"id": "b"}}]}}

        assert find_rows(data) == [{"id": "a"}, {"id": "b"}]
        assert find_rows({"orders": {"nodes": [{"id": "o"}]}}) == [{"id": "o"}]
        assert find_rows({"shop": {"name": "x"}}) == []

    def test_flatten_row(self):
        row = flatten_row({
            "id": "gid://shopify/Customer/1",
            "amountSpent": {"amount": "10.0", "currencyCode": "USD"},
            "tags": ["vip", "new"],
            "addresses": [{"city": "Paris"}],
        })

        assert row == {
            "id": "gid://shopify/Customer/1",
            "amountSpent.amount": "10.0",
            "amountSpent.currencyCode": "USD",
            "tags": "vip, new",
            "addresses": '[{"city": "Paris"}]',
        }

    def test_customer_ids(self):
        rows = [
            {"id": "gid://shopify/Customer/1"},
            {"id": "gid://shopify/Order/9"},
            {"id": "gid://shopify/Customer/1"},
        ]

        assert customer_ids_in(rows) == ["gid://shopify/Customer/1"]

class TestChat:

    def test_structured_reply_is_stored(self, client, shop):
        with webhook_returning(STRUCTURED) as send:
            response = client.post(f"{BASE}/chat", json={"message": " Top customers ", "sessionId": "sess-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["session_id"] == "sess-1"
        assert body["response"]["kind"] == "structured"
        assert body["response"]["query"].startswith("customers(first: 3")
        assert body["message"]["role"] == "assistant"
        send.assert_awaited_once_with("Top customers", "sess-1", shop)

        detail = client.get(f"{BASE}/sessions/sess-1").json()
        assert detail["title"] == "Top customers"
        assert [m["role"] for m in detail["messages"]] == ["user", "assistant"]
        assert detail["messages"][1]["query"] == body["response"]["query"]

    def test_plain_reply(self, client):
        with webhook_returning("You have 12 customers in Canada."):
            body = client.post(f"{BASE}/chat", json={"message": "How many in Canada?", "sessionId": "s2"}).json()

        assert body["response"] == {"kind": "plain", "reply": "You have 12 customers in Canada.", "query": None}

    def test_second_message_reuses_session(self, client):
        with webhook_returning("ok"):
            client.post(f"{BASE}/chat", json={"message": "first", "sessionId": "s3"})
            client.post(f"{BASE}/chat", json={"message": "second", "sessionId": "s3"})

        sessions = client.get(f"{BASE}/sessions").json()
        assert len(sessions) == 1
        assert sessions[0]["title"] == "first"
        assert sessions[0]["message_count"] == 4

    def test_webhook_failure_stores_nothing(self, client):
        failing = AsyncMock(side_effect=AIServiceError("Webhook request failed with status 500: boom"))
        with patch("app.api.v1.ai_search.services.AIChatService.send_message", new=failing):
            response = client.post(f"{BASE}/chat", json={"message": "hello", "sessionId": "s4"})

        assert response.status_code == 502
        assert response.json()["error"] == "AI_SERVICE_ERROR"
        assert client.get(f"{BASE}/sessions").json() == []

    def test_unconfigured_webhook_is_503(self, client):
        response = client.post(f"{BASE}/chat", json={"message": "hello", "sessionId": "s5"})

        assert response.status_code == 503
        assert response.json()["error"] == "AI_SERVICE_NOT_CONFIGURED"

    def test_blank_message_rejected(self, client):
        response = client.post(f"{BASE}/chat", json={"message": "   ", "sessionId": "s6"})

        assert response.status_code == 422

    def test_delete_session(self, client):
        with webhook_returning("ok"):
            client.post(f"{BASE}/chat", json={"message": "hi", "sessionId": "s7"})

        assert client.delete(f"{BASE}/sessions/s7").json()["success"] is True
        assert client.get(f"{BASE}/sessions/s7").status_code == 404
        assert client.delete(f"{BASE}/sessions/s7").status_code == 404

    def test_sessions_of_other_shops_are_hidden(self, client):
        from app.core.security import get_current_shop
        from app.main import app

        with webhook_returning("ok"):
            client.post(f"{BASE}/chat", json={"message": "hi", "sessionId": "s8"})

        app.dependency_overrides[get_current_shop] = lambda: {"shop": "other.myshopify.com"}
        assert client.get(f"{BASE}/sessions/s8").status_code == 404
        assert client.get(f"{BASE}/sessions").json() == []

class TestExecuteQuery:

    def test_wraps_and_tabulates(self, client, fake_client):
        fake_client.execute_result = {"customers": {"edges": [
            {"node": {"id": "gid://shopify/Customer/1", "email": "a@example.com", "tags": ["vip"]}},
        ]}}

        response = client.post(f"{BASE}/execute-query", json={"query": "customers(first: 1) { edges { node { email tags } } }"})

        assert response.status_code == 200
        body = response.json()
        assert body["query"].startswith("query {")
        assert body["row_count"] == 1
        assert body["rows"][0] == {"id": "gid://shopify/Customer/1", "email": "a@example.com", "tags": "vip"}
        assert body["customer_ids"] == ["gid://shopify/Customer/1"]
        assert fake_client.calls[0]["query"] == body["query"]

    def test_empty_query_is_422_without_remote_call(self, client, fake_client):
        response = client.post(f"{BASE}/execute-query", json={"query": ""})

        assert response.status_code == 422
        assert response.json()["detail"] == "Query cannot be empty"
        assert fake_client.calls == []

class TestExport:

    def test_export_by_ids_without_country(self, client, fake_client):
        fake_client.nodes = {"gid://shopify/Customer/1": customer_node(1)}

        response = client.post(f"{BASE}/export", json={"customerIds": ["1"], "format": "csv"})

        assert response.status_code == 200
        assert 'filename="ai-search-results.csv"' in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == '"Name","Email","Created Date","Orders","Total Spent"'
        assert len(lines) == 2

    def test_export_by_query(self, client, fake_client):
        fake_client.execute_result = {"customers": {"nodes": [{"id": "gid://shopify/Customer/2"}]}}
        fake_client.nodes = {"gid://shopify/Customer/2": customer_node(2)}

        response = client.post(f"{BASE}/export", json={"query": "customers(first: 5) { nodes { id } }"})

        assert response.status_code == 200
        assert "Customer 2" in response.text

    def test_export_needs_query_or_ids(self, client):
        response = client.post(f"{BASE}/export", json={"format": "csv"})

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"
