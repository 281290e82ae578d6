"""Tests for paginated metric aggregation"""

from datetime import datetime, timezone

import pytest

from app.core.exceptions import ProtectedDataAccessError, RemoteQueryError
from app.services.aggregation import (
    MetricSpec,
    aggregate_many,
    aggregate_metric,
    collect_records,
    merge_fields,
    metric_series,
)
from app.services.date_ranges import resolve_date_range
from tests.conftest import FakeAdminClient

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

def everything(record):
    return True

def by_id(record):
    return record.get("id")

def by_customer(record):
    return (record.get("customer") or {}).get("id")

ALL_ORDERS = MetricSpec("all-orders", "orders", "id", everything, by_id)

@pytest.fixture
def window():
    return resolve_date_range("7days", clock=lambda: NOW).window

class TestCollectRecords:

    async def test_follows_cursors_until_exhausted(self):
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "A"}], has_next_page=True)
        client.add_page("orders", [{"id": "B"}], has_next_page=True)
        client.add_page("orders", [{"id": "C"}])

        batch = await collect_records(client, "orders", "id")

        assert [r["id"] for r in batch.records] == ["A", "B", "C"]
        assert batch.truncated is False
        assert [call["cursor"] for call in client.calls] == [None, "cursor-1", "cursor-2"]

    async def test_cap_truncates_and_flags(self):
        client = FakeAdminClient()
        client.add_page("orders", [{"id": str(i)} for i in range(3)], has_next_page=True)
        client.add_page("orders", [{"id": str(i)} for i in range(3, 6)])

        batch = await collect_records(client, "orders", "id", cap=2)

        assert len(batch.records) == 2
        assert batch.truncated is True
        assert len(client.calls) == 1

    async def test_cap_reached_exactly_on_last_page_is_not_truncated(self):
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "A"}, {"id": "B"}])

        batch = await collect_records(client, "orders", "id", cap=2)

        assert batch.truncated is False

    async def test_page_size_is_passed_through(self):
        client = FakeAdminClient()
        client.add_page("customers", [])

        await collect_records(client, "customers", "id", page_size=50)

        assert client.calls[0]["first"] == 50

    async def test_error_aborts_without_partial_result(self):
        client = FakeAdminClient()
        client.error = RemoteQueryError("Throttled")

        with pytest.raises(RemoteQueryError):
            await collect_records(client, "orders", "id")

class TestAggregateMetric:

    async def test_dedupes_across_pages(self, window):
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "A"}, {"id": "B"}], has_next_page=True)
        client.add_page("orders", [{"id": "B"}, {"id": "C"}])

        result = await aggregate_metric(client, ALL_ORDERS, window)

        assert result.count == 3
        assert result.keys == {"A", "B", "C"}

    async def test_predicate_runs_before_key_joins_set(self, window):
        spec = MetricSpec("big", "orders", "id total", lambda r: r["total"] > 10, by_id)
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "A", "total": 5}, {"id": "B", "total": 50}])

        result = await aggregate_metric(client, spec, window)

        assert result.keys == {"B"}

    async def test_min_occurrences_counts_repeat_customers(self, window):
        spec = MetricSpec("returning", "orders", "id", everything, by_customer, min_occurrences=2)
        client = FakeAdminClient()
        client.add_page("orders", [
            {"id": "1", "customer": {"id": "C1"}},
            {"id": "2", "customer": {"id": "C1"}},
            {"id": "3", "customer": {"id": "C2"}},
            {"id": "4", "customer": None},
        ])

        result = await aggregate_metric(client, spec, window)

        assert result.keys == {"C1"}

    async def test_repeated_order_across_pages_is_one_occurrence(self, window):
        spec = MetricSpec("returning", "orders", "id", everything, by_customer, min_occurrences=2)
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "gid://shopify/Order/1", "customer": {"id": "A"}}], has_next_page=True)
        client.add_page("orders", [{"id": "gid://shopify/Order/1", "customer": {"id": "A"}}])

        result = await aggregate_metric(client, spec, window)

        assert result.count == 0
        assert len(client.calls) == 2

    async def test_window_search_is_sent(self, window):
        client = FakeAdminClient()
        client.add_page("orders", [])

        await aggregate_metric(client, ALL_ORDERS, window)

        assert client.calls[0]["search"] == window.search()

    async def test_protected_data_error_surfaces(self, window):
        client = FakeAdminClient()
        client.error = ProtectedDataAccessError(scope="orders")

        with pytest.raises(ProtectedDataAccessError) as exc_info:
            await aggregate_metric(client, ALL_ORDERS, window)

        assert exc_info.value.error_code == "PROTECTED_ORDER_DATA_ACCESS_DENIED"

class TestAggregateMany:

    async def test_specs_sharing_a_connection_share_one_fetch(self, window):
        paid = MetricSpec("paid", "orders", "id\nstatus", lambda r: r["status"] == "PAID", by_id)
        pending = MetricSpec("pending", "orders", "id\nstatus", lambda r: r["status"] == "PENDING", by_id)
        client = FakeAdminClient()
        client.add_page("orders", [
            {"id": "1", "status": "PAID"},
            {"id": "2", "status": "PENDING"},
            {"id": "3", "status": "PAID"},
        ])

        results = await aggregate_many(client, [paid, pending], window)

        assert results["paid"].count == 2
        assert results["pending"].count == 1
        assert len(client.calls) == 1

    def test_merge_fields_drops_duplicates(self):
        assert merge_fields(["id", " id ", "email"]) == "id\nemail"

class TestMetricSeries:

    async def test_two_points_for_trailing_range(self):
        date_range = resolve_date_range("7days", clock=lambda: NOW)
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "A"}, {"id": "B"}])

        series = await metric_series(client, [ALL_ORDERS], date_range)

        points = series["all-orders"].data_points
        assert [p.date for p in points] == ["2024-03-08", "2024-03-15"]
        assert series["all-orders"].total == 2

    async def test_one_point_for_today(self):
        date_range = resolve_date_range("today", clock=lambda: NOW)
        client = FakeAdminClient()
        client.add_page("orders", [{"id": "A"}])

        series = await metric_series(client, [ALL_ORDERS], date_range)

        assert len(series["all-orders"].data_points) == 1
