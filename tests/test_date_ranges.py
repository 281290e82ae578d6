"""Tests for date range resolution"""

from datetime import date, datetime, time, timezone

import pytest

from app.services.date_ranges import (
    DateRangeToken,
    created_at_search,
    parse_token,
    period_label,
    resolve_date_range,
)

NOW = datetime(2024, 3, 15, 14, 30, tzinfo=timezone.utc)

def clock():
    return NOW

ALL_TOKENS = [
    "today", "yesterday", "7days", "last7Days", "30days", "last30Days",
    "90days", "last90Days", "thisMonth", "lastMonth",
]

class TestParseToken:

    def test_aliases_map_to_canonical_tokens(self):
        assert parse_token("7days") == DateRangeToken.LAST_7_DAYS
        assert parse_token("30days") == DateRangeToken.LAST_30_DAYS
        assert parse_token("90days") == DateRangeToken.LAST_90_DAYS

    def test_unknown_token_falls_back_to_last_30_days(self):
        assert parse_token("fortnight") == DateRangeToken.LAST_30_DAYS
        assert parse_token(None) == DateRangeToken.LAST_30_DAYS

    def test_period_labels(self):
        assert period_label("30days") == "the last 30 days"
        assert period_label("today") == "today"
        assert period_label("bogus") == "the selected period"

class TestResolveDateRange:

    @pytest.mark.parametrize("token", ALL_TOKENS)
    def test_start_before_end_and_end_is_end_of_day(self, token):
        resolved = resolve_date_range(token, clock=clock)

        assert resolved.start <= resolved.end
        assert resolved.start.time() == time.min
        assert resolved.end.time() == time.max

    def test_today(self):
        resolved = resolve_date_range("today", clock=clock)

        assert resolved.start.date() == date(2024, 3, 15)
        assert resolved.end.date() == date(2024, 3, 15)

    def test_yesterday(self):
        resolved = resolve_date_range("yesterday", clock=clock)

        assert resolved.start.date() == date(2024, 3, 14)
        assert resolved.end.date() == date(2024, 3, 14)

    def test_trailing_days_start_n_days_back(self):
        resolved = resolve_date_range("7days", clock=clock)

        assert resolved.start.date() == date(2024, 3, 8)
        assert resolved.end.date() == date(2024, 3, 15)

    def test_this_month(self):
        resolved = resolve_date_range("thisMonth", clock=clock)

        assert resolved.start.date() == date(2024, 3, 1)
        assert resolved.end.date() == date(2024, 3, 15)

    def test_last_month_spans_whole_previous_month(self):
        resolved = resolve_date_range("lastMonth", clock=clock)

        assert resolved.start.date() == date(2024, 2, 1)
        assert resolved.end.date() == date(2024, 2, 29)

    def test_last_month_in_january_wraps_year(self):
        resolved = resolve_date_range("lastMonth", clock=lambda: datetime(2024, 1, 10, tzinfo=timezone.utc))

        assert resolved.start.date() == date(2023, 12, 1)
        assert resolved.end.date() == date(2023, 12, 31)

    def test_unknown_token_resolves_as_last_30_days(self):
        resolved = resolve_date_range("nonsense", clock=clock)

        assert resolved.token == DateRangeToken.LAST_30_DAYS
        assert resolved.start.date() == date(2024, 2, 14)

class TestSampleWindows:

    def test_today_has_one_window(self):
        windows = resolve_date_range("today", clock=clock).sample_windows()

        assert len(windows) == 1
        assert windows[0].label == "2024-03-15"

    @pytest.mark.parametrize("token", [t for t in ALL_TOKENS if t != "today"])
    def test_other_tokens_have_two_windows(self, token):
        resolved = resolve_date_range(token, clock=clock)
        windows = resolved.sample_windows()

        assert len(windows) == 2
        assert windows[0].start == resolved.start
        assert windows[0].end.date() == resolved.start.date()
        assert windows[1].start == resolved.start
        assert windows[1].end == resolved.end

    def test_cumulative_search_has_no_lower_bound(self):
        window = resolve_date_range("today", clock=clock).window

        assert ">=" not in window.search(cumulative=True)
        assert ">=" in window.search()

class TestCreatedAtSearch:

    def test_search_syntax_uses_utc_milliseconds(self):
        start = datetime(2024, 3, 1, tzinfo=timezone.utc)
        end = datetime(2024, 3, 1, 23, 59, 59, 999999, tzinfo=timezone.utc)

        assert created_at_search(start, end) == (
            "created_at:>='2024-03-01T00:00:00.000Z' "
            "created_at:<='2024-03-01T23:59:59.999Z'"
        )

    def test_open_start(self):
        end = datetime(2024, 3, 1, tzinfo=timezone.utc)

        assert created_at_search(None, end) == "created_at:<='2024-03-01T00:00:00.000Z'"
