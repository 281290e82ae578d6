"""
Date range resolution for dashboard metrics

Symbolic tokens resolve against the store calendar: STORE_TIMEZONE when
configured, the process local zone otherwise. "now" always comes from an
injectable clock so tests can pin it.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Callable, List, Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings

Clock = Callable[[], datetime]

class DateRangeToken(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last7Days"
    LAST_30_DAYS = "last30Days"
    LAST_90_DAYS = "last90Days"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"

TOKEN_ALIASES = {
    "7days": DateRangeToken.LAST_7_DAYS,
    "30days": DateRangeToken.LAST_30_DAYS,
    "90days": DateRangeToken.LAST_90_DAYS,
}

TRAILING_DAYS = {
    DateRangeToken.LAST_7_DAYS: 7,
    DateRangeToken.LAST_30_DAYS: 30,
    DateRangeToken.LAST_90_DAYS: 90,
}

PERIOD_LABELS = {
    DateRangeToken.TODAY: "today",
    DateRangeToken.YESTERDAY: "yesterday",
    DateRangeToken.LAST_7_DAYS: "the last 7 days",
    DateRangeToken.LAST_30_DAYS: "the last 30 days",
    DateRangeToken.LAST_90_DAYS: "the last 90 days",
    DateRangeToken.THIS_MONTH: "this month",
    DateRangeToken.LAST_MONTH: "last month",
}

def store_timezone() -> tzinfo:
    if settings.STORE_TIMEZONE:
        return ZoneInfo(settings.STORE_TIMEZONE)
    return datetime.now().astimezone().tzinfo

def local_now() -> datetime:
    """Default clock: aware now in the store calendar"""
    return datetime.now(store_timezone())

def parse_token(value: Union[str, DateRangeToken, None]) -> DateRangeToken:
    """Normalize a token string, unknown values fall back to last30Days"""
    if isinstance(value, DateRangeToken):
        return value
    if value in TOKEN_ALIASES:
        return TOKEN_ALIASES[value]
    try:
        return DateRangeToken(value)
    except ValueError:
        return DateRangeToken.LAST_30_DAYS

def period_label(value: Union[str, DateRangeToken, None]) -> str:
    if isinstance(value, DateRangeToken):
        return PERIOD_LABELS[value]
    if value in TOKEN_ALIASES:
        return PERIOD_LABELS[TOKEN_ALIASES[value]]
    try:
        return PERIOD_LABELS[DateRangeToken(value)]
    except ValueError:
        return "the selected period"

def start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)

def end_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz)

def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def created_at_search(start: Optional[datetime], end: datetime, field: str = "created_at") -> str:
    """Shopify search syntax for an inclusive creation window"""
    upper = f"{field}:<='{_iso(end)}'"
    if start is None:
        return upper
    return f"{field}:>='{_iso(start)}' {upper}"

@dataclass(frozen=True)
class TimeWindow:
    """A single data point window, labelled by calendar day"""
    day: date
    start: datetime
    end: datetime

    @property
    def label(self) -> str:
        return self.day.isoformat()

    def search(self, cumulative: bool = False) -> str:
        return created_at_search(None if cumulative else self.start, self.end)

@dataclass(frozen=True)
class ResolvedDateRange:
    token: DateRangeToken
    start: datetime
    end: datetime

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(day=self.end.date(), start=self.start, end=self.end)

    def sample_windows(self) -> List[TimeWindow]:
        """
        Windows behind the trend line

        today gives a single point covering the day. Every other token gives
        the start day on its own, then the full range.
        """
        if self.token == DateRangeToken.TODAY:
            return [self.window]

        start_day = self.start.date()
        return [
            TimeWindow(day=start_day, start=self.start, end=end_of_day(start_day, self.start.tzinfo)),
            self.window,
        ]

def resolve_date_range(
    value: Union[str, DateRangeToken, None],
    clock: Optional[Clock] = None
) -> ResolvedDateRange:
    """
    Resolve a token to calendar-aligned start and end instants

    Args:
        value: Token such as today, 7days, last30Days or lastMonth
        clock: Returns the current aware datetime, defaults to local_now

    Returns:
        ResolvedDateRange with start at 00:00 and end at 23:59:59.999999
    """
    token = parse_token(value)
    now = (clock or local_now)()
    if now.tzinfo is None:
        now = now.replace(tzinfo=store_timezone())
    tz = now.tzinfo
    today = now.date()

    if token == DateRangeToken.TODAY:
        start_day, end_day = today, today
    elif token == DateRangeToken.YESTERDAY:
        start_day = end_day = today - timedelta(days=1)
    elif token == DateRangeToken.THIS_MONTH:
        start_day, end_day = today.replace(day=1), today
    elif token == DateRangeToken.LAST_MONTH:
        end_day = today.replace(day=1) - timedelta(days=1)
        start_day = end_day.replace(day=1)
    else:
        start_day, end_day = today - timedelta(days=TRAILING_DAYS[token]), today

    return ResolvedDateRange(
        token=token,
        start=start_of_day(start_day, tz),
        end=end_of_day(end_day, tz),
    )
