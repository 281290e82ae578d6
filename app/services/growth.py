"""Trend and growth labelling for dashboard cards"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Union

from app.services.aggregation import DataPoint
from app.services.date_ranges import DateRangeToken, period_label

DEFAULT_DESCRIPTION = "Your store is doing good"

@dataclass
class GrowthSummary:
    percentage: Optional[float]
    indicator: Optional[str]
    tone: str
    status: str
    description: str = DEFAULT_DESCRIPTION

def _whole_percent(value: float) -> str:
    return str(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def status_from_growth(growth: float) -> str:
    """
    Card status for a signed growth percentage

    Flat is success. Growth under 5% needs attention, 5% and up is healthy.
    A decline under 10% needs attention, 10% and more is critical.
    """
    if growth == 0:
        return "success"
    if growth > 0:
        return "warning" if growth < 5 else "success"
    return "warning" if abs(growth) < 10 else "critical"

def compute_growth(
    start: int,
    end: int,
    token: Union[str, DateRangeToken, None] = None
) -> GrowthSummary:
    """
    Compare the start-day count with the full-range count

    A start of zero is special-cased: zero to zero is flat and zero to
    anything is reported as 100% growth.
    """
    period = period_label(token)

    if start == 0:
        if end == 0:
            return GrowthSummary(
                percentage=0.0,
                indicator=f"→ 0% change in {period}",
                tone="subdued",
                status="success",
            )
        return GrowthSummary(
            percentage=100.0,
            indicator=f"↑ 100% growth in {period}",
            tone="success",
            status="success",
        )

    growth = (end - start) / start * 100
    magnitude = abs(growth)

    if growth > 0:
        indicator = f"↑ {_whole_percent(magnitude)}% growth in {period}"
        tone = "success"
    elif growth < 0:
        indicator = f"↓ {_whole_percent(magnitude)}% decrease in {period}"
        tone = "critical"
    else:
        indicator = f"→ 0% change in {period}"
        tone = "subdued"

    return GrowthSummary(
        percentage=magnitude,
        indicator=indicator,
        tone=tone,
        status=status_from_growth(growth),
    )

def growth_for_points(
    points: Sequence[DataPoint],
    token: Union[str, DateRangeToken, None] = None
) -> GrowthSummary:
    """Growth over a data point series, a single point carries no trend"""
    if len(points) < 2:
        return GrowthSummary(percentage=None, indicator=None, tone="success", status="success")
    return compute_growth(points[0].count, points[-1].count, token)
