"""Dashboard business logic"""

from typing import Callable, Dict, Optional, Set, Tuple
from datetime import datetime
import asyncio
import copy
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import cache
from app.core.config import settings
from app.core.exceptions import InsightsException, NotFoundException, ValidationException
from app.models import DashboardPreference
from app.services.aggregation import (
    DataPoint,
    MetricSeries,
    aggregate_many,
    aggregate_metric,
    collect_records,
    matching_keys,
    metric_series,
)
from app.services.customers import fetch_customers_by_ids
from app.services.date_ranges import ResolvedDateRange, resolve_date_range
from app.services.growth import growth_for_points
from app.services.shopify_client import ShopifyAdminClient
from . import metrics
from .schemas import (
    DataPointSchema,
    GrowthSchema,
    MetricCard,
    MetricCustomersResponse,
    SectionResponse,
    SectionVisibility,
    VisualAnalyticsChart,
    VisualAnalyticsResponse,
)

logger = logging.getLogger(__name__)

class DashboardService:
    """Service for dashboard metric cards and preferences"""

    def __init__(
        self,
        db: AsyncSession,
        client: Optional[ShopifyAdminClient] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.db = db
        self.client = client
        self.clock = clock

    def _resolve(self, token: str) -> ResolvedDateRange:
        return resolve_date_range(token, clock=self.clock)

    def _require_card(self, section: str, card: str):
        if card not in metrics.SECTIONS.get(section, []):
            raise NotFoundException(f"Unknown dashboard metric {section}/{card}")

    def _cache_key(self, kind: str, name: str, date_range: ResolvedDateRange) -> str:
        return (
            f"dashboard:{self.client.shop}:{kind}:{name}:"
            f"{date_range.token.value}:{date_range.end.date().isoformat()}"
        )

    async def _inactive_series(self, date_range: ResolvedDateRange) -> MetricSeries:
        """Customers existing at each window end who placed no order inside it"""
        series = MetricSeries(name=metrics.INACTIVE_CUSTOMERS, data_points=[], keys=set())

        for window in date_range.sample_windows():
            total = await aggregate_metric(self.client, metrics.TOTAL_CUSTOMERS, window)
            active = await aggregate_metric(self.client, metrics.ACTIVE_CUSTOMERS, window)
            inactive = total.keys - active.keys

            series.data_points.append(DataPoint(date=window.label, count=len(inactive)))
            series.keys = inactive
            series.truncated = series.truncated or total.truncated or active.truncated

        return series

    async def _returning_series(self, date_range: ResolvedDateRange) -> MetricSeries:
        """
        Returning customers

        Each point counts customers with two or more orders up to that day.
        The headline keys are customers who ordered inside the range and had
        already ordered before it began.
        """
        spec = metrics.RETURNING_CUSTOMERS
        series = MetricSeries(name=spec.name, data_points=[], keys=set())

        for window in date_range.sample_windows():
            batch = await collect_records(
                self.client,
                spec.connection,
                spec.fields,
                search=window.search(cumulative=True),
                cap=settings.METRIC_RECORD_CAP,
            )
            series.data_points.append(
                DataPoint(date=window.label, count=len(matching_keys(batch.records, spec)))
            )
            series.keys = metrics.returned_within(batch.records, date_range.start)
            series.truncated = series.truncated or batch.truncated

        return series

    async def _series(self, card: str, date_range: ResolvedDateRange) -> MetricSeries:
        if card == metrics.INACTIVE_CUSTOMERS:
            return await self._inactive_series(date_range)
        if card == metrics.RETURNING_CUSTOMERS.name:
            return await self._returning_series(date_range)
        spec = metrics.METRICS[card]
        results = await metric_series(self.client, [spec], date_range)
        return results[card]

    async def get_metric(self, section: str, card: str, token: str) -> MetricCard:
        """
        Count and trend for a single card

        Args:
            section: Dashboard section slug
            card: Metric slug inside the section
            token: Date range token

        Returns:
            MetricCard with one or two data points and growth

        Raises:
            NotFoundException: Unknown section or card
            ProtectedDataAccessError: App lacks the protected data scope
            RemoteQueryError: Any other Admin API error
        """
        self._require_card(section, card)
        date_range = self._resolve(token)

        cache_key = self._cache_key("metric", card, date_range)
        if settings.DASHBOARD_CACHE_TTL:
            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                return MetricCard.model_validate(cached_value)

        series = await self._series(card, date_range)
        growth = growth_for_points(series.data_points, date_range.token)

        result = MetricCard(
            metric=card,
            date_range=date_range.token.value,
            count=series.total,
            data_points=[DataPointSchema(date=p.date, count=p.count) for p in series.data_points],
            growth=GrowthSchema(
                percentage=growth.percentage,
                indicator=growth.indicator,
                tone=growth.tone,
                status=growth.status,
                description=growth.description,
            ),
            truncated=series.truncated,
        )

        if settings.DASHBOARD_CACHE_TTL:
            await cache.set(cache_key, result.model_dump(mode="json"), settings.DASHBOARD_CACHE_TTL)

        return result

    async def get_section(self, section: str, token: str) -> SectionResponse:
        """All cards of a section, fetched concurrently, each failing on its own"""
        if section not in metrics.SECTIONS:
            raise NotFoundException(f"Unknown dashboard section {section}")

        cards = metrics.SECTIONS[section]
        date_range = self._resolve(token)
        outcomes = await asyncio.gather(
            *(self.get_metric(section, card, token) for card in cards),
            return_exceptions=True,
        )

        results: Dict[str, MetricCard] = {}
        for card, outcome in zip(cards, outcomes):
            if isinstance(outcome, InsightsException):
                results[card] = MetricCard(
                    metric=card,
                    date_range=date_range.token.value,
                    error=outcome.error_code,
                    detail=outcome.detail,
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[card] = outcome

        return SectionResponse(section=section, date_range=date_range.token.value, cards=results)

    async def get_visual_chart(self, chart: str, token: str) -> VisualAnalyticsChart:
        """Category counts for a pie/bar chart over the full range"""
        if chart not in metrics.VISUAL_ANALYTICS:
            raise NotFoundException(f"Unknown chart {chart}")

        date_range = self._resolve(token)
        labelled = metrics.VISUAL_ANALYTICS[chart]
        results = await aggregate_many(self.client, list(labelled.values()), date_range.window)

        values = {label: results[spec.name].count for label, spec in labelled.items()}
        return VisualAnalyticsChart(
            chart=chart,
            date_range=date_range.token.value,
            values=values,
            total=sum(values.values()),
            truncated=any(result.truncated for result in results.values()),
        )

    async def get_visual_analytics(self, token: str) -> VisualAnalyticsResponse:
        charts = {}
        for chart in metrics.VISUAL_ANALYTICS:
            charts[chart] = await self.get_visual_chart(chart, token)
        return VisualAnalyticsResponse(date_range=self._resolve(token).token.value, charts=charts)

    async def _customer_keys(self, card: str, date_range: ResolvedDateRange) -> Tuple[Set[str], bool]:
        if card == metrics.INACTIVE_CUSTOMERS:
            series = await self._inactive_series(date_range)
            return series.keys, series.truncated
        if card == metrics.RETURNING_CUSTOMERS.name:
            series = await self._returning_series(date_range)
            return series.keys, series.truncated

        spec = metrics.customer_list_spec(card)
        result = await aggregate_metric(self.client, spec, date_range.window)
        return result.keys, result.truncated

    async def get_metric_customers(self, section: str, card: str, token: str) -> MetricCustomersResponse:
        """Customers behind a card, capped like segment results"""
        self._require_card(section, card)
        date_range = self._resolve(token)

        keys, truncated = await self._customer_keys(card, date_range)
        ids = sorted(keys)
        limit = settings.SEGMENT_MAX_CUSTOMERS
        if len(ids) > limit:
            ids = ids[:limit]
            truncated = True

        customers = await fetch_customers_by_ids(self.client, ids)
        return MetricCustomersResponse(
            metric=card,
            date_range=date_range.token.value,
            customers=customers,
            total=len(customers),
            truncated=truncated,
        )

    # Preferences

    async def get_preferences(self, shop: str) -> Tuple[Dict[str, SectionVisibility], bool]:
        """Saved visibility merged over the defaults"""
        result = await self.db.execute(
            select(DashboardPreference).where(DashboardPreference.shop == shop)
        )
        preference = result.scalar_one_or_none()

        merged = copy.deepcopy(metrics.DEFAULT_VISIBILITY)
        if preference:
            for section, saved in (preference.visibility or {}).items():
                if section not in merged:
                    continue
                merged[section]["enabled"] = saved.get("enabled", merged[section]["enabled"])
                merged[section]["cards"].update(
                    {card: value for card, value in (saved.get("cards") or {}).items()
                     if card in merged[section]["cards"]}
                )

        return (
            {section: SectionVisibility(**value) for section, value in merged.items()},
            preference is None,
        )

    async def save_preferences(self, shop: str, preferences: Dict[str, SectionVisibility]) -> None:
        """
        Upsert the shop's visibility config

        Raises:
            ValidationException: Unknown section or card names
        """
        for section, visibility in preferences.items():
            defaults = metrics.DEFAULT_VISIBILITY.get(section)
            if defaults is None:
                raise ValidationException(f"Unknown dashboard section {section}")
            unknown = set(visibility.cards) - set(defaults["cards"])
            if unknown:
                raise ValidationException(f"Unknown cards in {section}: {', '.join(sorted(unknown))}")

        payload = {section: visibility.model_dump() for section, visibility in preferences.items()}

        result = await self.db.execute(
            select(DashboardPreference).where(DashboardPreference.shop == shop)
        )
        preference = result.scalar_one_or_none()

        if preference:
            preference.visibility = payload
        else:
            self.db.add(DashboardPreference(shop=shop, visibility=payload))

        await self.db.commit()
        logger.info(f"Saved dashboard preferences for {shop}")
