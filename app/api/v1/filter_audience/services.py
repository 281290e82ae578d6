"""Audience segment matching business logic"""

from typing import Any, Dict, List
import logging

from app.core.cache import cached
from app.core.config import settings
from app.services.aggregation import collect_records
from app.services.customers import format_customer
from app.services.shopify_client import ShopifyAdminClient
from app.utils.debounce import Debouncer
from . import filters
from .schemas import FilterOptionsResponse, FilterSectionSchema, FilterSelection, SegmentPreview, SegmentResult

logger = logging.getLogger(__name__)

EMPTY_SELECTION_MESSAGE = "Please select at least one filter to generate a segment."

preview_debouncer = Debouncer(settings.SEGMENT_PREVIEW_DEBOUNCE_MS)

def _catalogue_key(client: ShopifyAdminClient) -> str:
    return client.shop

@cached("filter-options", expire=settings.FILTER_OPTIONS_CACHE_TTL, key_func=_catalogue_key)
async def store_catalogue(client: ShopifyAdminClient) -> Dict[str, List[str]]:
    """Product titles and product types offered as product filter options"""
    batch = await collect_records(
        client,
        "products",
        "id\ntitle\nproductType",
        cap=settings.FILTER_OPTIONS_PRODUCT_CAP,
    )
    titles = sorted({p["title"] for p in batch.records if p.get("title")})
    product_types = sorted({p["productType"] for p in batch.records if p.get("productType")})

    collections = await collect_records(
        client,
        "collections",
        "id\ntitle",
        cap=settings.FILTER_OPTIONS_COLLECTION_CAP,
    )
    collection_titles = sorted({c["title"] for c in collections.records if c.get("title")})

    return {"products": titles, "product_types": product_types, "collections": collection_titles}

class SegmentService:
    """Service for turning a filter selection into a customer segment"""

    def __init__(self, client: ShopifyAdminClient):
        self.client = client

    async def match(self, selection: FilterSelection) -> SegmentResult:
        """
        Customers matching every active filter category

        Args:
            selection: Selected options per category

        Returns:
            SegmentResult with the formatted customers

        Raises:
            ProtectedDataAccessError: App lacks protected customer data access
            RemoteQueryError: Any other Admin API error
        """
        if not selection.has_active_filters():
            return SegmentResult(
                match_count=0,
                filters=selection,
                customers=[],
                message=EMPTY_SELECTION_MESSAGE,
            )

        batch = await collect_records(
            self.client,
            "customers",
            filters.customer_fields(selection),
            page_size=filters.page_size(selection),
            cap=settings.SEGMENT_MAX_CUSTOMERS,
            scope="customers",
        )

        predicates = filters.build_predicates(selection)
        seen = set()
        matched: List[Dict[str, Any]] = []
        for customer in batch.records:
            customer_id = customer.get("id")
            if not customer_id or customer_id in seen:
                continue
            if filters.matches_all(customer, predicates):
                seen.add(customer_id)
                matched.append(customer)

        if batch.truncated:
            logger.info(
                f"Segment scan for {self.client.shop} stopped at {settings.SEGMENT_MAX_CUSTOMERS} customers"
            )

        customers = [format_customer(node, include_country=True) for node in matched]
        return SegmentResult(
            match_count=len(customers),
            filters=selection,
            customers=customers,
            truncated=batch.truncated,
        )

    async def preview(self, selection: FilterSelection) -> SegmentPreview:
        """Debounced count, superseded requests skip the remote call"""
        if not await preview_debouncer.settle(self.client.shop):
            return SegmentPreview(superseded=True)

        result = await self.match(selection)
        return SegmentPreview(match_count=result.match_count, truncated=result.truncated)

    async def options(self) -> FilterOptionsResponse:
        catalogue = await store_catalogue(self.client)
        products_section = FilterSectionSchema(
            id="products",
            title="Product Categories",
            options=catalogue["products"] + catalogue["product_types"],
        )
        sections = [FilterSectionSchema(**section) for section in filters.STATIC_SECTIONS]
        sections.insert(1, products_section)

        return FilterOptionsResponse(
            sections=sections,
            products=catalogue["products"],
            product_types=catalogue["product_types"],
            collections=catalogue["collections"],
            preview_debounce_ms=settings.SEGMENT_PREVIEW_DEBOUNCE_MS,
        )
