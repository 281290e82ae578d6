"""Dashboard API routes"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_shop
from app.services.export import ExportFormat, ExportService, export_headers
from app.services.shopify_client import ShopifyAdminClient
from app.utils.dependencies import get_admin_client, get_clock
from .schemas import (
    DashboardPreferencesResponse,
    DashboardPreferencesUpdate,
    MetricCard,
    MetricCustomersResponse,
    SectionResponse,
    VisualAnalyticsChart,
    VisualAnalyticsResponse,
)
from .services import DashboardService

router = APIRouter()

DATE_RANGE = Query("30days", alias="dateRange", description="Date range token")

@router.get(
    "/preferences",
    response_model=DashboardPreferencesResponse,
    summary="Get dashboard card visibility"
)
async def get_preferences(
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db)
    preferences, is_default = await service.get_preferences(current_shop["shop"])
    return DashboardPreferencesResponse(preferences=preferences, is_default=is_default)

@router.put(
    "/preferences",
    summary="Save dashboard card visibility"
)
async def save_preferences(
    payload: DashboardPreferencesUpdate,
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db)
    await service.save_preferences(current_shop["shop"], payload.preferences)
    return {"success": True}

@router.get(
    "/visual-analytics",
    response_model=VisualAnalyticsResponse,
    summary="Get all visual analytics charts"
)
async def get_visual_analytics(
    date_range: str = DATE_RANGE,
    client: ShopifyAdminClient = Depends(get_admin_client),
    clock=Depends(get_clock),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db, client, clock)
    return await service.get_visual_analytics(date_range)

@router.get(
    "/visual-analytics/{chart}",
    response_model=VisualAnalyticsChart,
    summary="Get one visual analytics chart"
)
async def get_visual_chart(
    chart: str,
    date_range: str = DATE_RANGE,
    client: ShopifyAdminClient = Depends(get_admin_client),
    clock=Depends(get_clock),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db, client, clock)
    return await service.get_visual_chart(chart, date_range)

@router.get(
    "/{section}",
    response_model=SectionResponse,
    summary="Get every card of a dashboard section"
)
async def get_section(
    section: str,
    date_range: str = DATE_RANGE,
    client: ShopifyAdminClient = Depends(get_admin_client),
    clock=Depends(get_clock),
    db: AsyncSession = Depends(get_db)
):
    """Cards load concurrently and report their own errors"""
    service = DashboardService(db, client, clock)
    return await service.get_section(section, date_range)

@router.get(
    "/{section}/{card}",
    response_model=MetricCard,
    summary="Get a single metric card"
)
async def get_metric(
    section: str,
    card: str,
    date_range: str = DATE_RANGE,
    client: ShopifyAdminClient = Depends(get_admin_client),
    clock=Depends(get_clock),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db, client, clock)
    return await service.get_metric(section, card, date_range)

@router.get(
    "/{section}/{card}/list",
    response_model=MetricCustomersResponse,
    summary="Get customers behind a metric card"
)
async def get_metric_customers(
    section: str,
    card: str,
    date_range: str = DATE_RANGE,
    client: ShopifyAdminClient = Depends(get_admin_client),
    clock=Depends(get_clock),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db, client, clock)
    return await service.get_metric_customers(section, card, date_range)

@router.get(
    "/{section}/{card}/export",
    summary="Export customers behind a metric card"
)
async def export_metric_customers(
    section: str,
    card: str,
    date_range: str = DATE_RANGE,
    export_format: ExportFormat = Query(ExportFormat.CSV, alias="format"),
    client: ShopifyAdminClient = Depends(get_admin_client),
    clock=Depends(get_clock),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db, client, clock)
    result = await service.get_metric_customers(section, card, date_range)

    content, media_type, filename = ExportService().render(
        result.customers,
        export_format,
        filename=f"{card}-{result.date_range}",
        title=card.replace("-", " ").title(),
    )
    return Response(content=content, media_type=media_type, headers=export_headers(filename))
