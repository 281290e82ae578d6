"""Filter audience API routes"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.saved_lists.schemas import SavedListResponse, SaveListRequest
from app.api.v1.saved_lists.services import SavedListService
from app.core.database import get_db
from app.services.export import ExportService, export_headers
from app.services.shopify_client import ShopifyAdminClient
from app.utils.dependencies import get_admin_client
from .schemas import (
    FilterOptionsResponse,
    FilterSelection,
    SegmentExportRequest,
    SegmentPreview,
    SegmentResult,
)
from .services import SegmentService

router = APIRouter()

@router.get("/options", response_model=FilterOptionsResponse, summary="Filter options for this store")
async def get_filter_options(client: ShopifyAdminClient = Depends(get_admin_client)):
    return await SegmentService(client).options()

@router.post(
    "/generate-segment",
    response_model=SegmentResult,
    summary="Match customers against a filter selection"
)
async def generate_segment(
    selection: FilterSelection,
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    """
    An empty selection returns zero matches without querying the store.
    Missing protected customer data access answers 403.
    """
    return await SegmentService(client).match(selection)

@router.post("/preview", response_model=SegmentPreview, summary="Debounced live segment count")
async def preview_segment(
    selection: FilterSelection,
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await SegmentService(client).preview(selection)

@router.post(
    "/save-list",
    response_model=SavedListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save the segment as a list"
)
async def save_segment(
    payload: SaveListRequest,
    client: ShopifyAdminClient = Depends(get_admin_client),
    db: AsyncSession = Depends(get_db)
):
    service = SavedListService(db, client)
    saved_list = await service.create_list(client.shop, payload)
    return service.to_response(saved_list)

@router.post("/export", summary="Download the segment")
async def export_segment(
    payload: SegmentExportRequest,
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    result = await SegmentService(client).match(payload.filters)

    content, media_type, filename = ExportService().render(
        result.customers,
        payload.format,
        filename=payload.filename or "customer-segment",
        title="Customer Segment",
        include_country=True,
    )
    return Response(content=content, media_type=media_type, headers=export_headers(filename))
