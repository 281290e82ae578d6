"""Saved list API routes"""

from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_shop
from app.models import ListStatus
from app.services.export import ExportFormat, export_headers
from app.services.shopify_client import ShopifyAdminClient
from app.utils.dependencies import get_admin_client
from .schemas import (
    ListActionRequest,
    ListActionResponse,
    SavedListCustomersResponse,
    SavedListResponse,
    SavedListsResponse,
    SaveListRequest,
)
from .services import EXPORT, SavedListService

router = APIRouter()

@router.get("", response_model=SavedListsResponse, summary="List saved customer lists")
async def list_saved_lists(
    list_status: Optional[ListStatus] = Query(None, alias="status"),
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    service = SavedListService(db)
    return await service.list_lists(current_shop["shop"], list_status)

@router.post(
    "",
    response_model=SavedListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a customer list"
)
async def create_saved_list(
    payload: SaveListRequest,
    client: ShopifyAdminClient = Depends(get_admin_client),
    db: AsyncSession = Depends(get_db)
):
    service = SavedListService(db, client)
    saved_list = await service.create_list(client.shop, payload)
    return service.to_response(saved_list)

@router.get("/{list_id}", response_model=SavedListResponse, summary="Get a saved list")
async def get_saved_list(
    list_id: UUID,
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    service = SavedListService(db)
    return service.to_response(await service.get_list(current_shop["shop"], list_id))

@router.post("/{list_id}/actions", summary="Archive, unarchive, delete, duplicate or export a list")
async def apply_list_action(
    list_id: UUID,
    payload: ListActionRequest,
    client: ShopifyAdminClient = Depends(get_admin_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Lifecycle actions keyed by actionType

    exportList answers with the file itself, every other action with a
    ListActionResponse.
    """
    service = SavedListService(db, client)
    action = service.validate_action(payload)

    if action == EXPORT:
        content, media_type, filename = await service.export_list(client.shop, list_id, payload.format)
        return Response(content=content, media_type=media_type, headers=export_headers(filename))

    result: ListActionResponse = await service.apply_action(client.shop, list_id, payload)
    return result

@router.get(
    "/{list_id}/customers",
    response_model=SavedListCustomersResponse,
    summary="Re-query the customers of a saved list"
)
async def get_saved_list_customers(
    list_id: UUID,
    client: ShopifyAdminClient = Depends(get_admin_client),
    db: AsyncSession = Depends(get_db)
):
    service = SavedListService(db, client)
    return await service.get_customers(client.shop, list_id)

@router.get("/{list_id}/export", summary="Download a saved list")
async def export_saved_list(
    list_id: UUID,
    export_format: ExportFormat = Query(ExportFormat.CSV, alias="format"),
    client: ShopifyAdminClient = Depends(get_admin_client),
    db: AsyncSession = Depends(get_db)
):
    service = SavedListService(db, client)
    content, media_type, filename = await service.export_list(client.shop, list_id, export_format)
    return Response(content=content, media_type=media_type, headers=export_headers(filename))
