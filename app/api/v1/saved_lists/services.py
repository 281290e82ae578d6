"""Saved list business logic"""

from typing import List, Optional, Tuple
from uuid import UUID
import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.filter_audience.schemas import FilterSelection
from app.api.v1.filter_audience.services import SegmentService
from app.core.exceptions import InvalidTransitionException, NotFoundException, ValidationException
from app.models import ListSource, ListStatus, SavedList
from app.services.customers import CustomerRecord, fetch_customers_by_ids
from app.services.export import ExportFormat, ExportService
from app.services.query_runner import run_query
from app.services.shopify_client import ShopifyAdminClient
from . import mapper
from .schemas import (
    ListActionRequest,
    ListActionResponse,
    RecentActivity,
    SavedListCustomersResponse,
    SavedListResponse,
    SavedListsResponse,
    SaveListRequest,
)
from .state_machine import ACTION_TARGETS, SavedListStateMachine

logger = logging.getLogger(__name__)

DELETE = "deleteList"
EXPORT = "exportList"
DUPLICATE = "duplicateList"
ALLOWED_ACTIONS = [DELETE, *ACTION_TARGETS, EXPORT, DUPLICATE]

class SavedListService:
    """Service for saved customer lists"""

    def __init__(self, db: AsyncSession, client: Optional[ShopifyAdminClient] = None):
        self.db = db
        self.client = client
        self.state_machine = SavedListStateMachine()

    @staticmethod
    def to_response(saved_list: SavedList) -> SavedListResponse:
        return SavedListResponse(**mapper.to_response_fields(saved_list))

    async def list_lists(self, shop: str, status: Optional[ListStatus] = None) -> SavedListsResponse:
        """Lists of a shop, newest first"""
        query = select(SavedList).where(SavedList.shop == shop)
        if status:
            query = query.where(SavedList.status == status.value)
        query = query.order_by(SavedList.created_at.desc())

        result = await self.db.execute(query)
        lists = [self.to_response(row) for row in result.scalars().all()]

        return SavedListsResponse(
            lists=lists,
            total=len(lists),
            recent_activity=RecentActivity(
                lists_created=len(lists),
                active_lists=sum(1 for item in lists if item.status == ListStatus.ACTIVE.value),
                customers_saved=sum(item.customer_count for item in lists),
            ),
        )

    async def get_list(self, shop: str, list_id: UUID) -> SavedList:
        """
        Get a list owned by the shop

        Raises:
            NotFoundException: No such list for this shop
        """
        result = await self.db.execute(
            select(SavedList).where(SavedList.id == list_id, SavedList.shop == shop)
        )
        saved_list = result.scalar_one_or_none()

        if not saved_list:
            raise NotFoundException("List not found")

        return saved_list

    async def create_list(self, shop: str, request: SaveListRequest) -> SavedList:
        """
        Persist a segment under a name

        When no member ids are posted for a filter selection the segment is
        matched now so the list starts with a membership snapshot.
        """
        customer_ids = request.customer_ids
        if customer_ids is None and self.client and request.filters.has_active_filters():
            segment = await SegmentService(self.client).match(request.filters)
            customer_ids = [customer.id for customer in segment.customers]
        customer_ids = list(dict.fromkeys(customer_ids or []))

        saved_list = SavedList(
            shop=shop,
            list_name=request.list_name,
            query_data=request.filters.to_storage(),
            customer_ids=customer_ids,
            customer_count=len(customer_ids),
            source=request.source,
            status=ListStatus.ACTIVE.value,
        )
        self.db.add(saved_list)
        await self.db.commit()
        await self.db.refresh(saved_list)

        logger.info(f"Saved list {saved_list.id} ({saved_list.customer_count} customers) for {shop}")
        return saved_list

    async def transition(self, shop: str, list_id: UUID, action: str) -> SavedList:
        """
        Archive or unarchive a list

        Raises:
            NotFoundException: No such list
            InvalidTransitionException: The list is already in the target state
        """
        saved_list = await self.get_list(shop, list_id)
        current = ListStatus(saved_list.status)
        target = self.state_machine.target_for(action)

        if not self.state_machine.can_transition(current, target):
            raise InvalidTransitionException(current.value, action.replace("List", ""))

        saved_list.change_status(target.value)
        await self.db.commit()
        await self.db.refresh(saved_list)

        logger.info(f"List {list_id} moved from {current.value} to {target.value}")
        return saved_list

    async def delete_list(self, shop: str, list_id: UUID) -> None:
        saved_list = await self.get_list(shop, list_id)
        await self.db.delete(saved_list)
        await self.db.commit()
        logger.info(f"Deleted list {list_id} for {shop}")

    async def duplicate_list(self, shop: str, list_id: UUID, list_name: Optional[str] = None) -> SavedList:
        original = await self.get_list(shop, list_id)

        copy = SavedList(
            shop=shop,
            list_name=(list_name or "").strip() or f"{original.list_name} (Copy)",
            query_data=dict(original.query_data or {}),
            customer_ids=list(original.customer_ids or []),
            customer_count=original.customer_count,
            source=original.source,
            status=ListStatus.ACTIVE.value,
        )
        self.db.add(copy)
        await self.db.commit()
        await self.db.refresh(copy)
        return copy

    def validate_action(self, request: ListActionRequest) -> str:
        """
        Check an action request before touching the database

        Raises:
            ValidationException: Missing or unknown actionType, or an export without format
        """
        if not request.action_type:
            raise ValidationException("Action type is required")
        if request.action_type not in ALLOWED_ACTIONS:
            raise ValidationException(
                f"Invalid action type. Must be one of: {', '.join(ALLOWED_ACTIONS)}"
            )
        if request.action_type == EXPORT and request.format is None:
            raise ValidationException("Export format is required")
        return request.action_type

    async def apply_action(self, shop: str, list_id: UUID, request: ListActionRequest) -> ListActionResponse:
        """Run a non-export lifecycle action"""
        action = self.validate_action(request)

        if action == DELETE:
            await self.delete_list(shop, list_id)
            return ListActionResponse(type="delete", message="Customer list deleted successfully")

        if action in ACTION_TARGETS:
            saved_list = await self.transition(shop, list_id, action)
            kind = action.replace("List", "")
            return ListActionResponse(
                type=kind,
                message=f"Customer list {kind}d successfully",
                list=self.to_response(saved_list),
            )

        if action == DUPLICATE:
            copy = await self.duplicate_list(shop, list_id, request.list_name)
            return ListActionResponse(
                type="duplicate",
                message="Customer list duplicated successfully",
                list=self.to_response(copy),
            )

        raise ValidationException("Exports are downloaded, not applied")

    # Membership

    async def _members(self, saved_list: SavedList) -> Tuple[List[CustomerRecord], bool]:
        """
        Re-derive membership: stored filters first, then the stored AI
        query, then the ids captured at save time
        """
        query_data = saved_list.query_data or {}
        try:
            selection = FilterSelection.model_validate(query_data)
        except ValidationError:
            logger.warning(f"List {saved_list.id} has unreadable filters, using stored ids")
            selection = FilterSelection()

        if selection.has_active_filters():
            segment = await SegmentService(self.client).match(selection)
            return segment.customers, segment.truncated

        ids = list(saved_list.customer_ids or [])
        if selection.graphql_query:
            run = await run_query(self.client, selection.graphql_query)
            if run.customer_ids:
                ids = run.customer_ids

        customers = await fetch_customers_by_ids(self.client, ids, include_country=True)
        return customers, False

    async def get_customers(self, shop: str, list_id: UUID) -> SavedListCustomersResponse:
        saved_list = await self.get_list(shop, list_id)
        customers, truncated = await self._members(saved_list)

        return SavedListCustomersResponse(
            list_id=str(saved_list.id),
            customers=customers,
            total=len(customers),
            truncated=truncated,
        )

    async def export_list(
        self,
        shop: str,
        list_id: UUID,
        export_format: ExportFormat
    ) -> Tuple[str, str, str]:
        saved_list = await self.get_list(shop, list_id)
        customers, _ = await self._members(saved_list)

        # AI lists export the AI search column layout
        include_country = saved_list.source != ListSource.AI_SEARCH.value
        return ExportService().render(
            customers,
            export_format,
            filename=saved_list.list_name,
            title=saved_list.list_name,
            include_country=include_country,
        )
