"""
Common dependencies for FastAPI
"""

from typing import Callable
from datetime import datetime
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import UnauthorizedException
from app.core.security import get_current_shop
from app.models import ShopSession
from app.services.date_ranges import local_now
from app.services.shopify_client import ShopifyAdminClient

async def get_admin_client(
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
) -> ShopifyAdminClient:
    """
    Build an Admin API client for the authenticated shop

    Args:
        current_shop: Shop claims from the session token
        db: Database session

    Returns:
        ShopifyAdminClient bound to the shop's offline token

    Raises:
        UnauthorizedException: If the shop has no stored offline session
    """
    session = await db.get(ShopSession, current_shop["shop"])

    if not session:
        raise UnauthorizedException(
            "Shop is not installed or has no offline access token",
            error_code="SHOP_NOT_INSTALLED"
        )

    return ShopifyAdminClient(shop=session.shop, access_token=session.access_token)

def get_clock() -> Callable[[], datetime]:
    """Clock used to resolve date ranges, overridden in tests"""
    return local_now
