"""Saved customer list models"""

from sqlalchemy import Column, String, Integer, JSON
import enum

from app.models.base import Base, TimestampedModel, UUIDModel, ShopScopedModel, StatusModel

class ListSource(str, enum.Enum):
    AI_SEARCH = "ai-search"
    FILTER_AUDIENCE = "filter-audience"
    MANUAL = "manual"

class ListStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"

class SavedList(Base, UUIDModel, ShopScopedModel, StatusModel, TimestampedModel):
    """A named customer segment saved by a merchant"""

    __tablename__ = "saved_lists"

    list_name = Column(String(255), nullable=False)
    # FilterSelection as submitted, graphqlQuery included for AI lists
    query_data = Column(JSON, nullable=False, default=dict)
    # Membership at save time, views re-query instead of trusting this
    customer_ids = Column(JSON, nullable=False, default=list)
    customer_count = Column(Integer, nullable=False, default=0)
    source = Column(String(32), nullable=False, default=ListSource.FILTER_AUDIENCE.value, index=True)
