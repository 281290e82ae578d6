"""
Saved list schemas
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from app.api.v1.filter_audience.schemas import FilterSelection
from app.models.saved_list import ListSource
from app.services.customers import CustomerRecord
from app.services.export import ExportFormat

class SaveListRequest(BaseModel):
    """Save a segment as a named list"""
    list_name: str = Field(..., alias="listName", max_length=255)
    filters: FilterSelection = Field(default_factory=FilterSelection)
    customer_ids: Optional[List[str]] = Field(None, alias="customerIds")
    source: str = ListSource.FILTER_AUDIENCE.value

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "listName": "Prepaid buyers in Europe",
                "filters": {"location": ["Europe"], "payment": ["Prepaid"]},
                "customerIds": ["gid://shopify/Customer/1"],
                "source": "filter-audience"
            }
        }
    }

    @field_validator('list_name')
    @classmethod
    def validate_list_name(cls, v):
        if not v or not v.strip():
            raise ValueError("List name is required")
        return v.strip()

    @field_validator('source', mode='before')
    @classmethod
    def validate_source(cls, v):
        # unknown sources are stored as filter-audience
        valid = {source.value for source in ListSource}
        return v if v in valid else ListSource.FILTER_AUDIENCE.value

class ListActionRequest(BaseModel):
    """Lifecycle action on a saved list"""
    action_type: Optional[str] = Field(None, alias="actionType")
    format: Optional[ExportFormat] = None
    list_name: Optional[str] = Field(None, alias="listName", max_length=255)

    model_config = {"populate_by_name": True}

class SavedListResponse(BaseModel):
    id: str
    name: str
    description: str
    customer_count: int
    created_at: str
    last_updated: str
    source: str
    criteria: str
    tags: List[str]
    status: str
    filters: Dict[str, Any] = {}

class RecentActivity(BaseModel):
    lists_created: int
    active_lists: int
    customers_saved: int

class SavedListsResponse(BaseModel):
    lists: List[SavedListResponse]
    total: int
    recent_activity: RecentActivity

class ListActionResponse(BaseModel):
    success: bool = True
    type: str
    message: str
    list: Optional[SavedListResponse] = None

class SavedListCustomersResponse(BaseModel):
    list_id: str
    customers: List[CustomerRecord]
    total: int
    truncated: bool = False
