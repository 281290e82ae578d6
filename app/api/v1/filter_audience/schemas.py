"""
Filter audience schemas for request/response validation
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Literal
from datetime import date

from app.services.customers import CustomerRecord
from app.services.export import ExportFormat

ARRAY_CATEGORIES = ("location", "products", "timing", "device", "payment", "delivery")

class AmountSpentFilter(BaseModel):
    """Lifetime spend bound, min means at least and max means at most"""
    amount: Optional[float] = Field(None, ge=0)
    operator: Optional[Literal["min", "max"]] = None

    @property
    def is_active(self) -> bool:
        return self.amount is not None and self.operator is not None

class FilterSelection(BaseModel):
    """Selected options per filter category"""
    location: List[str] = []
    products: List[str] = []
    timing: List[str] = []
    device: List[str] = []
    payment: List[str] = []
    delivery: List[str] = []
    amount_spent: Optional[AmountSpentFilter] = Field(None, alias="amountSpent")
    customer_created_from: Optional[str] = Field(None, alias="customerCreatedFrom")
    graphql_query: Optional[str] = Field(None, alias="graphqlQuery")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "location": ["North America"],
                "payment": ["Prepaid"],
                "amountSpent": {"amount": 100, "operator": "min"}
            }
        }
    }

    @field_validator('customer_created_from')
    @classmethod
    def validate_created_from(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip()
        try:
            date.fromisoformat(v[:10])
        except ValueError:
            raise ValueError("customerCreatedFrom must be a YYYY-MM-DD date")
        return v[:10]

    def active_categories(self) -> List[str]:
        """Categories that narrow the segment, the AI query is not one of them"""
        active = [name for name in ARRAY_CATEGORIES if getattr(self, name)]
        if self.amount_spent is not None and self.amount_spent.is_active:
            active.append("amountSpent")
        if self.customer_created_from:
            active.append("customerCreatedFrom")
        return active

    def has_active_filters(self) -> bool:
        return bool(self.active_categories())

    def to_storage(self) -> dict:
        """Camel-cased form persisted with saved lists"""
        return self.model_dump(by_alias=True, exclude_none=True)

class SegmentResult(BaseModel):
    success: bool = True
    match_count: int
    filters: FilterSelection
    customers: List[CustomerRecord] = []
    truncated: bool = False
    message: Optional[str] = None

class SegmentPreview(BaseModel):
    match_count: int = 0
    truncated: bool = False
    superseded: bool = False

class FilterSectionSchema(BaseModel):
    id: str
    title: str
    options: List[str]

class FilterOptionsResponse(BaseModel):
    sections: List[FilterSectionSchema]
    products: List[str] = []
    product_types: List[str] = []
    collections: List[str] = []
    preview_debounce_ms: int

class SegmentExportRequest(BaseModel):
    filters: FilterSelection
    format: ExportFormat = ExportFormat.CSV
    filename: Optional[str] = Field(None, max_length=100)
