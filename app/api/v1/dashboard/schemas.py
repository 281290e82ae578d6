"""Dashboard schemas"""

from pydantic import BaseModel, Field
from typing import List, Dict, Optional

from app.services.customers import CustomerRecord

class DataPointSchema(BaseModel):
    date: str
    count: int

class GrowthSchema(BaseModel):
    percentage: Optional[float] = None
    indicator: Optional[str] = None
    tone: str = "success"
    status: str = "success"
    description: str

class MetricCard(BaseModel):
    metric: str
    date_range: str
    count: Optional[int] = None
    data_points: List[DataPointSchema] = []
    growth: Optional[GrowthSchema] = None
    truncated: bool = False
    # set instead of count when this card failed inside a section
    error: Optional[str] = None
    detail: Optional[str] = None

class SectionResponse(BaseModel):
    section: str
    date_range: str
    cards: Dict[str, MetricCard]

class VisualAnalyticsChart(BaseModel):
    chart: str
    date_range: str
    values: Dict[str, int]
    total: int
    truncated: bool = False

class VisualAnalyticsResponse(BaseModel):
    date_range: str
    charts: Dict[str, VisualAnalyticsChart]

class MetricCustomersResponse(BaseModel):
    metric: str
    date_range: str
    customers: List[CustomerRecord]
    total: int
    truncated: bool = False

class SectionVisibility(BaseModel):
    enabled: bool = True
    cards: Dict[str, bool] = Field(default_factory=dict)

class DashboardPreferencesResponse(BaseModel):
    preferences: Dict[str, SectionVisibility]
    is_default: bool

class DashboardPreferencesUpdate(BaseModel):
    preferences: Dict[str, SectionVisibility]
