"""API v1 routes aggregation"""

from fastapi import APIRouter

from .dashboard.router import router as dashboard_router
from .filter_audience.router import router as filter_audience_router
from .saved_lists.router import router as saved_lists_router
from .ai_search.router import router as ai_search_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(filter_audience_router, prefix="/filter-audience", tags=["Filter Audience"])
api_router.include_router(saved_lists_router, prefix="/saved-lists", tags=["Saved Lists"])
api_router.include_router(ai_search_router, prefix="/ai-search", tags=["AI Search"])
