"""
CallScope API package initialization.

This package contains FastAPI router modules for the CallScope service:
- schemas: Schema registry listing/reload, schema detection and row mapping
- analytics: Schema-driven analytics and evaluation performance endpoints
"""

from fastapi import APIRouter

# Import router modules
from callscope.api.schemas import router as schemas_router
from callscope.api.analytics import router as analytics_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(schemas_router, prefix="/schemas", tags=["schemas"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "schemas_router",
    "analytics_router",
]
