"""
Reelpipe API routes package.

Contains all API endpoint routers for the application.
"""

from fastapi import APIRouter

from .callbacks import router as callbacks_router
from .pipeline import router as pipeline_router
from .projects import router as projects_router
from .segments import router as segments_router

# Main API router that includes all sub-routers
api_router = APIRouter()

# Include projects routes
api_router.include_router(projects_router, prefix="/projects", tags=["projects"])

# Include pipeline stage routes (nested under projects)
api_router.include_router(pipeline_router, prefix="/projects", tags=["pipeline"])

# Include segment routes
api_router.include_router(segments_router, prefix="/segments", tags=["segments"])

# Include render callback (no auth)
api_router.include_router(callbacks_router, tags=["callbacks"])

__all__ = [
    "api_router",
    "callbacks_router",
    "pipeline_router",
    "projects_router",
    "segments_router",
]
