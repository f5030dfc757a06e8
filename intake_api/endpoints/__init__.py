"""API endpoints for the Application Intake API."""

from fastapi import APIRouter

from .applications import router as applications_router
from .health import router as health_router

# Routes mounted under /api
api_router = APIRouter()
api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

__all__ = ["api_router", "health_router"]
