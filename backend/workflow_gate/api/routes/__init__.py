"""API Routes module"""
from fastapi import APIRouter

from .workflow_management import router as workflow_management_router

# Main API router
api_router = APIRouter()

api_router.include_router(
    workflow_management_router,
    prefix="/workflow-management",
    tags=["Workflow Management"]
)

__all__ = ["api_router"]
