from fastapi import APIRouter
from trajectplan.api.v1.endpoints import autofill

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(autofill.router, prefix="/autofill", tags=["Autofill"])

__all__ = ["api_router"]
