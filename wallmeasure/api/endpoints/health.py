from __future__ import annotations

from fastapi import APIRouter, Depends

from wallmeasure.api.schemas import HealthResponse
from wallmeasure.config import Settings
from wallmeasure.deps import get_app_settings

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", service="wallmeasure", version=settings.API_VERSION)
