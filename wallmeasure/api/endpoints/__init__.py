"""wallmeasure.api.endpoints

API routers for the measurement service, one module per resource.
"""

from __future__ import annotations

from fastapi import APIRouter

from .detect import router as detect_router
from .extract import router as extract_router
from .health import router as health_router
from .homography import router as homography_router
from .measure import router as measure_router

router = APIRouter()
router.include_router(health_router)
router.include_router(detect_router)
router.include_router(homography_router)
router.include_router(measure_router)
router.include_router(extract_router)
