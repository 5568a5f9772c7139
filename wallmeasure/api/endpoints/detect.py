from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Tuple

import numpy as np
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from wallmeasure.api.schemas import DetectResponse
from wallmeasure.config import Settings
from wallmeasure.core.errors import DegenerateGeometry, ImageDecodeError
from wallmeasure.core.models import Calibration, DetectionResult
from wallmeasure.core.pipeline import calibrate_detection, detect_reference
from wallmeasure.deps import get_app_settings
from wallmeasure.utils.imageio import bytes_to_image

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Detection"])


async def read_image_body(request: Request, settings: Settings) -> np.ndarray:
    """Decode the raw request body as an image, enforcing the upload limit."""
    data = await request.body()
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail=f"Image exceeds {settings.MAX_UPLOAD_MB} MB")
    if not data:
        raise HTTPException(status_code=400, detail="Empty request body; send the image bytes")
    try:
        return await asyncio.to_thread(bytes_to_image, data)
    except ImageDecodeError as e:
        logger.warning("Rejected upload: %s", e)
        raise HTTPException(status_code=400, detail=str(e))


def _detect_and_calibrate(
    image: np.ndarray, settings: Settings, reference_size: float
) -> Tuple[DetectionResult, Optional[Calibration]]:
    result = detect_reference(image, settings.detector_params())
    return result, calibrate_detection(result, reference_size, settings.PROJECTION_EPS)


@router.post("/detect", response_model=DetectResponse)
async def detect_markers(
    request: Request,
    reference_size_ft: Optional[float] = Query(None, gt=0.0, description="Override REFERENCE_SIZE_FT"),
    settings: Settings = Depends(get_app_settings),
) -> DetectResponse:
    """Detect the four-square pattern in the uploaded image (raw bytes in the body)."""
    start_time = time.time()
    image = await read_image_body(request, settings)
    reference_size = reference_size_ft or settings.REFERENCE_SIZE_FT

    try:
        result, calibration = await asyncio.to_thread(_detect_and_calibrate, image, settings, reference_size)
    except DegenerateGeometry as e:
        logger.warning("Detected reference quad is degenerate: %s", e)
        raise HTTPException(status_code=422, detail=str(e))

    processing_time_ms = (time.time() - start_time) * 1000
    return DetectResponse.from_result(result, calibration, round(processing_time_ms, 2))
