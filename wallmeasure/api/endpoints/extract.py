from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from wallmeasure.api.schemas import ExtractRequest, ExtractResponse
from wallmeasure.config import Settings
from wallmeasure.core.errors import DegenerateGeometry, ImageDecodeError, InvalidAnnotation
from wallmeasure.deps import get_app_settings
from wallmeasure.services.extraction import extract_region
from wallmeasure.utils.imageio import bytes_to_image, decode_data_url

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Extraction"])


@router.post("/extract", response_model=ExtractResponse)
async def extract(
    request: ExtractRequest,
    settings: Settings = Depends(get_app_settings),
) -> ExtractResponse:
    """Cut a polygon out of the image as a transparent PNG."""
    try:
        data = decode_data_url(request.image)
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail=f"Image exceeds {settings.MAX_UPLOAD_MB} MB")
        image = await asyncio.to_thread(bytes_to_image, data)
    except ImageDecodeError as e:
        logger.warning("Rejected extraction image: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    points = [p.to_point() for p in request.points]
    try:
        region = await asyncio.to_thread(extract_region, image, points)
    except (InvalidAnnotation, DegenerateGeometry) as e:
        logger.info("Extraction rejected: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
    return ExtractResponse.from_region(region)
