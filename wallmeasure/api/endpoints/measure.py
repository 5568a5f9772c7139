from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from wallmeasure.api.schemas import CalibrationModel, MeasureRequest, MeasureResponse, MeasurementModel
from wallmeasure.config import Settings
from wallmeasure.core.errors import DegenerateGeometry, InvalidAnnotation
from wallmeasure.core.pipeline import run_measurement
from wallmeasure.deps import get_app_settings

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Measurement"])


@router.post("/measure", response_model=MeasureResponse)
async def measure(
    request: MeasureRequest,
    settings: Settings = Depends(get_app_settings),
) -> MeasureResponse:
    """Calibrate from the reference annotation and measure the rest in feet."""
    try:
        annotations = [a.to_sequence() for a in request.annotations]
        image_size = (request.image_size.width, request.image_size.height) if request.image_size else None
        report = run_measurement(
            annotations,
            request.reference_size_ft or settings.REFERENCE_SIZE_FT,
            image_size=image_size,
            reference_quad=request.reference_quad.to_quad() if request.reference_quad else None,
            eps=settings.PROJECTION_EPS,
        )
    except (InvalidAnnotation, DegenerateGeometry) as e:
        logger.info("Measurement rejected: %s", e)
        raise HTTPException(status_code=422, detail=str(e))

    return MeasureResponse(
        calibration=CalibrationModel.from_calibration(report.calibration),
        measurements=[MeasurementModel.from_measurement(m) for m in report.measurements],
    )
