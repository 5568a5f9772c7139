from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from wallmeasure.api.schemas import HomographyRequest, HomographyResponse
from wallmeasure.core.errors import DegenerateGeometry
from wallmeasure.core.models import OrderedQuad
from wallmeasure.services.homography import calibrate_quad
from wallmeasure.utils.geometry import order_corners, quad_side_lengths

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Homography"])


@router.post("/homography", response_model=HomographyResponse)
async def solve_quad_homography(request: HomographyRequest) -> HomographyResponse:
    """Unit square -> quad homography and its inverse."""
    points = [p.to_point() for p in request.points]
    quad = order_corners(points) if request.order_corners else OrderedQuad.from_sequence(points)
    try:
        homography = calibrate_quad(quad)
    except DegenerateGeometry as e:
        logger.info("Homography rejected: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
    return HomographyResponse.build(quad, homography, quad_side_lengths(quad))
