"""
Detection -> calibration -> measurement pipeline.

Stages are plain functions over immutable values; a new reference quad always
produces a new Calibration (and Homography) instead of updating the old one.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from wallmeasure.core.errors import DegenerateGeometry, InvalidAnnotation
from wallmeasure.core.models import (
    Calibration,
    DetectionResult,
    DetectionStatus,
    DetectorParams,
    MeasurementReport,
    OrderedQuad,
    PointSequence,
    SequenceKind,
    SequenceRole,
)
from wallmeasure.services.homography import PROJECTION_EPS, calibrate_quad
from wallmeasure.services.measurement import measure_annotations, visible_extent
from wallmeasure.services.quad_finder import find_quads
from wallmeasure.services.selector import select_reference
from wallmeasure.utils.geometry import order_corners, quad_side_lengths

logger = logging.getLogger(__name__)


def detect_reference(image: np.ndarray, params: Optional[DetectorParams] = None) -> DetectionResult:
    """Find marker candidates in ``image`` and select the calibration pattern."""
    params = params or DetectorParams()
    height, width = image.shape[:2]
    candidates = find_quads(image, params)
    result = select_reference(candidates, params.group_max_area_ratio, image_size=(width, height))
    logger.info(
        "Detection on %dx%d image: status=%s candidates=%d",
        width,
        height,
        result.status.value,
        result.total_candidates,
    )
    return result


def calibrate(
    quad: OrderedQuad,
    reference_size: float,
    image_size: Optional[Tuple[int, int]] = None,
    eps: float = PROJECTION_EPS,
) -> Calibration:
    """Solve the homography of ``quad`` and derive what the display needs from it."""
    homography = calibrate_quad(quad)
    extent = None
    if image_size is not None:
        width, height = image_size
        extent = visible_extent(homography, width, height, reference_size, eps)
    return Calibration(
        reference_quad=quad,
        homography=homography,
        reference_size=reference_size,
        side_lengths_px=quad_side_lengths(quad),
        visible_extent=extent,
    )


def calibrate_detection(
    result: DetectionResult,
    reference_size: float,
    eps: float = PROJECTION_EPS,
) -> Optional[Calibration]:
    """Calibrate against the quad a detection produced, if it produced one.

    The bounding-box quad of an ambiguous grouping is calibrated too; its
    status still tells the caller the result has lower confidence. A
    degenerate fallback box yields no calibration instead of an error.
    """
    if result.reference_quad is None:
        return None
    if result.status is DetectionStatus.FOUND:
        return calibrate(result.reference_quad, reference_size, result.image_size, eps)

    logger.warning("Calibrating against fallback quad (status=%s)", result.status.value)
    try:
        return calibrate(result.reference_quad, reference_size, result.image_size, eps)
    except DegenerateGeometry as e:
        logger.warning("Fallback quad is degenerate: %s", e)
        return None


def validate_annotations(annotations: Sequence[PointSequence]) -> Optional[PointSequence]:
    """Check the annotation set and return its reference annotation, if any.

    Raises:
        InvalidAnnotation: more than one reference, or a reference that is
            not a 4-point polygon.
    """
    references = [a for a in annotations if a.role is SequenceRole.REFERENCE]
    if len(references) > 1:
        raise InvalidAnnotation(f"only one reference annotation allowed, got {len(references)}")
    if not references:
        return None
    ref = references[0]
    if ref.kind is not SequenceKind.POLYGON or len(ref.points) != 4:
        raise InvalidAnnotation(
            f"reference must be a 4-point polygon, got {ref.kind.value} with {len(ref.points)} points"
        )
    return ref


def run_measurement(
    annotations: Sequence[PointSequence],
    reference_size: float,
    image_size: Optional[Tuple[int, int]] = None,
    reference_quad: Optional[OrderedQuad] = None,
    eps: float = PROJECTION_EPS,
) -> MeasurementReport:
    """Calibrate from the reference annotation and measure every other annotation.

    ``reference_quad`` (e.g. from detection) is used only when the set carries
    no reference annotation of its own.
    """
    ref = validate_annotations(annotations)
    if ref is not None:
        quad = order_corners(ref.points)
    elif reference_quad is not None:
        quad = reference_quad
    else:
        raise InvalidAnnotation("no reference quad: add a reference annotation or detect markers first")

    calibration = calibrate(quad, reference_size, image_size, eps)
    measurements = measure_annotations(annotations, calibration.homography, reference_size, eps)
    logger.info("Measured %d of %d annotations", len(measurements), len(annotations))
    return MeasurementReport(calibration=calibration, measurements=measurements)
