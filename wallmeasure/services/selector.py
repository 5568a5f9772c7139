"""wallmeasure.services.selector

Groups candidate quads into the four squares of one calibration pattern and
derives the ordered outer reference quad.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence, Tuple

from wallmeasure.core.models import (
    CandidateQuad,
    DetectionResult,
    DetectionStatus,
    OrderedQuad,
    Point,
)
from wallmeasure.utils.geometry import bounding_box, mean_point, order_corners

logger = logging.getLogger(__name__)

PATTERN_SIZE = 4
QUADRANTS = ("tl", "tr", "br", "bl")


def _group_window(
    candidates: Sequence[CandidateQuad], max_area_ratio: float
) -> Tuple[Tuple[CandidateQuad, ...], bool]:
    """First run of four consecutive similar-sized candidates (sorted by area, largest first)."""
    ranked = sorted(candidates, key=lambda c: c.area, reverse=True)
    for i in range(len(ranked) - PATTERN_SIZE + 1):
        window = ranked[i:i + PATTERN_SIZE]
        smallest = window[-1].area
        if smallest > 0 and window[0].area / smallest < max_area_ratio:
            return tuple(window), True
    return tuple(ranked[:PATTERN_SIZE]), False


def _classify(group: Sequence[CandidateQuad], center: Point) -> Optional[Dict[str, CandidateQuad]]:
    slots: Dict[str, CandidateQuad] = {}
    for quad in group:
        c = quad.centroid
        vertical = "t" if c.y < center.y else "b"
        horizontal = "l" if c.x < center.x else "r"
        key = vertical + horizontal
        if key in slots:
            return None
        slots[key] = quad
    if len(slots) != PATTERN_SIZE:
        return None
    return slots


def _farthest_vertex(quad: CandidateQuad, center: Point) -> Point:
    return max(quad.points, key=lambda p: (p.x - center.x) ** 2 + (p.y - center.y) ** 2)


def _bounding_quad(points: Sequence[Point]) -> OrderedQuad:
    min_x, min_y, max_x, max_y = bounding_box(points)
    return OrderedQuad(
        Point(min_x, min_y),
        Point(max_x, min_y),
        Point(max_x, max_y),
        Point(min_x, max_y),
    )


def select_reference(
    candidates: Sequence[CandidateQuad],
    group_max_area_ratio: float = 3.0,
    image_size: Optional[Tuple[int, int]] = None,
) -> DetectionResult:
    """Pick the calibration group among ``candidates`` and build its outer quad.

    Never raises for detection conditions; the outcome is reported in
    ``DetectionResult.status`` together with the candidates that were used.
    """
    total = len(candidates)
    if total == 0:
        logger.info("No marker candidates found")
        return DetectionResult(
            status=DetectionStatus.NO_MARKERS,
            candidates=(),
            total_candidates=0,
            image_size=image_size,
        )
    if total < PATTERN_SIZE:
        logger.info("Only %d marker candidates found; need %d", total, PATTERN_SIZE)
        return DetectionResult(
            status=DetectionStatus.INSUFFICIENT_MARKERS,
            candidates=tuple(candidates),
            total_candidates=total,
            image_size=image_size,
        )

    group, consistent = _group_window(candidates, group_max_area_ratio)
    if not consistent:
        logger.warning(
            "No group of %d candidates within area ratio %.1f; using the %d largest",
            PATTERN_SIZE,
            group_max_area_ratio,
            PATTERN_SIZE,
        )

    corners = [p for quad in group for p in quad.points]
    center = mean_point(corners)
    slots = _classify(group, center)

    if slots is None:
        logger.warning("Marker centroids do not split into four quadrants; using bounding box")
        return DetectionResult(
            status=DetectionStatus.AMBIGUOUS_GROUPING,
            candidates=group,
            reference_quad=_bounding_quad(corners),
            grouping_consistent=consistent,
            total_candidates=total,
            image_size=image_size,
        )

    extremes = [_farthest_vertex(slots[key], center) for key in QUADRANTS]
    reference = order_corners(extremes)
    logger.info(
        "Reference quad selected from %d candidates: tl=(%.1f, %.1f) br=(%.1f, %.1f)",
        total,
        reference.tl.x,
        reference.tl.y,
        reference.br.x,
        reference.br.y,
    )
    return DetectionResult(
        status=DetectionStatus.FOUND,
        candidates=group,
        reference_quad=reference,
        grouping_consistent=consistent,
        total_candidates=total,
        image_size=image_size,
    )
