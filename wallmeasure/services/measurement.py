"""wallmeasure.services.measurement

Projection of pixel-space annotations into physical units (feet) through the
inverse homography of the reference quad, and the metrics computed there:
shoelace area, perimeter and per-segment lengths.

A point whose projection is undefined (|w'| < eps) is reported by index and
makes area/perimeter None for its sequence. It never becomes (0, 0).
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from wallmeasure.core.errors import DegenerateProjection
from wallmeasure.core.models import (
    AnnotationMeasurement,
    Homography,
    MeasurementResult,
    PhysicalExtent,
    Point,
    PointSequence,
    SequenceRole,
)
from wallmeasure.services.homography import PROJECTION_EPS, apply_homography
from wallmeasure.utils.geometry import polygon_area

logger = logging.getLogger(__name__)

SKIPPED_ROLES = (SequenceRole.REFERENCE, SequenceRole.DEBUG)


# ───────── projection ─────────
def project_point(
    inverse: Sequence[float],
    point: Point,
    reference_size: float,
    eps: float = PROJECTION_EPS,
) -> Point:
    """Pixel point -> physical point (unit-square coordinates scaled by ``reference_size``)."""
    unit = apply_homography(inverse, point, eps)
    return Point(unit.x * reference_size, unit.y * reference_size)


def project_points(
    inverse: Sequence[float],
    points: Iterable[Point],
    reference_size: float,
    eps: float = PROJECTION_EPS,
) -> Tuple[Tuple[Optional[Point], ...], Tuple[int, ...]]:
    """Project every point; returns (projected-or-None, indices of degenerate points)."""
    projected: List[Optional[Point]] = []
    failed: List[int] = []
    for i, p in enumerate(points):
        try:
            projected.append(project_point(inverse, p, reference_size, eps))
        except DegenerateProjection as e:
            logger.warning("Point %d not projectable: %s", i, e)
            projected.append(None)
            failed.append(i)
    return tuple(projected), tuple(failed)


# ───────── metrics ─────────
def _segment_pairs(n: int, closed: bool) -> List[Tuple[int, int]]:
    pairs = [(i, i + 1) for i in range(n - 1)]
    if closed and n > 2:
        pairs.append((n - 1, 0))
    return pairs


def measure_sequence(
    sequence: PointSequence,
    homography: Homography,
    reference_size: float,
    eps: float = PROJECTION_EPS,
) -> MeasurementResult:
    """Area, perimeter and segment lengths of ``sequence`` in physical units.

    Area treats the points as a closed ring (0.0 below three points); the
    perimeter only closes for polygons.
    """
    projected, failed = project_points(homography.inverse, sequence.points, reference_size, eps)

    lengths: List[Optional[float]] = []
    for i, j in _segment_pairs(len(projected), sequence.closed):
        a, b = projected[i], projected[j]
        lengths.append(None if a is None or b is None else math.hypot(b.x - a.x, b.y - a.y))

    if failed:
        return MeasurementResult(
            points=projected,
            area=None,
            perimeter=None,
            segment_lengths=tuple(lengths),
            degenerate_indices=failed,
        )

    return MeasurementResult(
        points=projected,
        area=polygon_area(projected),
        perimeter=float(sum(lengths)),
        segment_lengths=tuple(lengths),
    )


def measure_annotations(
    annotations: Sequence[PointSequence],
    homography: Homography,
    reference_size: float,
    eps: float = PROJECTION_EPS,
) -> Tuple[AnnotationMeasurement, ...]:
    """Measure every drawable annotation; reference/debug ones and single points are skipped."""
    out: List[AnnotationMeasurement] = []
    for index, seq in enumerate(annotations):
        if seq.role in SKIPPED_ROLES or len(seq.points) < 2:
            continue
        result = measure_sequence(seq, homography, reference_size, eps)
        if not result.ok:
            logger.warning(
                "Annotation %d (%s): %d degenerate point(s), area undefined",
                index,
                seq.label or seq.kind.value,
                len(result.degenerate_indices),
            )
        out.append(
            AnnotationMeasurement(
                index=index,
                sequence=seq,
                result=result,
                pixel_area=polygon_area(seq.points),
            )
        )
    return tuple(out)


def visible_extent(
    homography: Homography,
    width: int,
    height: int,
    reference_size: float,
    eps: float = PROJECTION_EPS,
) -> Optional[PhysicalExtent]:
    """Physical bounding box of the whole frame, or None if a frame corner is not projectable."""
    frame = (Point(0.0, 0.0), Point(float(width), 0.0), Point(float(width), float(height)), Point(0.0, float(height)))
    projected, failed = project_points(homography.inverse, frame, reference_size, eps)
    if failed:
        return None
    xs = [p.x for p in projected]
    ys = [p.y for p in projected]
    return PhysicalExtent(left=min(xs), right=max(xs), top=min(ys), bottom=max(ys))
