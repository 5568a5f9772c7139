"""wallmeasure.core.models

Immutable value types shared by detection, calibration and measurement.

Every entity here is a frozen dataclass; stages exchange new values instead of
mutating shared collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    @classmethod
    def of(cls, value) -> "Point":
        """Build a Point from a Point, a mapping with x/y keys or an (x, y) pair."""
        if isinstance(value, Point):
            return value
        if isinstance(value, dict):
            return cls(float(value["x"]), float(value["y"]))
        x, y = value
        return cls(float(x), float(y))


def to_points(values: Iterable) -> Tuple[Point, ...]:
    return tuple(Point.of(v) for v in values)


def points_array(points: Sequence[Point]) -> np.ndarray:
    """Return an (N, 2) float64 array for a sequence of points."""
    return np.array([[p.x, p.y] for p in points], dtype=np.float64).reshape(-1, 2)


class SequenceKind(str, Enum):
    POLYGON = "polygon"
    POLYLINE = "polyline"


class SequenceRole(str, Enum):
    MEASURE = "measure"
    REFERENCE = "reference"
    DEBUG = "debug"


@dataclass(frozen=True)
class PointSequence:
    """Ordered pixel-space points drawn by the annotation editor."""

    points: Tuple[Point, ...]
    kind: SequenceKind = SequenceKind.POLYGON
    role: SequenceRole = SequenceRole.MEASURE
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if len(self.points) < 1:
            raise ValueError("PointSequence needs at least one point")

    @property
    def closed(self) -> bool:
        return self.kind is SequenceKind.POLYGON


@dataclass(frozen=True)
class CandidateQuad:
    """Four refined corners in contour traversal order plus the pixel area."""

    points: Tuple[Point, Point, Point, Point]
    area: float

    @property
    def centroid(self) -> Point:
        return Point(
            sum(p.x for p in self.points) / 4.0,
            sum(p.y for p in self.points) / 4.0,
        )


@dataclass(frozen=True)
class OrderedQuad:
    tl: Point
    tr: Point
    br: Point
    bl: Point

    @property
    def corners(self) -> Tuple[Point, Point, Point, Point]:
        return (self.tl, self.tr, self.br, self.bl)

    @classmethod
    def from_sequence(cls, points: Sequence[Point]) -> "OrderedQuad":
        if len(points) != 4:
            raise ValueError(f"OrderedQuad needs 4 points, got {len(points)}")
        return cls(*points)


UNIT_SQUARE = OrderedQuad(Point(0.0, 0.0), Point(1.0, 0.0), Point(1.0, 1.0), Point(0.0, 1.0))


@dataclass(frozen=True)
class Homography:
    """Row-major 3x3 forward matrix (unit square -> pixels) and its inverse."""

    forward: Tuple[float, ...]
    inverse: Tuple[float, ...]

    @property
    def forward_matrix(self) -> np.ndarray:
        return np.array(self.forward, dtype=np.float64).reshape(3, 3)

    @property
    def inverse_matrix(self) -> np.ndarray:
        return np.array(self.inverse, dtype=np.float64).reshape(3, 3)


@dataclass(frozen=True)
class MeasurementResult:
    points: Tuple[Optional[Point], ...]
    area: Optional[float]
    perimeter: Optional[float]
    segment_lengths: Tuple[Optional[float], ...] = ()
    degenerate_indices: Tuple[int, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.degenerate_indices


class DetectionStatus(str, Enum):
    FOUND = "found"
    NO_MARKERS = "no_markers"
    INSUFFICIENT_MARKERS = "insufficient_markers"
    AMBIGUOUS_GROUPING = "ambiguous_grouping"


@dataclass(frozen=True)
class DetectionResult:
    status: DetectionStatus
    candidates: Tuple[CandidateQuad, ...]
    reference_quad: Optional[OrderedQuad] = None
    grouping_consistent: bool = False
    total_candidates: int = 0
    image_size: Optional[Tuple[int, int]] = None

    @property
    def count(self) -> int:
        return len(self.candidates)

    def raise_for_status(self) -> "DetectionResult":
        """Raise the matching detection error unless four markers were grouped cleanly."""
        from wallmeasure.core.errors import detection_error_for

        exc = detection_error_for(self)
        if exc is not None:
            raise exc
        return self


@dataclass(frozen=True)
class QuadSides:
    top: float
    right: float
    bottom: float
    left: float


@dataclass(frozen=True)
class PhysicalExtent:
    left: float
    right: float
    top: float
    bottom: float


@dataclass(frozen=True)
class Calibration:
    reference_quad: OrderedQuad
    homography: Homography
    reference_size: float
    side_lengths_px: QuadSides
    visible_extent: Optional[PhysicalExtent] = None


@dataclass(frozen=True)
class DetectorParams:
    adaptive_block_size: int = 11
    adaptive_c: float = 2.0
    approx_epsilon_ratio: float = 0.02
    min_quad_area: float = 100.0
    max_border_coverage: float = 0.95
    min_aspect_ratio: float = 0.5
    max_aspect_ratio: float = 2.0
    subpix_half_window: int = 5
    subpix_max_iter: int = 40
    subpix_eps: float = 0.001
    group_max_area_ratio: float = 3.0


@dataclass(frozen=True)
class AnnotationMeasurement:
    index: int
    sequence: PointSequence
    result: MeasurementResult
    pixel_area: float = 0.0


@dataclass(frozen=True)
class ExtractedRegion:
    """Polygon crop as a transparent PNG data URL, placed at ``origin`` in the source image."""

    data_url: str
    origin: Tuple[int, int]
    size: Tuple[int, int]
    homography: Optional[Homography] = None


@dataclass(frozen=True)
class MeasurementReport:
    calibration: Calibration
    measurements: Tuple[AnnotationMeasurement, ...]
