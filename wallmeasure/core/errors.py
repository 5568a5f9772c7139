from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from wallmeasure.core.models import DetectionResult, Point


class WallMeasureError(Exception):
    pass


class DetectionError(WallMeasureError):
    """Base for non-fatal detection conditions; carries the partial result."""

    def __init__(self, message: str, result: "DetectionResult"):
        super().__init__(message)
        self.result = result


class NoMarkersFound(DetectionError):
    pass


class InsufficientMarkers(DetectionError):
    pass


class AmbiguousGrouping(DetectionError):
    pass


class DegenerateGeometry(WallMeasureError):
    pass


class DegenerateProjection(WallMeasureError):
    def __init__(self, point: "Point", w: float):
        super().__init__(f"projection undefined at ({point.x:.3f}, {point.y:.3f}): |w'|={abs(w):.3g}")
        self.point = point
        self.w = w


class InvalidAnnotation(WallMeasureError):
    pass


class ImageDecodeError(WallMeasureError):
    pass


def detection_error_for(result: "DetectionResult") -> Optional[DetectionError]:
    from wallmeasure.core.models import DetectionStatus

    if result.status is DetectionStatus.NO_MARKERS:
        return NoMarkersFound("no marker candidates found", result)
    if result.status is DetectionStatus.INSUFFICIENT_MARKERS:
        return InsufficientMarkers(f"only found {result.count} marker candidates", result)
    if result.status is DetectionStatus.AMBIGUOUS_GROUPING:
        return AmbiguousGrouping("markers could not be split into four quadrants", result)
    return None
