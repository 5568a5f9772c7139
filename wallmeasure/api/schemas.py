"""
Pydantic models for API endpoints (also used for CLI JSON output).
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from wallmeasure.core.models import (
    AnnotationMeasurement,
    CandidateQuad,
    Calibration,
    DetectionResult,
    ExtractedRegion,
    Homography,
    OrderedQuad,
    PhysicalExtent,
    Point,
    PointSequence,
    QuadSides,
    SequenceKind,
    SequenceRole,
)


class PointModel(BaseModel):
    x: float
    y: float

    @classmethod
    def from_point(cls, p: Point) -> "PointModel":
        return cls(x=p.x, y=p.y)

    def to_point(self) -> Point:
        return Point(self.x, self.y)


class ImageSizeModel(BaseModel):
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class QuadModel(BaseModel):
    """Reference quad corners in pixel coordinates"""
    tl: PointModel
    tr: PointModel
    br: PointModel
    bl: PointModel

    @classmethod
    def from_quad(cls, q: OrderedQuad) -> "QuadModel":
        return cls(
            tl=PointModel.from_point(q.tl),
            tr=PointModel.from_point(q.tr),
            br=PointModel.from_point(q.br),
            bl=PointModel.from_point(q.bl),
        )

    def to_quad(self) -> OrderedQuad:
        return OrderedQuad(self.tl.to_point(), self.tr.to_point(), self.br.to_point(), self.bl.to_point())


class SidesModel(BaseModel):
    top: float
    right: float
    bottom: float
    left: float

    @classmethod
    def from_sides(cls, s: QuadSides) -> "SidesModel":
        return cls(top=s.top, right=s.right, bottom=s.bottom, left=s.left)


class ExtentModel(BaseModel):
    """Physical extent of the whole frame (feet)"""
    left: float
    right: float
    top: float
    bottom: float

    @classmethod
    def from_extent(cls, e: PhysicalExtent) -> "ExtentModel":
        return cls(left=e.left, right=e.right, top=e.top, bottom=e.bottom)


class CandidateModel(BaseModel):
    points: List[PointModel]
    area: float

    @classmethod
    def from_candidate(cls, c: CandidateQuad) -> "CandidateModel":
        return cls(points=[PointModel.from_point(p) for p in c.points], area=c.area)


class CalibrationModel(BaseModel):
    reference_quad: QuadModel
    matrix: List[float] = Field(..., description="Unit square -> pixels, row-major 3x3")
    inverse_matrix: List[float] = Field(..., description="Pixels -> unit square, row-major 3x3")
    reference_size_ft: float
    side_lengths_px: SidesModel
    visible_extent: Optional[ExtentModel] = None

    @classmethod
    def from_calibration(cls, c: Calibration) -> "CalibrationModel":
        return cls(
            reference_quad=QuadModel.from_quad(c.reference_quad),
            matrix=list(c.homography.forward),
            inverse_matrix=list(c.homography.inverse),
            reference_size_ft=c.reference_size,
            side_lengths_px=SidesModel.from_sides(c.side_lengths_px),
            visible_extent=ExtentModel.from_extent(c.visible_extent) if c.visible_extent else None,
        )


class HealthResponse(BaseModel):
    """Health check"""
    status: str = Field(..., description="healthy/unhealthy")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")


class DetectResponse(BaseModel):
    """Marker detection outcome; detection problems are reported in `status`"""
    status: Literal["found", "no_markers", "insufficient_markers", "ambiguous_grouping"]
    candidates: List[CandidateModel] = Field(default_factory=list)
    reference_quad: Optional[QuadModel] = None
    grouping_consistent: bool = False
    total_candidates: int = 0
    image_size: Optional[ImageSizeModel] = None
    calibration: Optional[CalibrationModel] = None
    processing_time_ms: Optional[float] = None

    @classmethod
    def from_result(
        cls,
        result: DetectionResult,
        calibration: Optional[Calibration] = None,
        processing_time_ms: Optional[float] = None,
    ) -> "DetectResponse":
        size = None
        if result.image_size is not None:
            size = ImageSizeModel(width=result.image_size[0], height=result.image_size[1])
        return cls(
            status=result.status.value,
            candidates=[CandidateModel.from_candidate(c) for c in result.candidates],
            reference_quad=QuadModel.from_quad(result.reference_quad) if result.reference_quad else None,
            grouping_consistent=result.grouping_consistent,
            total_candidates=result.total_candidates,
            image_size=size,
            calibration=CalibrationModel.from_calibration(calibration) if calibration else None,
            processing_time_ms=processing_time_ms,
        )


class HomographyRequest(BaseModel):
    points: List[PointModel] = Field(..., min_length=4, max_length=4)
    order_corners: bool = Field(True, description="Label the corners by angle around their centroid first")


class HomographyResponse(BaseModel):
    quad: QuadModel
    matrix: List[float]
    inverse_matrix: List[float]
    side_lengths_px: SidesModel

    @classmethod
    def build(cls, quad: OrderedQuad, homography: Homography, sides: QuadSides) -> "HomographyResponse":
        return cls(
            quad=QuadModel.from_quad(quad),
            matrix=list(homography.forward),
            inverse_matrix=list(homography.inverse),
            side_lengths_px=SidesModel.from_sides(sides),
        )


class AnnotationModel(BaseModel):
    points: List[PointModel] = Field(..., min_length=1)
    kind: Literal["polygon", "polyline"] = "polygon"
    role: Literal["measure", "reference", "debug"] = "measure"
    label: Optional[str] = None

    def to_sequence(self) -> PointSequence:
        return PointSequence(
            points=tuple(p.to_point() for p in self.points),
            kind=SequenceKind(self.kind),
            role=SequenceRole(self.role),
            label=self.label,
        )


class MeasureRequest(BaseModel):
    annotations: List[AnnotationModel]
    reference_size_ft: Optional[float] = Field(None, gt=0.0)
    image_size: Optional[ImageSizeModel] = None
    reference_quad: Optional[QuadModel] = Field(
        None, description="Used only when no annotation has role 'reference'"
    )


class MeasurementModel(BaseModel):
    index: int
    label: Optional[str] = None
    kind: str
    points: List[Optional[PointModel]] = Field(..., description="Physical coordinates (ft); null if not projectable")
    area: Optional[float] = Field(None, description="ft^2; null when any point is degenerate")
    perimeter: Optional[float] = Field(None, description="ft; null when any point is degenerate")
    segment_lengths: List[Optional[float]] = Field(default_factory=list)
    degenerate_indices: List[int] = Field(default_factory=list)
    pixel_area: float = 0.0

    @classmethod
    def from_measurement(cls, m: AnnotationMeasurement) -> "MeasurementModel":
        r = m.result
        return cls(
            index=m.index,
            label=m.sequence.label,
            kind=m.sequence.kind.value,
            points=[PointModel.from_point(p) if p is not None else None for p in r.points],
            area=r.area,
            perimeter=r.perimeter,
            segment_lengths=list(r.segment_lengths),
            degenerate_indices=list(r.degenerate_indices),
            pixel_area=m.pixel_area,
        )


class MeasureResponse(BaseModel):
    calibration: CalibrationModel
    measurements: List[MeasurementModel]


class ExtractRequest(BaseModel):
    image: str = Field(..., description="Base64 image or data URL")
    points: List[PointModel] = Field(..., min_length=3)


class ExtractResponse(BaseModel):
    data_url: str
    origin: PointModel
    width: int
    height: int
    matrix: Optional[List[float]] = None
    inverse_matrix: Optional[List[float]] = None

    @classmethod
    def from_region(cls, r: ExtractedRegion) -> "ExtractResponse":
        return cls(
            data_url=r.data_url,
            origin=PointModel(x=r.origin[0], y=r.origin[1]),
            width=r.size[0],
            height=r.size[1],
            matrix=list(r.homography.forward) if r.homography else None,
            inverse_matrix=list(r.homography.inverse) if r.homography else None,
        )
