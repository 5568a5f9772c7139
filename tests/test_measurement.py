from __future__ import annotations

import pytest

from wallmeasure.core.models import (
    Homography,
    Point,
    PointSequence,
    SequenceKind,
    SequenceRole,
    UNIT_SQUARE,
    to_points,
)
from wallmeasure.services.measurement import (
    measure_annotations,
    measure_sequence,
    project_point,
    visible_extent,
)

IDENTITY = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
IDENTITY_H = Homography(forward=IDENTITY, inverse=IDENTITY)
# w' = x - 1, undefined on the line x = 1
HORIZON_H = Homography(forward=IDENTITY, inverse=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0, 0.0, -1.0))


def polygon(*pairs, **kw) -> PointSequence:
    return PointSequence(points=to_points(pairs), **kw)


def test_unit_square_area_and_perimeter_are_exact():
    result = measure_sequence(PointSequence(UNIT_SQUARE.corners), IDENTITY_H, 1.0)
    assert result.area == 1.0
    assert result.perimeter == 4.0
    assert result.segment_lengths == (1.0, 1.0, 1.0, 1.0)
    assert result.ok


def test_reference_size_scales_lengths_and_areas():
    result = measure_sequence(PointSequence(UNIT_SQUARE.corners), IDENTITY_H, 0.5)
    assert result.area == pytest.approx(0.25)
    assert result.perimeter == pytest.approx(2.0)


def test_projection_is_repeatable():
    p = Point(123.25, 47.5)
    inverse = (0.002, 0.0001, -0.1, 0.00005, 0.0025, -0.2, 1e-6, 2e-6, 1.0)
    assert project_point(inverse, p, 0.5417) == project_point(inverse, p, 0.5417)


def test_polyline_perimeter_does_not_close():
    line = polygon((0, 0), (3, 0), (3, 4), kind=SequenceKind.POLYLINE)
    result = measure_sequence(line, IDENTITY_H, 1.0)
    assert result.perimeter == 7.0
    assert result.segment_lengths == (3.0, 4.0)
    # area still treats the points as a closed ring
    assert result.area == 6.0


def test_two_point_polygon_does_not_close():
    seg = polygon((0, 0), (3, 4))
    result = measure_sequence(seg, IDENTITY_H, 1.0)
    assert result.perimeter == 5.0
    assert result.area == 0.0


def test_degenerate_point_is_reported_not_zeroed():
    # the second vertex sits on the horizon line x = 1
    seq = polygon((2, 0), (1, 0), (2, 2))
    result = measure_sequence(seq, HORIZON_H, 1.0)
    assert not result.ok
    assert result.degenerate_indices == (1,)
    assert result.points[1] is None
    assert result.area is None
    assert result.perimeter is None
    # segments touching the bad vertex are undefined, the closing one is not
    assert result.segment_lengths[0] is None
    assert result.segment_lengths[1] is None
    assert result.segment_lengths[2] is not None


def test_one_bad_annotation_does_not_affect_others():
    annotations = [
        polygon((2, 0), (1, 0), (2, 2)),
        polygon((2, 0), (4, 0), (4, 2), (2, 2)),
    ]
    results = measure_annotations(annotations, HORIZON_H, 1.0)
    assert len(results) == 2
    assert results[0].result.area is None
    assert results[1].result.ok
    assert results[1].result.area is not None


def test_reference_debug_and_single_point_annotations_are_skipped():
    annotations = [
        polygon((0, 0), (1, 0), (1, 1), (0, 1), role=SequenceRole.REFERENCE),
        polygon((0, 0), (1, 0), (1, 1), role=SequenceRole.DEBUG),
        polygon((5, 5)),
        polygon((0, 0), (2, 0), (2, 2), (0, 2), label="window"),
    ]
    results = measure_annotations(annotations, IDENTITY_H, 1.0)
    assert [r.index for r in results] == [3]
    assert results[0].result.area == 4.0
    assert results[0].pixel_area == 4.0


def test_visible_extent_of_identity_frame():
    extent = visible_extent(IDENTITY_H, 640, 480, 1.0)
    assert (extent.left, extent.right, extent.top, extent.bottom) == (0.0, 640.0, 0.0, 480.0)


def test_visible_extent_is_none_when_a_corner_is_degenerate():
    # frame corner (1, 0) is on the horizon of this matrix
    assert visible_extent(HORIZON_H, 1, 1, 1.0) is None


def test_empty_sequence_is_rejected():
    with pytest.raises(ValueError):
        PointSequence(points=())
