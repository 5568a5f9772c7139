from __future__ import annotations

from wallmeasure.core.errors import AmbiguousGrouping, InsufficientMarkers, NoMarkersFound
from wallmeasure.core.models import CandidateQuad, DetectionStatus, Point
from wallmeasure.services.selector import select_reference

import pytest


def square(x: float, y: float, size: float) -> CandidateQuad:
    pts = (Point(x, y), Point(x + size, y), Point(x + size, y + size), Point(x, y + size))
    return CandidateQuad(points=pts, area=size * size)


def four_corners(size: float = 50.0):
    return [square(50, 50, size), square(400, 50, size), square(400, 400, size), square(50, 400, size)]


def test_four_equal_squares_give_outer_corners():
    result = select_reference(four_corners())
    assert result.status is DetectionStatus.FOUND
    assert result.grouping_consistent is True
    q = result.reference_quad
    assert q.tl == Point(50, 50)
    assert q.tr == Point(450, 50)
    assert q.br == Point(450, 450)
    assert q.bl == Point(50, 450)


def test_input_order_does_not_matter():
    a = select_reference(four_corners())
    b = select_reference(list(reversed(four_corners())))
    assert a.reference_quad == b.reference_quad


def test_large_decoy_is_skipped_by_window_scan():
    candidates = four_corners() + [square(200, 200, 100)]  # 4x the area
    result = select_reference(candidates)
    assert result.status is DetectionStatus.FOUND
    assert result.grouping_consistent is True
    assert result.total_candidates == 5
    assert all(c.area == 2500 for c in result.candidates)
    assert result.reference_quad.tl == Point(50, 50)


def test_no_valid_window_falls_back_to_top_four():
    candidates = [square(50, 50, 10), square(400, 50, 20), square(400, 400, 40), square(50, 400, 80)]
    result = select_reference(candidates)
    assert result.grouping_consistent is False
    assert result.status is DetectionStatus.FOUND
    assert len(result.candidates) == 4
    assert [c.area for c in result.candidates] == [6400, 1600, 400, 100]


def test_fewer_than_four_candidates():
    result = select_reference(four_corners()[:3])
    assert result.status is DetectionStatus.INSUFFICIENT_MARKERS
    assert result.reference_quad is None
    assert result.count == 3
    with pytest.raises(InsufficientMarkers) as exc:
        result.raise_for_status()
    assert exc.value.result is result


def test_no_candidates():
    result = select_reference([])
    assert result.status is DetectionStatus.NO_MARKERS
    assert result.candidates == ()
    with pytest.raises(NoMarkersFound):
        result.raise_for_status()


def test_squares_in_a_row_are_ambiguous():
    candidates = [square(x, 100, 50) for x in (0, 100, 200, 300)]
    result = select_reference(candidates)
    assert result.status is DetectionStatus.AMBIGUOUS_GROUPING
    # bounding box of all 16 corners, raw squares kept for inspection
    q = result.reference_quad
    assert (q.tl, q.tr, q.br, q.bl) == (Point(0, 100), Point(350, 100), Point(350, 150), Point(0, 150))
    assert len(result.candidates) == 4
    with pytest.raises(AmbiguousGrouping):
        result.raise_for_status()


def test_found_result_does_not_raise():
    result = select_reference(four_corners())
    assert result.raise_for_status() is result
