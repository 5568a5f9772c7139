from __future__ import annotations

import math
from itertools import combinations
from typing import Sequence, Tuple

import numpy as np

from wallmeasure.core.models import OrderedQuad, Point, QuadSides, points_array

COLLINEAR_TOL = 1e-6


def signed_area(pts: np.ndarray) -> float:
    """Shoelace area of a closed (N, 2) polygon; positive for clockwise order on screen."""
    pts = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    return float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2.0


def polygon_area(points: Sequence[Point]) -> float:
    """Absolute shoelace area; indices wrap so the sequence is treated as closed."""
    if len(points) < 3:
        return 0.0
    total = 0.0
    n = len(points)
    for i in range(n):
        j = (i + 1) % n
        total += points[i].x * points[j].y
        total -= points[j].x * points[i].y
    return abs(total) / 2.0


def mean_point(points: Sequence[Point]) -> Point:
    n = len(points)
    return Point(sum(p.x for p in points) / n, sum(p.y for p in points) / n)


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def arc_length(pts: np.ndarray, closed: bool = True) -> float:
    pts = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 2:
        return 0.0
    seg = np.diff(pts, axis=0)
    length = float(np.hypot(seg[:, 0], seg[:, 1]).sum())
    if closed:
        length += float(np.hypot(*(pts[0] - pts[-1])))
    return length


def bounding_box(points: Sequence[Point]) -> Tuple[float, float, float, float]:
    """Return (min_x, min_y, max_x, max_y)."""
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return min(xs), min(ys), max(xs), max(ys)


def is_convex(pts: np.ndarray) -> bool:
    """True when every turn of the closed polygon has the same non-zero orientation."""
    pts = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return False
    edges = np.roll(pts, -1, axis=0) - pts
    nxt = np.roll(edges, -1, axis=0)
    cross = edges[:, 0] * nxt[:, 1] - edges[:, 1] * nxt[:, 0]
    return bool(np.all(cross > 0) or np.all(cross < 0))


def order_corners(points: Sequence[Point]) -> OrderedQuad:
    """Label four corners TL, TR, BR, BL by their angle around the centroid.

    Image y grows downwards, so sorting atan2 ascending from -pi yields
    TL (~-135 deg), TR (~-45 deg), BR (~45 deg), BL (~135 deg).
    """
    if len(points) != 4:
        raise ValueError(f"expected 4 corners, got {len(points)}")
    c = mean_point(points)
    ordered = sorted(points, key=lambda p: math.atan2(p.y - c.y, p.x - c.x))
    return OrderedQuad.from_sequence(ordered)


def quad_side_lengths(quad: OrderedQuad) -> QuadSides:
    return QuadSides(
        top=distance(quad.tl, quad.tr),
        right=distance(quad.tr, quad.br),
        bottom=distance(quad.br, quad.bl),
        left=distance(quad.bl, quad.tl),
    )


def _scale(pts: np.ndarray) -> float:
    span = pts.max(axis=0) - pts.min(axis=0)
    return float(max(span.max(), 1e-12))


def has_collinear_triple(points: Sequence[Point], tol: float = COLLINEAR_TOL) -> bool:
    """True if any three points are (nearly) collinear or coincide.

    The triangle area is compared against the squared extent of the point set,
    so the test does not depend on the coordinate scale.
    """
    pts = points_array(points)
    if len(pts) < 3:
        return True
    limit = tol * _scale(pts) ** 2
    for i, j, k in combinations(range(len(pts)), 3):
        a, b, c = pts[i], pts[j], pts[k]
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (c[0] - a[0]) * (b[1] - a[1])
        if abs(cross) <= limit:
            return True
    return False
