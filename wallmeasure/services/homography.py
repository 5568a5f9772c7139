"""wallmeasure.services.homography

Four-point planar homography (normalized DLT) between ordered quads.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from wallmeasure.core.errors import DegenerateGeometry, DegenerateProjection
from wallmeasure.core.models import UNIT_SQUARE, Homography, OrderedQuad, Point, points_array
from wallmeasure.utils.geometry import COLLINEAR_TOL, has_collinear_triple

logger = logging.getLogger(__name__)

PROJECTION_EPS = 1e-4
# Largest condition number accepted for the normalized 8x8 system.
MAX_CONDITION = 1e12


def _normalizer(pts: np.ndarray) -> np.ndarray:
    """Similarity moving the centroid to the origin with mean distance sqrt(2)."""
    center = pts.mean(axis=0)
    mean_dist = float(np.mean(np.hypot(*(pts - center).T)))
    if mean_dist < 1e-12:
        raise DegenerateGeometry("all points coincide")
    s = np.sqrt(2.0) / mean_dist
    return np.array(
        [
            [s, 0.0, -s * center[0]],
            [0.0, s, -s * center[1]],
            [0.0, 0.0, 1.0],
        ]
    )


def _apply(matrix: np.ndarray, pts: np.ndarray) -> np.ndarray:
    homog = np.column_stack([pts, np.ones(len(pts))]) @ matrix.T
    return homog[:, :2] / homog[:, 2:3]


def _scale_to_unit(matrix: np.ndarray) -> np.ndarray:
    """Scale so that m[2][2] == 1; falls back to unit Frobenius norm when m[2][2] ~ 0."""
    corner = matrix[2, 2]
    if abs(corner) > 1e-12 * np.abs(matrix).max():
        return matrix / corner
    return matrix / np.linalg.norm(matrix)


def _check_quad(points: Sequence[Point], name: str) -> np.ndarray:
    if len(points) != 4:
        raise DegenerateGeometry(f"{name} needs exactly 4 points, got {len(points)}")
    pts = points_array(points)
    if not np.all(np.isfinite(pts)):
        raise DegenerateGeometry(f"{name} contains non-finite coordinates")
    if has_collinear_triple(points, COLLINEAR_TOL):
        raise DegenerateGeometry(f"{name} has three (nearly) collinear or coincident points")
    return pts


def solve_homography(src: Sequence[Point], dst: Sequence[Point]) -> Homography:
    """Solve H with H . [src;1] ~ [dst;1] for four ordered correspondences.

    Coordinates are Hartley-normalized before building the 8x8 system with
    h22 fixed to 1, then the solution is denormalized. Raises
    DegenerateGeometry instead of returning a near-singular matrix.
    """
    src_pts = _check_quad(src, "source quad")
    dst_pts = _check_quad(dst, "destination quad")

    t_src = _normalizer(src_pts)
    t_dst = _normalizer(dst_pts)
    s = _apply(t_src, src_pts)
    d = _apply(t_dst, dst_pts)

    a = np.zeros((8, 8))
    b = np.zeros(8)
    for i in range(4):
        x, y = s[i]
        u, v = d[i]
        a[2 * i] = [x, y, 1.0, 0.0, 0.0, 0.0, -u * x, -u * y]
        a[2 * i + 1] = [0.0, 0.0, 0.0, x, y, 1.0, -v * x, -v * y]
        b[2 * i] = u
        b[2 * i + 1] = v

    if np.linalg.cond(a) > MAX_CONDITION:
        raise DegenerateGeometry("correspondence system is ill-conditioned")
    try:
        h = np.linalg.solve(a, b)
    except np.linalg.LinAlgError as e:
        raise DegenerateGeometry(f"correspondence system is singular: {e}") from e

    normalized = np.append(h, 1.0).reshape(3, 3)
    forward = _scale_to_unit(np.linalg.inv(t_dst) @ normalized @ t_src)
    if not np.all(np.isfinite(forward)):
        raise DegenerateGeometry("homography has non-finite entries")

    try:
        inverse = _scale_to_unit(np.linalg.inv(forward))
    except np.linalg.LinAlgError as e:
        raise DegenerateGeometry(f"homography is not invertible: {e}") from e
    if not np.all(np.isfinite(inverse)):
        raise DegenerateGeometry("inverse homography has non-finite entries")

    logger.debug("Homography solved: forward=%s", np.array2string(forward, precision=4))
    return Homography(
        forward=tuple(float(v) for v in forward.ravel()),
        inverse=tuple(float(v) for v in inverse.ravel()),
    )


def calibrate_quad(quad: OrderedQuad) -> Homography:
    """Homography from the canonical unit square onto ``quad`` (pixels)."""
    return solve_homography(UNIT_SQUARE.corners, quad.corners)


def apply_homography(matrix: Sequence[float], point: Point, eps: float = PROJECTION_EPS) -> Point:
    """Map ``point`` through a row-major 3x3 matrix; raises DegenerateProjection when |w'| < eps."""
    m = matrix
    w = m[6] * point.x + m[7] * point.y + m[8]
    if abs(w) < eps:
        raise DegenerateProjection(point, w)
    return Point(
        (m[0] * point.x + m[1] * point.y + m[2]) / w,
        (m[3] * point.x + m[4] * point.y + m[5]) / w,
    )
