"""wallmeasure.services.quad_finder

Candidate marker detection: adaptive binarization, border tracing, polygon
approximation, geometric filtering and sub-pixel corner refinement.

Each dark printed square binarizes into a ring (the adaptive threshold only
keeps pixels close to an edge). The ring's outer border is the marker edge;
its hole border is only considered when the outer border is rejected, so one
marker yields one candidate.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from wallmeasure.core.models import CandidateQuad, DetectorParams, Point
from wallmeasure.utils.contours import (
    adaptive_threshold,
    approx_polygon,
    iter_holes,
    label_components,
    to_grayscale,
    trace_border,
)
from wallmeasure.utils.corners import image_gradients, refine_corner
from wallmeasure.utils.geometry import arc_length, is_convex, signed_area

logger = logging.getLogger(__name__)

DEFAULT_PARAMS = DetectorParams()


class _QuadFilter:
    """Shape tests and corner refinement bound to one image."""

    def __init__(self, gray: np.ndarray, params: DetectorParams):
        self.params = params
        self.height, self.width = gray.shape
        self.grad_x, self.grad_y = image_gradients(gray)

    def evaluate(self, contour: np.ndarray) -> Optional[CandidateQuad]:
        p = self.params
        if len(contour) < 4:
            return None

        perimeter = arc_length(contour, closed=True)
        approx = approx_polygon(contour, p.approx_epsilon_ratio * perimeter)
        if len(approx) != 4 or not is_convex(approx):
            return None

        area = abs(signed_area(approx))
        if area <= p.min_quad_area:
            return None

        xs, ys = approx[:, 0], approx[:, 1]
        box_w = int(xs.max() - xs.min()) + 1
        box_h = int(ys.max() - ys.min()) + 1
        if box_w >= self.width * p.max_border_coverage or box_h >= self.height * p.max_border_coverage:
            logger.debug("Rejected candidate covering the frame: %dx%d", box_w, box_h)
            return None

        aspect = box_w / box_h
        if not (p.min_aspect_ratio <= aspect <= p.max_aspect_ratio):
            logger.debug("Rejected candidate due to aspect ratio: %.2f", aspect)
            return None

        corners = tuple(self._refine(int(x), int(y)) for x, y in approx)
        return CandidateQuad(points=corners, area=float(area))

    def _refine(self, x: int, y: int) -> Point:
        p = self.params
        refined = refine_corner(
            self.grad_x,
            self.grad_y,
            float(x),
            float(y),
            half_window=p.subpix_half_window,
            max_iter=p.subpix_max_iter,
            eps=p.subpix_eps,
        )
        if refined is None:
            logger.debug("Sub-pixel refinement failed at (%d, %d); keeping integer corner", x, y)
            return Point(float(x), float(y))
        return Point(*refined)


def find_quads(image: np.ndarray, params: Optional[DetectorParams] = None) -> Tuple[CandidateQuad, ...]:
    """Return every marker-like quadrilateral in ``image`` (possibly none)."""
    params = params or DEFAULT_PARAMS
    gray = to_grayscale(image)
    mask = adaptive_threshold(gray, params.adaptive_block_size, params.adaptive_c)
    labels, boxes = label_components(mask)
    quad_filter = _QuadFilter(gray, params)

    found: List[CandidateQuad] = []
    for index, box in enumerate(boxes):
        if box is None:
            continue
        rows, cols = box
        if (rows.stop - rows.start) * (cols.stop - cols.start) <= params.min_quad_area:
            continue

        component = labels[box] == index + 1
        offset = np.array([cols.start, rows.start])

        candidate = quad_filter.evaluate(trace_border(component) + offset)
        if candidate is not None:
            found.append(candidate)
            continue

        for hole_offset, hole in iter_holes(component):
            if hole.size <= params.min_quad_area:
                continue
            candidate = quad_filter.evaluate(trace_border(hole) + offset + hole_offset)
            if candidate is not None:
                found.append(candidate)

    logger.debug("Quad finder: %d components, %d candidates", len(boxes), len(found))
    return tuple(found)
