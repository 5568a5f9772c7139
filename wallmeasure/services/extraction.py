from __future__ import annotations

import logging
import math
from typing import Sequence

import cv2
import numpy as np

from wallmeasure.core.errors import InvalidAnnotation
from wallmeasure.core.models import ExtractedRegion, Point, points_array
from wallmeasure.services.homography import calibrate_quad
from wallmeasure.utils.geometry import bounding_box, order_corners
from wallmeasure.utils.imageio import to_data_url

logger = logging.getLogger(__name__)


def _to_bgra(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    if image.shape[2] == 4:
        return image.copy()
    raise ValueError(f"unsupported image shape {image.shape}")


def extract_region(image: np.ndarray, points: Sequence[Point]) -> ExtractedRegion:
    """Cut the polygon ``points`` out of ``image``; pixels outside it become transparent.

    The crop covers floor/ceil of the polygon extents. Parts of the box that
    fall outside the image stay transparent. A 4-point polygon also gets the
    unit-square homography of its angular-sorted corners.
    """
    if len(points) < 3:
        raise InvalidAnnotation(f"extraction needs a polygon with at least 3 points, got {len(points)}")

    min_x, min_y, max_x, max_y = bounding_box(points)
    x0, y0 = math.floor(min_x), math.floor(min_y)
    x1, y1 = math.ceil(max_x), math.ceil(max_y)
    width, height = x1 - x0, y1 - y0
    if width <= 0 or height <= 0:
        raise InvalidAnnotation("Invalid polygon dimensions")

    src = _to_bgra(image)
    img_h, img_w = src.shape[:2]
    canvas = np.zeros((height, width, 4), dtype=np.uint8)

    sx0, sy0 = max(x0, 0), max(y0, 0)
    sx1, sy1 = min(x1, img_w), min(y1, img_h)
    if sx1 > sx0 and sy1 > sy0:
        canvas[sy0 - y0:sy1 - y0, sx0 - x0:sx1 - x0] = src[sy0:sy1, sx0:sx1]
    else:
        logger.warning("Extraction box (%d, %d)-(%d, %d) lies outside the image", x0, y0, x1, y1)

    mask = np.zeros((height, width), dtype=np.uint8)
    poly = np.round(points_array(points) - (x0, y0)).astype(np.int32)
    cv2.fillPoly(mask, [poly], 255)
    canvas[mask == 0] = 0

    homography = calibrate_quad(order_corners(points)) if len(points) == 4 else None

    return ExtractedRegion(
        data_url=to_data_url(canvas),
        origin=(x0, y0),
        size=(width, height),
        homography=homography,
    )
