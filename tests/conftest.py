from __future__ import annotations

from typing import Optional

import numpy as np
import pytest

# Four 50x50 squares in the corners of a 500x500 frame; the outer corners of
# the pattern are 400 px apart.
PATTERN_ORIGINS = ((50, 50), (400, 50), (400, 400), (50, 400))
PATTERN_SQUARE = 50
# Three squares stacked on the left and one on the right: no clean quadrant split.
L_SHAPE_ORIGINS = ((50, 50), (50, 200), (50, 350), (350, 200))


def white(height: int, width: int) -> np.ndarray:
    return np.full((height, width, 3), 255, dtype=np.uint8)


def fill_square(img: np.ndarray, x: int, y: int, w: int, h: Optional[int] = None, value: int = 0) -> np.ndarray:
    """Paint pixels [x, x + w) x [y, y + h) with ``value``."""
    h = w if h is None else h
    img[y:y + h, x:x + w] = value
    return img


@pytest.fixture
def pattern_image() -> np.ndarray:
    img = white(500, 500)
    for x, y in PATTERN_ORIGINS:
        fill_square(img, x, y, PATTERN_SQUARE)
    return img


@pytest.fixture
def square_image() -> np.ndarray:
    return fill_square(white(200, 200), 50, 50, 50)


@pytest.fixture
def l_shape_image() -> np.ndarray:
    img = white(500, 500)
    for x, y in L_SHAPE_ORIGINS:
        fill_square(img, x, y, PATTERN_SQUARE)
    return img
