"""Binarization, border tracing and polygon approximation on numpy arrays.

Conventions: masks are boolean (H, W) arrays, contours are (N, 2) integer
arrays of (x, y) pixel coordinates in traversal order.
"""

from __future__ import annotations

from typing import Iterator, List, Tuple

import numpy as np
from scipy import ndimage

# Moore neighbourhood as (drow, dcol), clockwise on screen starting from west.
_NEIGHBOURS: Tuple[Tuple[int, int], ...] = (
    (0, -1), (-1, -1), (-1, 0), (-1, 1), (0, 1), (1, 1), (1, 0), (1, -1),
)
_NEIGHBOUR_INDEX = {d: i for i, d in enumerate(_NEIGHBOURS)}
_EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a gray, BGR or BGRA array to float64 luminance."""
    img = np.asarray(image)
    if img.ndim == 2:
        return img.astype(np.float64)
    if img.ndim == 3 and img.shape[2] == 1:
        return img[:, :, 0].astype(np.float64)
    if img.ndim == 3 and img.shape[2] in (3, 4):
        b = img[:, :, 0].astype(np.float64)
        g = img[:, :, 1].astype(np.float64)
        r = img[:, :, 2].astype(np.float64)
        return 0.114 * b + 0.587 * g + 0.299 * r
    raise ValueError(f"unsupported image shape {img.shape}")


def gaussian_kernel(ksize: int) -> np.ndarray:
    """1-D Gaussian kernel with the sigma OpenCV derives from the size."""
    if ksize < 3 or ksize % 2 == 0:
        raise ValueError(f"kernel size must be odd and >= 3, got {ksize}")
    sigma = 0.3 * ((ksize - 1) * 0.5 - 1) + 0.8
    x = np.arange(ksize, dtype=np.float64) - (ksize - 1) / 2.0
    k = np.exp(-(x * x) / (2.0 * sigma * sigma))
    return k / k.sum()


def adaptive_threshold(gray: np.ndarray, block_size: int = 11, c: float = 2.0) -> np.ndarray:
    """Inverted Gaussian adaptive threshold.

    A pixel is foreground when it is at least ``c`` darker than the
    Gaussian-weighted mean of its ``block_size`` neighbourhood, so dark marks
    on a lighter background come out as foreground under uneven lighting.
    """
    kernel = gaussian_kernel(block_size)
    local = ndimage.correlate1d(gray, kernel, axis=0, mode="nearest")
    local = ndimage.correlate1d(local, kernel, axis=1, mode="nearest")
    return gray <= (local - c)


def label_components(mask: np.ndarray) -> Tuple[np.ndarray, List[Tuple[slice, slice]]]:
    """8-connected labelling; returns the label image and one bbox slice per label."""
    labels, _count = ndimage.label(mask, structure=_EIGHT_CONNECTED)
    return labels, ndimage.find_objects(labels)


def trace_border(mask: np.ndarray) -> np.ndarray:
    """Trace the outer border of the first blob in ``mask`` (Moore-neighbour tracing).

    The walk starts at the first foreground pixel in raster order and stops
    when the transition start -> second pixel repeats.
    """
    padded = np.pad(np.asarray(mask, dtype=bool), 1)
    nz = np.argwhere(padded)
    if len(nz) == 0:
        return np.empty((0, 2), dtype=np.int64)

    start = (int(nz[0][0]), int(nz[0][1]))
    contour = [start]
    p = start
    back = 0  # the raster-first pixel always has background to its west
    second = None

    for _ in range(4 * padded.size + 8):
        nxt = None
        idx = 0
        for k in range(1, 9):
            idx = (back + k) % 8
            dr, dc = _NEIGHBOURS[idx]
            q = (p[0] + dr, p[1] + dc)
            if padded[q]:
                nxt = q
                break
        if nxt is None:
            break  # isolated pixel
        if p == start and second is not None and nxt == second:
            break
        if second is None:
            second = nxt
        pr, pc = _NEIGHBOURS[(idx - 1) % 8]
        prev = (p[0] + pr, p[1] + pc)
        back = _NEIGHBOUR_INDEX[(prev[0] - nxt[0], prev[1] - nxt[1])]
        p = nxt
        contour.append(p)

    if len(contour) > 1 and contour[-1] == start:
        contour.pop()
    rc = np.array(contour, dtype=np.int64) - 1
    return rc[:, ::-1].copy()


def iter_holes(component: np.ndarray) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
    """Yield ``(offset, mask)`` per background region fully enclosed by ``component``.

    Each mask is cropped to the hole's bounding box; ``offset`` is the (x, y)
    of that box inside ``component``.
    """
    background = ~np.asarray(component, dtype=bool)
    labels, count = ndimage.label(background)
    if count == 0:
        return
    edge = np.concatenate([labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1]])
    border = set(np.unique(edge).tolist())
    for index, box in enumerate(ndimage.find_objects(labels)):
        if box is None or index + 1 in border:
            continue
        rows, cols = box
        yield np.array([cols.start, rows.start]), labels[box] == index + 1


def _dp_open(pts: np.ndarray, epsilon: float) -> np.ndarray:
    """Douglas-Peucker keep-mask for an open chain (endpoints always kept)."""
    n = len(pts)
    keep = np.zeros(n, dtype=bool)
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]
    while stack:
        s, e = stack.pop()
        if e <= s + 1:
            continue
        a, b = pts[s], pts[e]
        inner = pts[s + 1:e]
        d = b - a
        norm = float(np.hypot(d[0], d[1]))
        if norm < 1e-12:
            dist = np.hypot(inner[:, 0] - a[0], inner[:, 1] - a[1])
        else:
            dist = np.abs(d[0] * (inner[:, 1] - a[1]) - d[1] * (inner[:, 0] - a[0])) / norm
        k = int(np.argmax(dist))
        if dist[k] > epsilon:
            m = s + 1 + k
            keep[m] = True
            stack.append((s, m))
            stack.append((m, e))
    return keep


def approx_polygon(contour: np.ndarray, epsilon: float) -> np.ndarray:
    """Closed Douglas-Peucker approximation.

    The curve is split at two mutually distant points so that the result does
    not depend on where the trace happened to start.
    """
    pts = np.asarray(contour, dtype=np.float64).reshape(-1, 2)
    n = len(pts)
    if n < 3:
        return np.asarray(contour).reshape(-1, 2).copy()

    a = int(np.argmax(((pts - pts[0]) ** 2).sum(axis=1)))
    b = int(np.argmax(((pts - pts[a]) ** 2).sum(axis=1)))
    if a == b:
        return np.asarray(contour).reshape(-1, 2)[[a]].copy()
    i, j = sorted((a, b))

    first = np.arange(i, j + 1)
    second = np.concatenate([np.arange(j, n), np.arange(0, i + 1)])
    keep_first = first[_dp_open(pts[first], epsilon)]
    keep_second = second[_dp_open(pts[second], epsilon)][1:-1]
    order = np.concatenate([keep_first, keep_second])
    return np.asarray(contour).reshape(-1, 2)[order].copy()
