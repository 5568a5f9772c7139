from __future__ import annotations

from typing import Optional, Tuple

import numpy as np


def image_gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Central-difference gradients, returned as (d/dx, d/dy)."""
    gy, gx = np.gradient(np.asarray(gray, dtype=np.float64))
    return gx, gy


def refine_corner(
    grad_x: np.ndarray,
    grad_y: np.ndarray,
    x: float,
    y: float,
    *,
    half_window: int = 5,
    max_iter: int = 40,
    eps: float = 0.001,
) -> Optional[Tuple[float, float]]:
    """Sub-pixel corner position by gradient orthogonality.

    At the true corner q every image gradient g(p) in the window is orthogonal
    to (q - p), so q solves sum w*g*g^T q = sum w*g*g^T p. Iterates with the
    window re-centred on the estimate. Returns None when the system is singular,
    the result is not finite or the estimate leaves the search window.
    """
    h, w = grad_x.shape
    start = np.array([x, y], dtype=np.float64)
    q = start.copy()
    hw = int(half_window)

    for _ in range(max_iter):
        cx, cy = int(round(q[0])), int(round(q[1]))
        x0, x1 = max(cx - hw, 0), min(cx + hw, w - 1)
        y0, y1 = max(cy - hw, 0), min(cy + hw, h - 1)
        if x0 > x1 or y0 > y1:
            return None

        ys, xs = np.mgrid[y0:y1 + 1, x0:x1 + 1]
        gx = grad_x[y0:y1 + 1, x0:x1 + 1]
        gy = grad_y[y0:y1 + 1, x0:x1 + 1]
        weight = np.exp(-(((xs - cx) / hw) ** 2) - (((ys - cy) / hw) ** 2))

        gxx = weight * gx * gx
        gxy = weight * gx * gy
        gyy = weight * gy * gy
        a, b, c = gxx.sum(), gxy.sum(), gyy.sum()
        bx = (gxx * xs + gxy * ys).sum()
        by = (gxy * xs + gyy * ys).sum()

        det = a * c - b * b
        if a + c <= 0 or abs(det) <= 1e-12 * (a + c) ** 2:
            return None
        new_q = np.array([(c * bx - b * by) / det, (a * by - b * bx) / det])
        if not np.all(np.isfinite(new_q)):
            return None

        step = float(np.hypot(*(new_q - q)))
        q = new_q
        if np.hypot(*(q - start)) > hw:
            return None
        if step < eps:
            break

    return float(q[0]), float(q[1])
