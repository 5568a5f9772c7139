from __future__ import annotations

import base64
import binascii
from pathlib import Path

import cv2
import numpy as np

from wallmeasure.core.errors import ImageDecodeError


def bytes_to_image(data: bytes) -> np.ndarray:
    """Decode an encoded image buffer at natural resolution (BGR, or BGRA when it has alpha)."""
    arr = np.frombuffer(data, dtype=np.uint8)
    if arr.size == 0:
        raise ImageDecodeError("empty image buffer")
    img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ImageDecodeError("failed to decode image buffer")
    if img.dtype != np.uint8:
        img = cv2.convertScaleAbs(img, alpha=255.0 / max(float(img.max()), 1.0))
    return img


def read_image(path: Path) -> np.ndarray:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"image not found: {path}")
    return bytes_to_image(path.read_bytes())


def decode_data_url(value: str) -> bytes:
    """Accept either a bare base64 string or a ``data:image/...;base64,`` URL."""
    payload = value.split(",", 1)[1] if value.startswith("data:") else value
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"invalid base64 image payload: {e}") from e


def to_data_url(image: np.ndarray) -> str:
    success, buf = cv2.imencode(".png", image)
    if not success:
        raise RuntimeError("Failed to encode image buffer.")
    b64 = base64.b64encode(buf.tobytes()).decode("ascii")
    return f"data:image/png;base64,{b64}"
