from __future__ import annotations

import base64

import cv2
import pytest
from fastapi.testclient import TestClient

from conftest import white
from wallmeasure.config import Settings
from wallmeasure.main import create_app

L = 0.5417


def _png(img) -> bytes:
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()


@pytest.fixture
def client():
    app = create_app(Settings(LOG_LEVEL="WARNING"))
    with TestClient(app) as c:
        yield c


def test_app_routes_build():
    app = create_app(Settings())
    paths = {r.path for r in app.router.routes}
    for path in ("/health", "/detect", "/homography", "/measure", "/extract"):
        assert path in paths


def test_api_prefix_is_applied():
    app = create_app(Settings(API_PREFIX="/api/v1/"))
    paths = {r.path for r in app.router.routes}
    assert "/api/v1/detect" in paths
    assert "/detect" not in paths


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["service"] == "wallmeasure"


def test_detect_found(client, pattern_image):
    r = client.post("/detect", content=_png(pattern_image), headers={"Content-Type": "image/png"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "found"
    assert body["grouping_consistent"] is True
    assert len(body["candidates"]) == 4
    assert body["image_size"] == {"width": 500, "height": 500}
    assert body["reference_quad"]["tl"]["x"] == pytest.approx(49.5, abs=1.0)
    cal = body["calibration"]
    assert cal["reference_size_ft"] == pytest.approx(6.5 / 12)
    assert len(cal["matrix"]) == 9
    assert cal["side_lengths_px"]["top"] == pytest.approx(400.0, abs=2.0)


def test_detect_reference_size_override(client, pattern_image):
    r = client.post("/detect?reference_size_ft=1.0", content=_png(pattern_image))
    assert r.status_code == 200
    assert r.json()["calibration"]["reference_size_ft"] == 1.0


def test_detect_without_markers_is_not_an_http_error(client):
    r = client.post("/detect", content=_png(white(100, 100)))
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "no_markers"
    assert body["candidates"] == []
    assert body["calibration"] is None


def test_detect_ambiguous_grouping_returns_fallback_calibration(client, l_shape_image):
    r = client.post("/detect", content=_png(l_shape_image))
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ambiguous_grouping"
    quad = body["reference_quad"]
    cal = body["calibration"]
    assert cal["reference_quad"] == quad
    assert cal["side_lengths_px"]["left"] == pytest.approx(350.0, abs=2.0)


def test_detect_rejects_garbage_and_empty_bodies(client):
    assert client.post("/detect", content=b"not an image").status_code == 400
    assert client.post("/detect", content=b"").status_code == 400


def test_detect_rejects_oversized_upload():
    app = create_app(Settings(MAX_UPLOAD_MB=0.0001, LOG_LEVEL="WARNING"))
    with TestClient(app) as c:
        r = c.post("/detect", content=b"\x00" * 1024)
        assert r.status_code == 413


def test_homography_orders_corners(client):
    points = [{"x": 400, "y": 400}, {"x": 0, "y": 0}, {"x": 0, "y": 400}, {"x": 400, "y": 0}]
    r = client.post("/homography", json={"points": points})
    assert r.status_code == 200
    body = r.json()
    assert body["quad"]["tl"] == {"x": 0.0, "y": 0.0}
    assert body["quad"]["br"] == {"x": 400.0, "y": 400.0}
    assert body["matrix"][0] == pytest.approx(400.0)
    assert body["inverse_matrix"][0] == pytest.approx(1 / 400)


def test_homography_degenerate_is_422(client):
    points = [{"x": 0, "y": 0}, {"x": 1, "y": 1}, {"x": 2, "y": 2}, {"x": 0, "y": 5}]
    r = client.post("/homography", json={"points": points, "order_corners": False})
    assert r.status_code == 422


def test_homography_needs_four_points(client):
    r = client.post("/homography", json={"points": [{"x": 0, "y": 0}]})
    assert r.status_code == 422


def test_measure(client):
    payload = {
        "annotations": [
            {
                "role": "reference",
                "points": [{"x": 0, "y": 0}, {"x": 400, "y": 0}, {"x": 400, "y": 400}, {"x": 0, "y": 400}],
            },
            {
                "label": "window",
                "points": [{"x": 200, "y": 200}, {"x": 300, "y": 200}, {"x": 300, "y": 300}, {"x": 200, "y": 300}],
            },
            {
                "kind": "polyline",
                "points": [{"x": 0, "y": 0}, {"x": 400, "y": 0}],
            },
        ],
        "reference_size_ft": L,
        "image_size": {"width": 800, "height": 600},
    }
    r = client.post("/measure", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body["calibration"]["visible_extent"]["right"] == pytest.approx(2 * L)

    window, line = body["measurements"]
    assert window["index"] == 1
    assert window["label"] == "window"
    assert window["area"] == pytest.approx((0.25 * L) ** 2)
    assert window["pixel_area"] == pytest.approx(10000.0)
    assert line["kind"] == "polyline"
    assert line["perimeter"] == pytest.approx(L)
    assert line["area"] == 0.0


def test_measure_invalid_annotations_is_422(client):
    ref = {
        "role": "reference",
        "points": [{"x": 0, "y": 0}, {"x": 400, "y": 0}, {"x": 400, "y": 400}, {"x": 0, "y": 400}],
    }
    r = client.post("/measure", json={"annotations": [ref, ref]})
    assert r.status_code == 422
    r = client.post("/measure", json={"annotations": []})
    assert r.status_code == 422


def test_extract(client):
    img = white(60, 60)
    data_url = "data:image/png;base64," + base64.b64encode(_png(img)).decode("ascii")
    points = [{"x": 10, "y": 10}, {"x": 50, "y": 10}, {"x": 50, "y": 50}, {"x": 10, "y": 50}]
    r = client.post("/extract", json={"image": data_url, "points": points})
    assert r.status_code == 200
    body = r.json()
    assert body["data_url"].startswith("data:image/png;base64,")
    assert (body["width"], body["height"]) == (40, 40)
    assert body["origin"] == {"x": 10.0, "y": 10.0}
    assert len(body["matrix"]) == 9


def test_extract_bad_image_is_400(client):
    points = [{"x": 10, "y": 10}, {"x": 50, "y": 10}, {"x": 50, "y": 50}]
    r = client.post("/extract", json={"image": "%%%not-base64%%%", "points": points})
    assert r.status_code == 400
