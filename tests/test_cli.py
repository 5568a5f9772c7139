from __future__ import annotations

import json

import cv2
import pytest

from conftest import white
from wallmeasure.cli import main

L = 0.5417


@pytest.fixture
def pattern_png(tmp_path, pattern_image):
    path = tmp_path / "wall.png"
    cv2.imwrite(str(path), pattern_image)
    return path


def _run(capsys, *argv):
    code = main(list(argv))
    return code, capsys.readouterr().out


def test_detect_prints_json(capsys, pattern_png):
    code, out = _run(capsys, "detect", str(pattern_png), "--reference-size", str(L))
    assert code == 0
    body = json.loads(out)
    assert body["status"] == "found"
    assert body["calibration"]["reference_size_ft"] == pytest.approx(L)


def test_detect_strict_fails_without_markers(capsys, tmp_path):
    path = tmp_path / "blank.png"
    cv2.imwrite(str(path), white(80, 80))
    code, out = _run(capsys, "detect", str(path), "--strict")
    assert code == 1
    assert json.loads(out)["status"] == "no_markers"

    code, _ = _run(capsys, "detect", str(path))
    assert code == 0


def test_detect_ambiguous_pattern_still_calibrates(capsys, tmp_path, l_shape_image):
    path = tmp_path / "l_shape.png"
    cv2.imwrite(str(path), l_shape_image)
    code, out = _run(capsys, "detect", str(path), "--strict")
    assert code == 1
    body = json.loads(out)
    assert body["status"] == "ambiguous_grouping"
    assert body["calibration"] is not None


def test_detect_missing_file(capsys, tmp_path):
    code, out = _run(capsys, "detect", str(tmp_path / "nope.png"))
    assert code == 2
    assert out == ""


def _pts(*pairs):
    return [{"x": x, "y": y} for x, y in pairs]


def test_measure_with_reference_annotation(capsys, tmp_path):
    path = tmp_path / "ann.json"
    path.write_text(json.dumps([
        {"role": "reference", "points": _pts((0, 0), (400, 0), (400, 400), (0, 400))},
        {"points": _pts((200, 200), (300, 200), (300, 300), (200, 300))},
    ]))
    code, out = _run(capsys, "measure", "--annotations", str(path), "--reference-size", "1")
    assert code == 0
    body = json.loads(out)
    assert body["measurements"][0]["area"] == pytest.approx(0.0625)


def test_measure_detects_reference_from_image(capsys, tmp_path, pattern_png):
    path = tmp_path / "ann.json"
    path.write_text(json.dumps({
        "annotations": [
            {"points": _pts((200, 200), (300, 200), (300, 300), (200, 300))}
        ],
        "reference_size_ft": L,
    }))
    code, out = _run(capsys, "measure", "--annotations", str(path), "--image", str(pattern_png))
    assert code == 0
    body = json.loads(out)
    assert body["measurements"][0]["area"] == pytest.approx((0.25 * L) ** 2, rel=1e-2)
    assert body["calibration"]["visible_extent"] is not None


def test_measure_without_reference_fails(capsys, tmp_path):
    path = tmp_path / "ann.json"
    path.write_text(json.dumps([{"points": _pts((0, 0), (1, 0))}]))
    code, out = _run(capsys, "measure", "--annotations", str(path))
    assert code == 2
    assert out == ""


def test_extract_writes_png(capsys, tmp_path, pattern_png):
    points = tmp_path / "points.json"
    points.write_text(json.dumps([[40, 40], [110, 40], [110, 110], [40, 110]]))
    out_png = tmp_path / "crop.png"
    code, out = _run(capsys, "extract", str(pattern_png), "--points", str(points), "--output", str(out_png))
    assert code == 0
    body = json.loads(out)
    assert body["output"] == str(out_png)
    assert body["data_url"] is None
    crop = cv2.imread(str(out_png), cv2.IMREAD_UNCHANGED)
    assert crop.shape == (70, 70, 4)
