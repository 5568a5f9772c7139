"""wallmeasure.cli

Command-line front end; every command prints JSON to stdout and logs to stderr.

    wallmeasure detect IMAGE [--reference-size FT] [--strict]
    wallmeasure measure --annotations FILE.json [--image IMAGE] [--reference-size FT]
    wallmeasure extract IMAGE --points FILE.json [--output OUT.png]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from wallmeasure.api.schemas import (
    AnnotationModel,
    CalibrationModel,
    DetectResponse,
    ExtractResponse,
    MeasureRequest,
    MeasureResponse,
    MeasurementModel,
)
from wallmeasure.config import get_settings
from wallmeasure.core.errors import DetectionError, WallMeasureError
from wallmeasure.core.logging_config import setup_logging
from wallmeasure.core.models import to_points
from wallmeasure.core.pipeline import calibrate_detection, detect_reference, run_measurement
from wallmeasure.services.extraction import extract_region
from wallmeasure.utils.imageio import decode_data_url, read_image

logger = logging.getLogger("wallmeasure.cli")

EXIT_DETECTION = 1
EXIT_ERROR = 2


def _emit(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _load_json(path: Path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_measure_request(path: Path) -> MeasureRequest:
    """Accept either a bare list of annotations or a full /measure request body."""
    raw = _load_json(path)
    if isinstance(raw, list):
        annotations = TypeAdapter(List[AnnotationModel]).validate_python(raw)
        return MeasureRequest(annotations=annotations)
    return MeasureRequest.model_validate(raw)


def cmd_detect(args: argparse.Namespace) -> int:
    settings = get_settings()
    image = read_image(args.image)
    result = detect_reference(image, settings.detector_params())

    calibration = calibrate_detection(
        result,
        args.reference_size or settings.REFERENCE_SIZE_FT,
        settings.PROJECTION_EPS,
    )
    _emit(DetectResponse.from_result(result, calibration).model_dump(mode="json"))

    if args.strict:
        try:
            result.raise_for_status()
        except DetectionError as e:
            logger.error("Detection failed: %s", e)
            return EXIT_DETECTION
    return 0


def cmd_measure(args: argparse.Namespace) -> int:
    settings = get_settings()
    request = _load_measure_request(args.annotations)
    annotations = [a.to_sequence() for a in request.annotations]
    image_size = (request.image_size.width, request.image_size.height) if request.image_size else None
    reference_quad = request.reference_quad.to_quad() if request.reference_quad else None

    if args.image is not None:
        image = read_image(args.image)
        height, width = image.shape[:2]
        image_size = (width, height)
        has_reference = any(a.role == "reference" for a in request.annotations)
        if not has_reference and reference_quad is None:
            result = detect_reference(image, settings.detector_params())
            result.raise_for_status()
            reference_quad = result.reference_quad

    report = run_measurement(
        annotations,
        args.reference_size or request.reference_size_ft or settings.REFERENCE_SIZE_FT,
        image_size=image_size,
        reference_quad=reference_quad,
        eps=settings.PROJECTION_EPS,
    )
    response = MeasureResponse(
        calibration=CalibrationModel.from_calibration(report.calibration),
        measurements=[MeasurementModel.from_measurement(m) for m in report.measurements],
    )
    _emit(response.model_dump(mode="json"))
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    image = read_image(args.image)
    points = to_points(_load_json(args.points))
    region = extract_region(image, points)
    payload = ExtractResponse.from_region(region).model_dump(mode="json")

    if args.output is not None:
        args.output.write_bytes(decode_data_url(region.data_url))
        payload["data_url"] = None
        payload["output"] = str(args.output)
        logger.info("Region saved to %s", args.output)
    _emit(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="wallmeasure", description="Fiducial detection and planar wall measurement")
    ap.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("detect", help="Detect the four-square reference pattern")
    p.add_argument("image", type=Path)
    p.add_argument("--reference-size", type=float, default=None, help="Pattern edge in feet")
    p.add_argument("--strict", action="store_true", help="Exit 1 unless the pattern was found")
    p.set_defaults(func=cmd_detect)

    p = sub.add_parser("measure", help="Measure annotations in feet")
    p.add_argument("--annotations", type=Path, required=True)
    p.add_argument("--image", type=Path, default=None, help="Detect the reference when the file has none")
    p.add_argument("--reference-size", type=float, default=None, help="Pattern edge in feet")
    p.set_defaults(func=cmd_measure)

    p = sub.add_parser("extract", help="Cut a polygon out of an image as a transparent PNG")
    p.add_argument("image", type=Path)
    p.add_argument("--points", type=Path, required=True)
    p.add_argument("--output", "-o", type=Path, default=None)
    p.set_defaults(func=cmd_extract)

    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, stream=sys.stderr)

    try:
        return args.func(args)
    except DetectionError as e:
        logger.error("Detection failed: %s", e)
        return EXIT_DETECTION
    except (WallMeasureError, ValidationError, FileNotFoundError, ValueError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
