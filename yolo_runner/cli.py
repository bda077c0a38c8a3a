from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import cv2

from .annotate import clip_to_image, format_detection_line, render, to_record
from .errors import OutputWriteError, UnknownModeError, YoloRunnerError
from .labels import COCO_LABELS, label_name, load_label_table
from .log import setup_logging
from .runtime import load_runner, read_image

logger = logging.getLogger(__name__)

SUPPORTED_MODES = ("image",)
DEFAULT_OUTPUT = "result.jpg"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yolo-runner",
        description="Run a compiled YOLO model on one image and draw the detected boxes.",
    )
    parser.add_argument("config", help="Model config file (JSON text).")
    parser.add_argument("model", help="Compiled model (.xmodel for the DPU, .onnx for ONNX Runtime).")
    parser.add_argument("image", help="Input image.")
    parser.add_argument("mode", help='Run mode; only "image" is supported.')
    parser.add_argument("--out", default=DEFAULT_OUTPUT, help="Annotated output image (overwritten).")
    parser.add_argument("--labels", default=None, help="Label table (metadata.yaml names mapping). Default: COCO.")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / vart.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--records", default=None, help="Optional JSON-lines file with one record per detection.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for stderr diagnostics.",
    )
    return parser


def _write_records(path: str, records: List[Dict[str, str]]) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            for rec in records:
                f.write(json.dumps(rec) + "\n")
    except OSError as e:
        raise OutputWriteError(f"Failed to write records: {path}") from e


def run(args: argparse.Namespace) -> int:
    if args.mode not in SUPPORTED_MODES:
        raise UnknownModeError(f"unknown mode: {args.mode}")

    labels = load_label_table(args.labels) if args.labels else COCO_LABELS
    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    logger.info("config=%s model=%s image=%s", args.config, args.model, args.image)
    runner = load_runner(args.config, args.model, backend=args.backend, onnx_providers=onnx_providers)
    print("Model Initialize Done")

    img = read_image(args.image)
    img_h, img_w = img.shape[:2]
    detections = runner.detect(img)
    logger.info("%d detections", len(detections))

    records = []
    for det in detections:
        name = label_name(labels, det.label)
        box = clip_to_image(det, img_w, img_h)
        print(format_detection_line(name, det.score, box))
        render(img, box, name)
        records.append(to_record(det, frame_id=0))

    if not cv2.imwrite(args.out, img):
        raise OutputWriteError(f"Failed to write output image: {args.out}")
    logger.info("Wrote %s", Path(args.out).resolve())

    if args.records:
        _write_records(args.records, records)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return run(args)
    except YoloRunnerError as e:
        logger.error("%s", e)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
