"""
Run a compiled YOLO detector on a still image and annotate the result.

The inference runtime (DPU via VART, or ONNX Runtime) sits behind a small
engine boundary; this package owns resizing, normalized-to-pixel conversion,
clipping, console/record output and drawing.
"""

from .types import Detection, NormalizedBox
from .errors import (
    ConfigParseError,
    InvalidImageError,
    LabelIndexError,
    ModelLoadError,
    OutputWriteError,
    UnknownModeError,
    YoloRunnerError,
)
from .config import ModelConfig, load_model_config, parse_model_config
from .labels import COCO_LABELS, label_name, load_label_table
from .nms import nms
from .postprocess import YoloV3Postprocessor
from .engine import InferenceEngine, YoloV3Engine, load_engine
from .runtime import YoloRunner, load_runner, read_image
from .annotate import clip_to_image, format_detection_line, render, to_record

__all__ = [
    "Detection",
    "NormalizedBox",
    "ConfigParseError",
    "InvalidImageError",
    "LabelIndexError",
    "ModelLoadError",
    "OutputWriteError",
    "UnknownModeError",
    "YoloRunnerError",
    "ModelConfig",
    "load_model_config",
    "parse_model_config",
    "COCO_LABELS",
    "label_name",
    "load_label_table",
    "nms",
    "YoloV3Postprocessor",
    "InferenceEngine",
    "YoloV3Engine",
    "load_engine",
    "YoloRunner",
    "load_runner",
    "read_image",
    "clip_to_image",
    "format_detection_line",
    "render",
    "to_record",
]
