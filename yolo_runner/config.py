from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from .errors import ConfigParseError


PathLike = Union[str, Path]

SUPPORTED_MODEL_TYPES = ("YOLOv3",)
SUPPORTED_LAYOUTS = ("NHWC", "NCHW")


@dataclass(frozen=True)
class ModelConfig:
    """
    YOLOv3-family parameters for the inference engine.

    - biases: anchor (w, h) pairs in model-input pixels, `2 * anchor_count` values
      per output layer, listed from the finest grid to the coarsest
    - mean/scale: per-channel input normalization, `(pixel - mean) * scale`
    - layout: memory layout of the raw output feature maps
    """

    name: str
    num_classes: int
    anchor_count: int
    biases: Tuple[float, ...]
    model_type: str = "YOLOv3"
    conf_threshold: float = 0.3
    nms_threshold: float = 0.45
    mean: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    scale: Tuple[float, float, float] = (0.00390625, 0.00390625, 0.00390625)
    layout: str = "NHWC"
    max_detections: int = 300

    def __post_init__(self) -> None:
        if self.model_type not in SUPPORTED_MODEL_TYPES:
            raise ConfigParseError(f"model_type must be one of {SUPPORTED_MODEL_TYPES}, got {self.model_type!r}")
        if self.num_classes <= 0:
            raise ConfigParseError("num_classes must be > 0")
        if self.anchor_count <= 0:
            raise ConfigParseError("anchor_count must be > 0")
        if not self.biases or len(self.biases) % (2 * self.anchor_count) != 0:
            raise ConfigParseError("biases must hold 2 * anchor_count values per output layer")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ConfigParseError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ConfigParseError("nms_threshold must be in [0, 1]")
        if len(self.mean) != 3 or len(self.scale) != 3:
            raise ConfigParseError("mean and scale must have 3 values (one per channel)")
        if self.layout not in SUPPORTED_LAYOUTS:
            raise ConfigParseError(f"layout must be one of {SUPPORTED_LAYOUTS}, got {self.layout!r}")
        if self.max_detections <= 0:
            raise ConfigParseError("max_detections must be > 0")

    @property
    def num_layers(self) -> int:
        return len(self.biases) // (2 * self.anchor_count)

    def anchors_for_layer(self, layer: int) -> List[Tuple[float, float]]:
        start = layer * 2 * self.anchor_count
        flat = self.biases[start : start + 2 * self.anchor_count]
        return [(flat[i], flat[i + 1]) for i in range(0, len(flat), 2)]


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ConfigParseError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigParseError(f"{key} must be a non-empty string")
    return value


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ConfigParseError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigParseError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigParseError(f"{key} must be a number")
    return float(value)


def _number_list(payload: Dict[str, Any], key: str, default=None) -> Tuple[float, ...]:
    if key not in payload:
        if default is None:
            raise ConfigParseError(f"Missing required key: {key}")
        return tuple(default)
    value = payload[key]
    if not isinstance(value, list) or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in value):
        raise ConfigParseError(f"{key} must be a list of numbers")
    return tuple(float(v) for v in value)


def parse_model_config(text: str) -> ModelConfig:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Invalid model config JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigParseError("Model config must be a JSON object")

    allowed = {
        "name",
        "model_type",
        "num_classes",
        "anchor_count",
        "biases",
        "conf_threshold",
        "nms_threshold",
        "mean",
        "scale",
        "layout",
        "max_detections",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ConfigParseError(f"Unknown model config keys: {unknown}")

    layout = payload.get("layout", "NHWC")
    if not isinstance(layout, str):
        raise ConfigParseError("layout must be a string")
    model_type = payload.get("model_type", "YOLOv3")
    if not isinstance(model_type, str):
        raise ConfigParseError("model_type must be a string")
    max_detections = _require_int(payload, "max_detections") if "max_detections" in payload else 300

    return ModelConfig(
        name=_require_str(payload, "name"),
        model_type=model_type,
        num_classes=_require_int(payload, "num_classes"),
        anchor_count=_require_int(payload, "anchor_count"),
        biases=_number_list(payload, "biases"),
        conf_threshold=_optional_number(payload, "conf_threshold", 0.3),
        nms_threshold=_optional_number(payload, "nms_threshold", 0.45),
        mean=_number_list(payload, "mean", default=(0.0, 0.0, 0.0)),
        scale=_number_list(payload, "scale", default=(0.00390625, 0.00390625, 0.00390625)),
        layout=layout.upper(),
        max_detections=max_detections,
    )


def load_model_config(path: PathLike) -> ModelConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigParseError(f"Model config not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigParseError(f"Could not read model config: {path}") from exc
    return parse_model_config(raw)
