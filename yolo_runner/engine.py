"""
Inference engine boundary.

The rest of the package sees an engine through two operations only: building
it from a configuration and a model artifact (`load_engine`) and running one
inference pass that returns normalized boxes (`InferenceEngine.run`).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from .config import ModelConfig
from .errors import ModelLoadError
from .postprocess import YoloV3Postprocessor
from .types import NormalizedBox


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


class InferenceEngine(Protocol):
    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) the model expects."""
        ...

    def run(self, image_bgr: np.ndarray) -> List[NormalizedBox]:
        ...


class TensorBackend(Protocol):
    input_size: Tuple[int, int]
    output_shapes: List[Tuple[object, ...]]

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        ...


class YoloV3Engine:
    """
    Tensor backend + input normalization + YOLOv3 decode/NMS.

    `run` expects a BGR image already resized to `input_size`. Construction
    fails with ModelLoadError when the backend outputs do not fit the config.
    """

    def __init__(self, backend: TensorBackend, cfg: ModelConfig):
        self.backend = backend
        self.cfg = cfg
        self.post = YoloV3Postprocessor(cfg)
        self.post.check_output_shapes(backend.output_shapes)
        self._mean = np.array(cfg.mean, dtype=np.float32)
        self._scale = np.array(cfg.scale, dtype=np.float32)

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.backend.input_size

    def preprocess(self, image_bgr: np.ndarray) -> np.ndarray:
        h, w = image_bgr.shape[:2]
        if (w, h) != tuple(self.input_size):
            raise ValueError(f"Engine input must be {self.input_size[0]}x{self.input_size[1]}, got {w}x{h}")

        # BGR -> RGB, normalize, add batch (NHWC)
        rgb = image_bgr[:, :, ::-1].astype(np.float32)
        blob = (rgb - self._mean) * self._scale
        return blob[None, ...]

    def run(self, image_bgr: np.ndarray) -> List[NormalizedBox]:
        outputs = self.backend.infer(self.preprocess(image_bgr))
        return self.post.process(outputs, input_size=self.input_size)


def infer_backend_name(model_path: Path) -> str:
    suffix = model_path.suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix == ".xmodel":
        return "vart"
    raise ModelLoadError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_engine(
    cfg: ModelConfig,
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    onnx_providers: Optional[Sequence[str]] = None,
) -> YoloV3Engine:
    """
    Create an engine for a compiled model on disk.

    Args:
        cfg: parsed model configuration
        model_path: `.onnx` or `.xmodel` file
        backend: "onnxruntime" / "vart", or None to infer from the extension
    """

    resolved = Path(model_path)
    chosen = (backend or infer_backend_name(resolved)).lower()

    try:
        if chosen == "onnxruntime":
            from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

            tensor_backend = OnnxRuntimeBackend(resolved, OnnxRuntimeBackendConfig(providers=onnx_providers))
            logger.info("ONNX Runtime session providers: %s", tensor_backend.providers_in_use)
        elif chosen == "vart":
            from .backends.vart_backend import VartBackend

            tensor_backend = VartBackend(resolved)
        else:
            raise ModelLoadError(f"Unsupported backend: {backend!r}")
    except ImportError as e:
        raise ModelLoadError(str(e)) from e

    logger.info("Loaded %s with %s backend, input size %sx%s", resolved, chosen, *tensor_backend.input_size)
    return YoloV3Engine(tensor_backend, cfg)
