from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from .config import load_model_config
from .engine import InferenceEngine, load_engine
from .errors import InvalidImageError
from .types import Detection


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def read_image(path: PathLike) -> np.ndarray:
    img = cv2.imread(str(path))
    if img is None:
        raise InvalidImageError(f"Could not read image at path: {path}")
    return img


class YoloRunner:
    """
    Detector adapter: resize -> one engine pass -> pixel-space detections.

    The runner owns its engine exclusively and runs one inference at a time.
    Images are stretched to the model input size (no letterbox), so normalized
    engine boxes map straight back onto the original image.
    """

    def __init__(self, engine: InferenceEngine):
        self._engine = engine

    @property
    def model_input_size(self) -> Tuple[int, int]:
        return tuple(self._engine.input_size)

    def preprocess(self, image_bgr: np.ndarray) -> np.ndarray:
        if image_bgr is None or not isinstance(image_bgr, np.ndarray):
            raise InvalidImageError("image_bgr must be a NumPy array (BGR).")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise InvalidImageError(f"Expected image shape (H, W, 3), got {image_bgr.shape}")
        if image_bgr.shape[0] == 0 or image_bgr.shape[1] == 0:
            raise InvalidImageError("Image is empty.")
        return cv2.resize(image_bgr, self.model_input_size)

    def detect(self, image_bgr: np.ndarray) -> List[Detection]:
        resized = self.preprocess(image_bgr)
        img_h, img_w = image_bgr.shape[:2]
        boxes = self._engine.run(resized)
        logger.debug("Engine returned %d boxes", len(boxes))
        return [Detection.from_normalized(box, img_w, img_h) for box in boxes]


def load_runner(
    config_path: PathLike,
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    onnx_providers: Optional[Sequence[str]] = None,
) -> YoloRunner:
    """
    Parse the model config and load the compiled model.

    Raises ConfigParseError or ModelLoadError; nothing is kept on failure.
    """

    cfg = load_model_config(config_path)
    logger.info("Parsed model config %r from %s", cfg.name, config_path)
    engine = load_engine(cfg, model_path, backend=backend, onnx_providers=onnx_providers)
    return YoloRunner(engine)
