from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ModelLoadError


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input if the model has several
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime tensor backend.

    Takes an NHWC float32 blob shaped (1, H, W, 3), transposes it to NCHW when
    the model asks for it, and returns every model output as a NumPy array.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelLoadError(f"Model file not found: {self.model_path}")

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        try:
            self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)
        except Exception as e:
            raise ModelLoadError(f"ONNX Runtime could not load {self.model_path}: {e}") from e

        inputs = self.session.get_inputs()
        model_input = inputs[0]
        if cfg.input_name is not None:
            matches = [i for i in inputs if i.name == cfg.input_name]
            if not matches:
                raise ModelLoadError(f"Input name {cfg.input_name!r} not found. Available: {[i.name for i in inputs]}")
            model_input = matches[0]

        self.input_name = model_input.name
        outputs = self.session.get_outputs()
        self.output_names = [o.name for o in outputs]
        self.output_shapes = [tuple(o.shape) for o in outputs]
        self.channels_first, self.input_size = self._input_geometry(model_input.shape)

    @staticmethod
    def _input_geometry(shape: Sequence[object]) -> Tuple[bool, Tuple[int, int]]:
        dims = list(shape)
        if len(dims) != 4:
            raise ModelLoadError(f"Expected a 4-D image input, got shape {dims}")
        if dims[1] == 3:
            channels_first, h, w = True, dims[2], dims[3]
        elif dims[3] == 3:
            channels_first, h, w = False, dims[1], dims[2]
        else:
            raise ModelLoadError(f"Cannot find a 3-channel axis in input shape {dims}")
        if not isinstance(h, int) or not isinstance(w, int):
            raise ModelLoadError(f"Model input size must be fixed, got shape {dims}")
        return channels_first, (int(w), int(h))

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        x = blob.astype(np.float32, copy=False)
        if self.channels_first:
            x = np.ascontiguousarray(np.transpose(x, (0, 3, 1, 2)))
        return list(self.session.run(self.output_names, {self.input_name: x}))
