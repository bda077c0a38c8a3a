from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import numpy as np

from ..errors import ModelLoadError


PathLike = Union[str, Path]


@dataclass(frozen=True)
class VartBackendConfig:
    """
    Configuration for Vitis AI runtime (VART) inference on a DPU.

    - subgraph_index: which DPU subgraph of the compiled .xmodel to run
    """

    subgraph_index: int = 0


class VartBackend:
    """
    Runs a compiled `.xmodel` on the DPU through VART.

    Tensors on the DPU are int8 in NHWC with a per-tensor fix point, so the
    float input blob is quantized by `2 ** fix_point` and outputs are
    dequantized by `2 ** -fix_point` before they are returned.
    """

    def __init__(self, model_path: PathLike, cfg: VartBackendConfig = VartBackendConfig()):
        try:
            import vart  # type: ignore
            import xir  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "vart and xir are required for the DPU backend. They ship with the Vitis AI runtime image."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelLoadError(f"Model file not found: {self.model_path}")

        try:
            graph = xir.Graph.deserialize(str(self.model_path))
        except Exception as e:
            raise ModelLoadError(f"Could not deserialize xmodel {self.model_path}: {e}") from e

        try:
            self._open_runner(vart, graph, cfg.subgraph_index)
        except ModelLoadError:
            raise
        except Exception as e:
            raise ModelLoadError(f"Could not create a DPU runner for {self.model_path}: {e}") from e

    def _open_runner(self, vart, graph, subgraph_index: int) -> None:
        subgraphs = graph.get_root_subgraph().toposort_child_subgraph()
        dpu_subgraphs = [s for s in subgraphs if s.has_attr("device") and s.get_attr("device").upper() == "DPU"]
        if subgraph_index < 0 or subgraph_index >= len(dpu_subgraphs):
            raise ModelLoadError(f"subgraph_index {subgraph_index} out of range (DPU subgraphs={len(dpu_subgraphs)}).")

        # The runner borrows the graph; keep it alive as long as the runner.
        self._graph = graph
        self.runner = vart.Runner.create_runner(dpu_subgraphs[subgraph_index], "run")

        input_tensor = self.runner.get_input_tensors()[0]
        self.input_dims = tuple(int(d) for d in input_tensor.dims)
        if len(self.input_dims) != 4 or self.input_dims[3] != 3:
            raise ModelLoadError(f"Expected an NHWC 3-channel DPU input, got dims {self.input_dims}")
        self.input_size = (self.input_dims[2], self.input_dims[1])
        self.input_scale = 2.0 ** input_tensor.get_attr("fix_point")

        self.output_tensors = list(self.runner.get_output_tensors())
        self.output_shapes = [tuple(int(d) for d in t.dims) for t in self.output_tensors]
        self.output_scales = [2.0 ** (-t.get_attr("fix_point")) for t in self.output_tensors]

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        quantized = np.clip(np.round(blob * self.input_scale), -128, 127).astype(np.int8)
        input_data = [np.empty(self.input_dims, dtype=np.int8, order="C")]
        input_data[0][...] = quantized.reshape(self.input_dims)
        output_data = [np.empty(tuple(t.dims), dtype=np.int8, order="C") for t in self.output_tensors]

        job_id = self.runner.execute_async(input_data, output_data)
        self.runner.wait(job_id)

        return [out.astype(np.float32) * scale for out, scale in zip(output_data, self.output_scales)]
