from typing import List, Sequence, Tuple

import numpy as np

from .config import ModelConfig
from .errors import ModelLoadError
from .nms import NMSConfig, nms
from .types import NormalizedBox


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(x, -50.0, 50.0)))


class YoloV3Postprocessor:
    """
    Decode raw YOLOv3/v4 head outputs into normalized boxes.

    Supported layouts (per output layer, batch of one):
    - NHWC: (1, H, W, A * (5 + C))
    - NCHW: (1, A * (5 + C), H, W)

    Each anchor slot holds [tx, ty, tw, th, objectness, class_logits...].
    Score is sigmoid(objectness) * sigmoid(class_logit), evaluated for every
    class, so one anchor may yield boxes for several classes.
    """

    def __init__(self, cfg: ModelConfig):
        self.cfg = cfg

    def check_output_shapes(self, shapes: Sequence[Sequence[object]]) -> None:
        """
        Verify a model's output tensor shapes against the config.

        Raises ModelLoadError when the layer count or channel count cannot
        belong to this config. Symbolic (non-integer) dims are not checked.
        """

        if len(shapes) != self.cfg.num_layers:
            raise ModelLoadError(
                f"Model has {len(shapes)} output layers but config defines anchors for {self.cfg.num_layers}."
            )
        for shape in shapes:
            self._grid_dims(tuple(shape))

    def process(self, feature_maps: Sequence[np.ndarray], input_size: Tuple[int, int]) -> List[NormalizedBox]:
        """
        Args:
            feature_maps: raw output tensors for a single image
            input_size: (width, height) of the model input in pixels
        """

        maps = [np.asarray(fm, dtype=np.float32) for fm in feature_maps]
        self.check_output_shapes([fm.shape for fm in maps])
        grids = [self._to_grid(fm) for fm in maps]

        # Finest grid first, matching the order anchors are listed in.
        grids.sort(key=lambda g: g.shape[0] * g.shape[1], reverse=True)

        all_boxes: List[np.ndarray] = []
        all_scores: List[np.ndarray] = []
        all_classes: List[np.ndarray] = []
        for layer, grid in enumerate(grids):
            boxes, scores, class_ids = self._decode_layer(grid, self.cfg.anchors_for_layer(layer), input_size)
            all_boxes.append(boxes)
            all_scores.append(scores)
            all_classes.append(class_ids)

        boxes_xyxy = np.concatenate(all_boxes, axis=0)
        scores = np.concatenate(all_scores, axis=0)
        class_ids = np.concatenate(all_classes, axis=0)
        if boxes_xyxy.size == 0:
            return []

        nms_cfg = NMSConfig(iou_threshold=self.cfg.nms_threshold, max_detections=self.cfg.max_detections)
        keep = nms(boxes_xyxy, scores, nms_cfg, class_ids=class_ids)

        return [
            NormalizedBox(
                label=int(class_ids[i]),
                score=float(scores[i]),
                x=float(boxes_xyxy[i, 0]),
                y=float(boxes_xyxy[i, 1]),
                width=float(boxes_xyxy[i, 2] - boxes_xyxy[i, 0]),
                height=float(boxes_xyxy[i, 3] - boxes_xyxy[i, 1]),
            )
            for i in keep
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _grid_dims(self, shape: Tuple[object, ...]) -> Tuple[object, object, object]:
        """
        (H, W, channels) of one output layer shape, checked against the config.
        """

        if len(shape) == 4:
            if isinstance(shape[0], int) and shape[0] != 1:
                raise ModelLoadError(f"Batch > 1 is not supported (got shape {shape}).")
            shape = shape[1:]
        if len(shape) != 3:
            raise ModelLoadError(f"Unsupported YOLO output shape: {shape}")

        h, w, c = shape if self.cfg.layout == "NHWC" else (shape[1], shape[2], shape[0])
        expected = self.cfg.anchor_count * (5 + self.cfg.num_classes)
        if isinstance(c, int) and c != expected:
            raise ModelLoadError(
                f"Output layer has {c} channels, expected {self.cfg.anchor_count} * (5 + {self.cfg.num_classes})."
            )
        return h, w, c

    def _to_grid(self, fm: np.ndarray) -> np.ndarray:
        """
        Reshape one output layer to (H, W, A, 5 + C).
        """

        fm = fm.reshape(fm.shape[-3:])
        if self.cfg.layout == "NCHW":
            fm = np.transpose(fm, (1, 2, 0))
        h, w = fm.shape[:2]
        return fm.reshape(h, w, self.cfg.anchor_count, 5 + self.cfg.num_classes)

    def _decode_layer(
        self,
        grid: np.ndarray,
        anchors: Sequence[Tuple[float, float]],
        input_size: Tuple[int, int],
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        in_w, in_h = input_size
        grid_h, grid_w = grid.shape[:2]

        cols = np.arange(grid_w, dtype=np.float32)[None, :, None]
        rows = np.arange(grid_h, dtype=np.float32)[:, None, None]
        anchor_w = np.array([a[0] for a in anchors], dtype=np.float32)[None, None, :]
        anchor_h = np.array([a[1] for a in anchors], dtype=np.float32)[None, None, :]

        cx = (_sigmoid(grid[..., 0]) + cols) / grid_w
        cy = (_sigmoid(grid[..., 1]) + rows) / grid_h
        bw = np.exp(np.clip(grid[..., 2], -50.0, 50.0)) * anchor_w / in_w
        bh = np.exp(np.clip(grid[..., 3], -50.0, 50.0)) * anchor_h / in_h
        objectness = _sigmoid(grid[..., 4])
        class_scores = objectness[..., None] * _sigmoid(grid[..., 5:])

        # (H, W, A, C) -> candidate (cell, anchor, class) triples above threshold
        cand = np.nonzero(class_scores >= self.cfg.conf_threshold)
        if cand[0].size == 0:
            empty = np.empty((0,), dtype=np.float32)
            return np.empty((0, 4), dtype=np.float32), empty, np.empty((0,), dtype=np.int64)

        r, c, a, k = cand
        x1 = cx[r, c, a] - bw[r, c, a] / 2
        y1 = cy[r, c, a] - bh[r, c, a] / 2
        x2 = cx[r, c, a] + bw[r, c, a] / 2
        y2 = cy[r, c, a] + bh[r, c, a] / 2
        boxes = np.stack([x1, y1, x2, y2], axis=1)
        return boxes, class_scores[r, c, a, k], k.astype(np.int64)
