from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: int = 300


def box_iou(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """
    IoU of one xyxy box against an (N, 4) array of xyxy boxes.
    """

    top_left = np.maximum(box[:2], others[:, :2])
    bottom_right = np.minimum(box[2:], others[:, 2:])
    inter = np.prod(np.clip(bottom_right - top_left, 0.0, None), axis=1)

    area = np.prod(np.clip(box[2:] - box[:2], 0.0, None))
    other_areas = np.prod(np.clip(others[:, 2:] - others[:, :2], 0.0, None), axis=1)
    return inter / np.maximum(area + other_areas - inter, 1e-12)


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    cfg: NMSConfig,
    class_ids: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Greedy NMS over (N, 4) xyxy boxes. Returns kept indices, highest score
    first, capped at `cfg.max_detections`.

    With `class_ids`, boxes only suppress boxes of the same class: each class
    is shifted to its own region of the plane so that boxes of different
    classes never overlap, and a single greedy pass does the rest.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    work = np.asarray(boxes, dtype=np.float64)
    if class_ids is not None:
        span = float(work.max() - min(work.min(), 0.0)) + 1.0
        work = work + (np.asarray(class_ids, dtype=np.float64) * span)[:, None]

    order = np.argsort(-np.asarray(scores), kind="stable")
    keep = []
    while order.size > 0 and len(keep) < cfg.max_detections:
        best, rest = order[0], order[1:]
        keep.append(best)
        order = rest[box_iou(work[best], work[rest]) <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)
