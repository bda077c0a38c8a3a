from __future__ import annotations

from typing import Dict, Optional, Tuple

import cv2
import numpy as np

from .types import Detection


BOX_COLOR = (0, 255, 0)  # BGR
BOX_THICKNESS = 3

Box = Tuple[float, float, float, float]


def clip_to_image(det: Detection, image_width: float, image_height: float) -> Box:
    """
    Clamp a raw detection to the drawable area.

    Returns (xmin, ymin, xmax, ymax); the far edges are limited to
    `dimension - 1`.
    """

    xmin = max(0.0, det.x_min)
    ymin = max(0.0, det.y_min)
    xmax = min(det.x_min + det.width, image_width - 1.0)
    ymax = min(det.y_min + det.height, image_height - 1.0)
    return xmin, ymin, xmax, ymax


def render(image_bgr: np.ndarray, clipped_box: Box, label_text: Optional[str] = None) -> np.ndarray:
    """
    Draw a box (and optional label) on `image_bgr` in place and return it.
    """

    xmin, ymin, xmax, ymax = clipped_box
    p1 = (int(xmin), int(ymin))
    p2 = (int(xmax), int(ymax))
    cv2.rectangle(image_bgr, p1, p2, BOX_COLOR, thickness=BOX_THICKNESS)

    if label_text:
        (_, th), baseline = cv2.getTextSize(label_text, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        # Above the box if there is room, else just inside it.
        y_text = p1[1] - baseline if p1[1] - th - baseline >= 0 else p1[1] + th
        cv2.putText(
            image_bgr,
            label_text,
            (p1[0], y_text),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            BOX_COLOR,
            thickness=1,
            lineType=cv2.LINE_AA,
        )
    return image_bgr


def to_record(det: Detection, frame_id: int) -> Dict[str, str]:
    """
    Flat string record for log/metrics emission. Uses the raw, unclamped
    detection geometry.
    """

    return {
        "frame_id": str(int(frame_id)),
        "prob": f"{det.score:f}",
        "x": f"{det.x_min:f}",
        "y": f"{det.y_min:f}",
        "width": f"{det.width:f}",
        "height": f"{det.height:f}",
    }


def format_detection_line(name: str, score: float, clipped_box: Box) -> str:
    xmin, ymin, xmax, ymax = clipped_box
    return f"{name} {score:g} {xmin:g} {xmax:g} {ymin:g} {ymax:g}"
