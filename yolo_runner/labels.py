from __future__ import annotations

from pathlib import Path
from typing import Dict, Sequence, Tuple, Union

from .errors import ConfigParseError, LabelIndexError


PathLike = Union[str, Path]

# Darknet naming of the 80 COCO categories, indexed by class id.
COCO_LABELS: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorbike", "aeroplane", "bus", "train", "truck",
    "boat", "traffic light", "fire hydrant", "stop sign", "parking meter", "bench",
    "bird", "cat", "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra",
    "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove",
    "skateboard", "surfboard", "tennis racket", "bottle", "wine glass", "cup",
    "fork", "knife", "spoon", "bowl", "banana", "apple", "sandwich", "orange",
    "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "sofa",
    "pottedplant", "bed", "diningtable", "toilet", "tvmonitor", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
    "refrigerator", "book", "clock", "vase", "scissors", "teddy bear", "hair drier",
    "toothbrush",
)


def label_name(table: Sequence[str], label: int) -> str:
    if not 0 <= label < len(table):
        raise LabelIndexError(f"Class id {label} out of range for a table of {len(table)} labels")
    return table[label]


def load_label_table(metadata_path: PathLike) -> Tuple[str, ...]:
    """
    Load a label table from a lightweight `metadata.yaml` file:

        names:
          0: person
          1: bicycle
          ...

    Ids must run contiguously from 0. Parsed by hand to avoid a PyYAML
    dependency for a single flat mapping.
    """

    path = Path(metadata_path)
    if not path.exists():
        raise ConfigParseError(f"Label file not found: {path}")

    names: Dict[int, str] = {}
    in_names = False

    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue

            # Parse "id: label"
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    if not names:
        raise ConfigParseError(f"No labels found under 'names:' in {path}")
    expected = list(range(len(names)))
    if sorted(names) != expected:
        raise ConfigParseError(f"Label ids in {path} must be contiguous from 0")
    return tuple(names[i] for i in expected)
