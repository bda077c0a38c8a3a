from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class NormalizedBox:
    """
    Engine-native detection. Box fields are fractions of the input image
    (top-left origin), independent of the actual resolution.
    """

    label: int
    score: float
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Detection:
    """
    One detected object in pixel coordinates of the original image.

    Coordinates are NOT clamped to the image; see `annotate.clip_to_image`.
    """

    label: int
    score: float
    x_min: float
    y_min: float
    width: float
    height: float

    @classmethod
    def from_normalized(cls, box: NormalizedBox, img_width: float, img_height: float) -> "Detection":
        return cls(
            label=int(box.label),
            score=float(box.score),
            x_min=box.x * img_width,
            y_min=box.y * img_height,
            width=box.width * img_width,
            height=box.height * img_height,
        )

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x_min, self.y_min, self.width, self.height
