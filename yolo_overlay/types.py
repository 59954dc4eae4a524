from dataclasses import dataclass
from typing import Tuple


UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True)
class Detection:
    """
    One located, classified object.

    Box coordinates are center + size, normalized to [0, 1] relative to the
    model input dimensions.
    """

    x: float
    y: float
    width: float
    height: float
    confidence: float
    class_id: int
    class_name: str = UNKNOWN_LABEL

    def as_cxcywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.width / 2
        half_h = self.height / 2
        return self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[float, float, float, float]:
        x1, y1, x2, y2 = self.as_xyxy()
        return x1 * image_width, y1 * image_height, x2 * image_width, y2 * image_height
