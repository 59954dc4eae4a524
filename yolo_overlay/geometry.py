from typing import Tuple

from .types import Detection


Box = Tuple[float, float, float, float]


def cxcywh_to_xyxy(box: Box) -> Box:
    cx, cy, w, h = box
    half_w = w / 2
    half_h = h / 2
    return cx - half_w, cy - half_h, cx + half_w, cy + half_h


def intersection_over_union(a: Box, b: Box) -> float:
    """
    IoU of two axis-aligned boxes given as (center_x, center_y, width, height).

    Returns exactly 0.0 when the boxes do not overlap or when the union has no
    area (zero-size boxes).
    """

    ax1, ay1, ax2, ay2 = cxcywh_to_xyxy(a)
    bx1, by1, bx2, by2 = cxcywh_to_xyxy(b)

    x_min = max(ax1, bx1)
    y_min = max(ay1, by1)
    x_max = min(ax2, bx2)
    y_max = min(ay2, by2)

    if x_min >= x_max or y_min >= y_max:
        return 0.0

    intersection = (x_max - x_min) * (y_max - y_min)
    area_a = a[2] * a[3]
    area_b = b[2] * b[3]
    union = area_a + area_b - intersection
    if union <= 0:
        return 0.0
    return float(min(intersection / union, 1.0))


def detection_iou(a: Detection, b: Detection) -> float:
    return intersection_over_union(a.as_cxcywh(), b.as_cxcywh())
