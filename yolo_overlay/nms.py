from typing import Dict, List, Sequence

from .geometry import detection_iou
from .types import Detection


IOU_THRESHOLD = 0.45


def _group_by_class(detections: Sequence[Detection]) -> Dict[int, List[Detection]]:
    groups: Dict[int, List[Detection]] = {}
    for det in detections:
        groups.setdefault(det.class_id, []).append(det)
    return groups


def suppress(detections: Sequence[Detection]) -> List[Detection]:
    """
    Per-class greedy NMS.

    Classes are visited in order of first appearance. Inside a class, boxes are
    visited by confidence (highest first, stable on ties) and a box is dropped
    when its IoU with an already kept box of the same class exceeds
    `IOU_THRESHOLD`. The result is grouped by class, not globally sorted.
    """

    if not detections:
        return []

    kept: List[Detection] = []
    for class_detections in _group_by_class(detections).values():
        ordered = sorted(class_detections, key=lambda d: d.confidence, reverse=True)
        selected: List[Detection] = []
        for candidate in ordered:
            if any(detection_iou(candidate, other) > IOU_THRESHOLD for other in selected):
                continue
            selected.append(candidate)
        kept.extend(selected)

    return kept
