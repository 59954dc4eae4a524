from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection


# Red, green, blue, yellow, cyan, magenta, orange, purple (BGR, as OpenCV expects).
CLASS_COLORS: Tuple[Tuple[int, int, int], ...] = (
    (0, 0, 255),
    (0, 255, 0),
    (255, 0, 0),
    (0, 255, 255),
    (255, 255, 0),
    (255, 0, 255),
    (0, 128, 255),
    (255, 0, 128),
)


def color_for_class_id(class_id: int) -> Tuple[int, int, int]:
    return CLASS_COLORS[int(class_id) % len(CLASS_COLORS)]


def format_label(det: Detection, show_score: bool = True) -> str:
    if not show_score:
        return det.class_name
    return f"{det.class_name}: {int(det.confidence * 100)}%"


def _require_cv2(fn_name: str):
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError(f"OpenCV is required for {fn_name}(). Install with `pip install opencv-python`.") from e
    return cv2


def _check_image(image_bgr: np.ndarray) -> None:
    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3), the frame the model saw.
        detections: iterable of Detection with normalized center boxes.
    """

    cv2 = _require_cv2("draw_detections")
    _check_image(image_bgr)

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.to_pixels(w, h)
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        color = color_for_class_id(det.class_id)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = format_label(det, show_score=show_score)
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Place label above the box if possible, else inside.
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), (0, 0, 0), thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out


def draw_status(image_bgr: np.ndarray, detection_count: int, fps: float, *, font_scale: float = 0.6) -> np.ndarray:
    """Draw the "Detections: N | FPS: F" line in the top-left corner, in place."""

    cv2 = _require_cv2("draw_status")
    _check_image(image_bgr)

    text = f"Detections: {detection_count} | FPS: {fps:.1f}"
    cv2.putText(image_bgr, text, (16, 28), cv2.FONT_HERSHEY_SIMPLEX, font_scale, (0, 0, 0), 3, cv2.LINE_AA)
    cv2.putText(image_bgr, text, (16, 28), cv2.FONT_HERSHEY_SIMPLEX, font_scale, (255, 255, 255), 1, cv2.LINE_AA)
    return image_bgr
