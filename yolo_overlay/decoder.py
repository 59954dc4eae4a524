from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .nms import suppress
from .outputs import DirectOutput, GridOutput, ModelOutput, UnsupportedOutput, classify_output
from .types import UNKNOWN_LABEL, Detection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecoderConfig:
    """
    Configuration for decoding raw model output.

    - conf_threshold: applied to objectness first, then to objectness * class score
    - pixel_coordinates: set True for exports that emit boxes in input pixels;
      they are divided by the input size to get normalized coordinates
    """

    conf_threshold: float = 0.25
    pixel_coordinates: bool = False


class OutputDecoder:
    """
    Turns a raw output tensor into NMS-filtered `Detection`s.

    Supported layouts (single frame):
    - (1, N, 5 + C): [cx, cy, w, h, obj, class_scores...]
    - (1, boxes, classes, values): recognized grid layout, not decoded

    Anything else decodes to an empty list.
    """

    def __init__(
        self,
        labels: Sequence[str],
        input_size: Tuple[int, int],
        cfg: DecoderConfig = DecoderConfig(),
    ):
        self.labels = tuple(labels)
        self.input_width, self.input_height = (int(input_size[0]), int(input_size[1]))
        self.cfg = cfg

    def decode(self, raw: object) -> List[Detection]:
        return self.decode_output(classify_output(raw))

    def decode_output(self, output: ModelOutput) -> List[Detection]:
        if isinstance(output, DirectOutput):
            return suppress(self._decode_direct(output))
        if isinstance(output, GridOutput):
            logger.debug(
                "Grid output %s detected; this layout needs model-specific decoding and yields no detections.",
                tuple(output.tensor.shape),
            )
            return []
        logger.debug("Skipping output %s: %s", output.shape, output.reason)
        return []

    def label_for(self, class_id: int) -> str:
        if 0 <= class_id < len(self.labels):
            return self.labels[class_id]
        return UNKNOWN_LABEL

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _decode_direct(self, output: DirectOutput) -> List[Detection]:
        rows = output.rows
        if output.num_classes == 0 or rows.shape[0] == 0:
            return []

        threshold = self.cfg.conf_threshold

        # Cheap reject on objectness before scanning class scores.
        rows = rows[rows[:, 4] >= threshold]
        if rows.shape[0] == 0:
            return []

        class_scores = rows[:, 5:]
        # np.argmax returns the first index on ties.
        class_ids = np.argmax(class_scores, axis=1)
        class_conf = class_scores[np.arange(class_scores.shape[0]), class_ids]
        scores = rows[:, 4] * class_conf

        keep = scores >= threshold
        rows, scores, class_ids = rows[keep], scores[keep], class_ids[keep]

        boxes = rows[:, :4].astype(np.float64)
        boxes[:, 2:4] = np.maximum(boxes[:, 2:4], 0.0)
        if self.cfg.pixel_coordinates:
            boxes[:, [0, 2]] /= float(self.input_width)
            boxes[:, [1, 3]] /= float(self.input_height)

        detections = []
        for (cx, cy, w, h), score, cls_id in zip(boxes, scores, class_ids):
            cls_id = int(cls_id)
            detections.append(
                Detection(
                    x=float(cx),
                    y=float(cy),
                    width=float(w),
                    height=float(h),
                    confidence=float(score),
                    class_id=cls_id,
                    class_name=self.label_for(cls_id),
                )
            )
        return detections


def decode(
    raw: object,
    input_width: int,
    input_height: int,
    labels: Sequence[str],
    confidence_threshold: float = 0.25,
) -> List[Detection]:
    decoder = OutputDecoder(labels, (input_width, input_height), DecoderConfig(conf_threshold=confidence_threshold))
    return decoder.decode(raw)
