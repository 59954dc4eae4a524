"""
Tagged variants for the raw output layouts a detection model may emit.

- `DirectOutput`: rank 3, (1, N, 5 + C) rows of [cx, cy, w, h, obj, class_scores...]
- `GridOutput`: rank 4, (1, boxes, classes, values), legacy grid export
- `UnsupportedOutput`: anything else
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np


@dataclass(frozen=True)
class DirectOutput:
    rows: np.ndarray  # (N, 5 + C)

    @property
    def num_classes(self) -> int:
        return max(int(self.rows.shape[1]) - 5, 0)


@dataclass(frozen=True)
class GridOutput:
    tensor: np.ndarray  # (1, boxes, classes, values)


@dataclass(frozen=True)
class UnsupportedOutput:
    shape: Tuple[int, ...]
    reason: str


ModelOutput = Union[DirectOutput, GridOutput, UnsupportedOutput]


def classify_output(raw: object) -> ModelOutput:
    p = np.asarray(raw)
    shape = tuple(int(s) for s in p.shape)

    if not np.issubdtype(p.dtype, np.number):
        return UnsupportedOutput(shape, f"dtype {p.dtype} is not numeric")

    if p.ndim == 3:
        if shape[0] != 1:
            return UnsupportedOutput(shape, f"batch size {shape[0]} is not supported, pass one frame at a time")
        if shape[2] < 5:
            return UnsupportedOutput(shape, "rows must hold at least [x, y, w, h, objectness]")
        return DirectOutput(rows=p[0])

    if p.ndim == 4:
        return GridOutput(tensor=p)

    return UnsupportedOutput(shape, f"rank {p.ndim} output is not a known detection layout")
