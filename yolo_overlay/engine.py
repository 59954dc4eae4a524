"""
Inference engine interface.

The pipeline only needs three things from an engine: the tensor shapes it
declares, a synchronous `infer(blob) -> ndarray`, and `close()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence, Tuple

import numpy as np


def _as_dim(value: object) -> int:
    # ONNX exports report dynamic axes as strings or None.
    if isinstance(value, (int, np.integer)) and int(value) > 0:
        return int(value)
    return -1


@dataclass(frozen=True)
class ModelMetadata:
    input_shape: Tuple[int, ...]
    output_shape: Tuple[int, ...]
    input_layout: str = "nhwc"

    def __post_init__(self) -> None:
        if self.input_layout not in ("nhwc", "nchw"):
            raise ValueError(f"input_layout must be 'nhwc' or 'nchw', got {self.input_layout!r}")

    @classmethod
    def from_shapes(
        cls,
        input_shape: Sequence[object],
        output_shape: Sequence[object],
        input_layout: Optional[str] = None,
    ) -> "ModelMetadata":
        in_shape = tuple(_as_dim(d) for d in input_shape)
        out_shape = tuple(_as_dim(d) for d in output_shape)
        if input_layout is None:
            # (1, 3, H, W) -> channels first, (1, H, W, 3) -> channels last
            channels_first = len(in_shape) == 4 and in_shape[1] in (1, 3) and in_shape[3] not in (1, 3)
            input_layout = "nchw" if channels_first else "nhwc"
        return cls(input_shape=in_shape, output_shape=out_shape, input_layout=input_layout)

    @property
    def input_height(self) -> int:
        if len(self.input_shape) != 4:
            return -1
        return self.input_shape[2] if self.input_layout == "nchw" else self.input_shape[1]

    @property
    def input_width(self) -> int:
        if len(self.input_shape) != 4:
            return -1
        return self.input_shape[3] if self.input_layout == "nchw" else self.input_shape[2]

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.input_width, self.input_height

    @property
    def output_rank(self) -> int:
        return len(self.output_shape)

    def with_input_size(self, width: int, height: int) -> "ModelMetadata":
        """Fill in the spatial axes, used for models exported with dynamic input size."""

        if self.input_layout == "nchw":
            shape = (1, 3, int(height), int(width))
        else:
            shape = (1, int(height), int(width), 3)
        return ModelMetadata(input_shape=shape, output_shape=self.output_shape, input_layout=self.input_layout)


class InferenceEngine(Protocol):
    metadata: ModelMetadata

    def infer(self, blob: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...


class CallableEngine:
    """
    Adapts a plain `infer_fn(blob) -> ndarray` to the engine interface.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        metadata: ModelMetadata,
        close_fn: Optional[Callable[[], None]] = None,
    ):
        self._infer_fn = infer_fn
        self._close_fn = close_fn
        self.metadata = metadata

    def infer(self, blob: np.ndarray) -> np.ndarray:
        return self._infer_fn(blob)

    def close(self) -> None:
        if self._close_fn is not None:
            self._close_fn()
