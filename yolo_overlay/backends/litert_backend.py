from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np

from ..engine import ModelMetadata


PathLike = Union[str, Path]


@dataclass(frozen=True)
class LiteRTBackendConfig:
    """
    Configuration for LiteRT (TensorFlow Lite) inference.

    - num_threads: interpreter CPU threads
    """

    num_threads: int = 4


class LiteRTBackend:
    """
    Minimal LiteRT interpreter engine for `.tflite` models.

    Expects an NHWC float32 blob shaped (1, H, W, 3). The output buffer is
    allocated once from the declared output shape and refilled on every call;
    `infer` returns a copy so callers may keep results across frames.
    """

    def __init__(self, model_path: PathLike, cfg: LiteRTBackendConfig = LiteRTBackendConfig()):
        try:
            from ai_edge_litert.interpreter import Interpreter  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "ai-edge-litert is required for the LiteRT backend. Install with `pip install ai-edge-litert`."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.interpreter = Interpreter(model_path=str(self.model_path), num_threads=int(cfg.num_threads))
        self.interpreter.allocate_tensors()

        self._input = self.interpreter.get_input_details()[0]
        self._output = self.interpreter.get_output_details()[0]

        self.metadata = ModelMetadata.from_shapes(
            [int(d) for d in self._input["shape"]],
            [int(d) for d in self._output["shape"]],
            input_layout="nhwc",
        )
        self._output_buffer = np.empty(tuple(int(d) for d in self._output["shape"]), dtype=np.float32)

    def infer(self, blob: np.ndarray) -> np.ndarray:
        x = np.ascontiguousarray(blob, dtype=self._input["dtype"])
        self.interpreter.set_tensor(self._input["index"], x)
        self.interpreter.invoke()
        np.copyto(self._output_buffer, self.interpreter.get_tensor(self._output["index"]), casting="unsafe")
        return self._output_buffer.copy()

    def close(self) -> None:
        self.interpreter = None
