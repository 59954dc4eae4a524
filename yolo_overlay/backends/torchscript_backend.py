from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from ..engine import ModelMetadata


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - input_size: (width, height) of the exported model; TorchScript does not record it
    - num_threads: torch intra-op threads, 0 keeps the torch default
    - output_index: if the model returns multiple outputs, select this index
    """

    device: str = "cpu"
    input_size: Tuple[int, int] = (640, 640)
    num_threads: int = 0
    output_index: int = 0


class TorchScriptBackend:
    """
    Minimal TorchScript engine using `torch.jit.load`.

    The output shape is discovered with one warm-up forward pass on a zero blob.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        if cfg.num_threads > 0:
            torch.set_num_threads(int(cfg.num_threads))

        self.device = torch.device(cfg.device)
        self.output_index = cfg.output_index

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model

        width, height = cfg.input_size
        input_shape = (1, 3, int(height), int(width))
        warmup = self.infer(np.zeros(input_shape, dtype=np.float32))
        self.metadata = ModelMetadata.from_shapes(input_shape, warmup.shape, input_layout="nchw")

    def infer(self, blob: np.ndarray) -> np.ndarray:
        torch = self._torch
        x = torch.as_tensor(blob, device=self.device).float().contiguous()

        with torch.no_grad():
            y = self.model(x)

        if isinstance(y, (tuple, list)):
            y = y[self.output_index]

        if hasattr(y, "detach"):
            y = y.detach()
        return y.to("cpu").numpy()

    def close(self) -> None:
        self.model = None
