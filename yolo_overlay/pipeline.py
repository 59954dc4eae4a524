from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .decoder import DecoderConfig, OutputDecoder
from .engine import InferenceEngine, ModelMetadata
from .errors import InferenceFailure, InitializationFailure, UnsupportedOutputShape
from .labels import load_labels
from .outputs import UnsupportedOutput, classify_output
from .types import Detection


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Useful when models and label files live next to the project, e.g. `A/models`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, else the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class DetectionPipeline:
    """
    Inference -> output classification -> decode -> NMS, one frame at a time.

    `run` never raises: a frame whose inference fails, or whose output layout
    cannot be decoded, yields an empty list. The instance is not reentrant;
    call it from a single worker.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        labels: Sequence[str],
        *,
        decoder_cfg: DecoderConfig = DecoderConfig(),
        backend_name: Optional[str] = None,
    ):
        self._engine = engine
        self.backend_name = backend_name
        self.metadata = engine.metadata
        self.labels: Tuple[str, ...] = tuple(labels)
        self.input_width, self.input_height = self.metadata.input_size
        self.decoder = OutputDecoder(self.labels, (self.input_width, self.input_height), decoder_cfg)
        self._closed = False

    @classmethod
    def initialize(
        cls,
        engine: InferenceEngine,
        labels: Sequence[str],
        *,
        decoder_cfg: DecoderConfig = DecoderConfig(),
        backend_name: Optional[str] = None,
    ) -> "DetectionPipeline":
        metadata = getattr(engine, "metadata", None)
        if metadata is None:
            raise InitializationFailure("Inference engine does not expose model metadata.")
        if not labels:
            raise InitializationFailure("Label table is empty.")
        width, height = metadata.input_size
        if width <= 0 or height <= 0:
            raise InitializationFailure(
                f"Model input size could not be determined from input shape {metadata.input_shape}; "
                "pass an explicit input size."
            )
        if metadata.output_rank not in (3, 4):
            logger.warning(
                "Model declares output shape %s; only rank-3 outputs are decoded.", metadata.output_shape
            )

        logger.info("Model input shape: %s (%s)", metadata.input_shape, metadata.input_layout)
        logger.info("Model output shape: %s", metadata.output_shape)
        logger.info("Using input dimensions: %dx%d", width, height)
        logger.info("Loaded %d classes", len(labels))

        return cls(engine, labels, decoder_cfg=decoder_cfg, backend_name=backend_name)

    @property
    def closed(self) -> bool:
        return self._closed

    def run(self, input_tensor: np.ndarray) -> List[Detection]:
        if self._closed:
            logger.error("run() called after shutdown(); returning no detections.")
            return []

        try:
            raw = self._infer(input_tensor)
            output = classify_output(raw)
            if isinstance(output, UnsupportedOutput):
                raise UnsupportedOutputShape(output.shape, output.reason)
        except InferenceFailure as exc:
            logger.warning("Inference failed, dropping frame: %s", exc.__cause__ or exc)
            return []
        except UnsupportedOutputShape as exc:
            logger.warning("%s; dropping frame.", exc)
            return []

        detections = self.decoder.decode_output(output)
        logger.debug("Found %d detections", len(detections))
        return detections

    def __call__(self, input_tensor: np.ndarray) -> List[Detection]:
        return self.run(input_tensor)

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._engine.close()
        logger.info("Pipeline shut down, engine resources released.")

    def __enter__(self) -> "DetectionPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _infer(self, input_tensor: np.ndarray) -> np.ndarray:
        try:
            raw = self._engine.infer(input_tensor)
            if raw is None:
                raise InferenceFailure("engine returned no output")
            return np.asarray(raw)
        except InferenceFailure:
            raise
        except Exception as exc:
            raise InferenceFailure(f"{type(exc).__name__}: {exc}") from exc


def _create_engine(
    model_path: Path,
    backend: str,
    *,
    num_threads: int,
    onnx_providers: Optional[Sequence[str]],
    torch_device: str,
    torch_output_index: int,
    input_size: Optional[Tuple[int, int]],
) -> InferenceEngine:
    if backend == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(
            model_path,
            OnnxRuntimeBackendConfig(providers=onnx_providers, num_threads=num_threads),
        )

    if backend == "litert":
        from .backends.litert_backend import LiteRTBackend, LiteRTBackendConfig

        return LiteRTBackend(model_path, LiteRTBackendConfig(num_threads=num_threads))

    if backend == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(
            model_path,
            TorchScriptBackendConfig(
                device=torch_device,
                input_size=input_size or (640, 640),
                num_threads=num_threads,
                output_index=torch_output_index,
            ),
        )

    raise ValueError(f"Unsupported backend: {backend!r}")


def _apply_input_size(metadata: ModelMetadata, input_size: Tuple[int, int]) -> ModelMetadata:
    """Fill dynamic spatial dims; declared dims always win and must agree with `input_size`."""

    width, height = (int(v) for v in input_size)
    declared_w, declared_h = metadata.input_size
    if (declared_w > 0 and declared_w != width) or (declared_h > 0 and declared_h != height):
        raise InitializationFailure(
            f"Input size {width}x{height} conflicts with the model's fixed input size "
            f"{declared_w}x{declared_h}."
        )
    if declared_w > 0 and declared_h > 0:
        return metadata
    return metadata.with_input_size(width, height)


def infer_backend(model_path: PathLike) -> str:
    suffix = Path(model_path).suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix == ".tflite":
        return "litert"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_pipeline(
    model_path: PathLike,
    labels_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    decoder_cfg: DecoderConfig = DecoderConfig(),
    num_threads: int = 4,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    torch_output_index: int = 0,
    input_size: Optional[Tuple[int, int]] = None,
) -> DetectionPipeline:
    """
    Create a ready-to-run pipeline for a model and label file on disk.

    Typical usage:
        pipe = load_pipeline("models/yolov5s.tflite", "models/classes.txt")

    Args:
        model_path: model file; relative paths resolve against the project root by default
        labels_path: plain-text label file (one per line) or `metadata.yaml`
        backend: "onnxruntime", "litert" or "torchscript"; None infers it from the extension
        torch_output_index: which output a multi-output TorchScript model returns detections on
        input_size: (width, height) for models with a dynamic input shape

    Raises:
        InitializationFailure: if the model, the runtime or the labels cannot be loaded.
    """

    resolved_model = resolve_path(model_path, root=root)
    resolved_labels = resolve_path(labels_path, root=root)

    try:
        chosen = (backend or infer_backend(resolved_model)).lower()
        labels = load_labels(resolved_labels)
        engine = _create_engine(
            resolved_model,
            chosen,
            num_threads=num_threads,
            onnx_providers=onnx_providers,
            torch_device=torch_device,
            torch_output_index=torch_output_index,
            input_size=input_size,
        )
    except (OSError, ImportError, RuntimeError, ValueError) as exc:
        raise InitializationFailure(f"Could not initialize pipeline for {resolved_model.name}: {exc}") from exc

    try:
        if input_size is not None:
            engine.metadata = _apply_input_size(engine.metadata, input_size)
        return DetectionPipeline.initialize(engine, labels, decoder_cfg=decoder_cfg, backend_name=chosen)
    except InitializationFailure:
        engine.close()
        raise
