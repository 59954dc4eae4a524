"""
Error kinds raised by the detection pipeline.

Only `InitializationFailure` ever reaches callers of the pipeline; per-frame
errors are absorbed by `DetectionPipeline.run`.
"""


class OverlayError(Exception):
    """Base class for yolo_overlay errors."""


class InitializationFailure(OverlayError):
    """
    Model, engine or label resources are missing or corrupt.

    Fatal for the pipeline instance: callers must not proceed to `run`.
    """


class InferenceFailure(OverlayError):
    """The inference engine failed on a single frame."""


class UnsupportedOutputShape(OverlayError):
    """The engine returned a tensor whose layout cannot be decoded."""

    def __init__(self, shape, reason: str = ""):
        self.shape = tuple(shape)
        self.reason = reason
        message = f"Unsupported output shape {self.shape}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
