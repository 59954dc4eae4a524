"""
Real-time object-detection overlay helpers.

The core turns a raw detection-model output tensor into a de-duplicated list of
labeled boxes (score thresholding, per-class NMS). Inference engines, frame
preprocessing and rendering sit around it behind small interfaces. Only NumPy
is required for the core; OpenCV is needed for preprocessing and drawing.
"""

from .types import UNKNOWN_LABEL, Detection
from .geometry import cxcywh_to_xyxy, detection_iou, intersection_over_union
from .nms import IOU_THRESHOLD, suppress
from .outputs import DirectOutput, GridOutput, UnsupportedOutput, classify_output
from .decoder import DecoderConfig, OutputDecoder, decode
from .engine import CallableEngine, InferenceEngine, ModelMetadata
from .errors import InferenceFailure, InitializationFailure, OverlayError, UnsupportedOutputShape
from .labels import load_labels
from .pipeline import DetectionPipeline, find_project_root, infer_backend, load_pipeline, resolve_path
from .preprocess import prepare_input, rotate_upright
from .frames import FpsCounter, LatestFrameWorker
from .visualize import draw_detections, draw_status
from .config import OverlayConfig, load_overlay_config
from .logs import setup_logging

__all__ = [
    "UNKNOWN_LABEL",
    "Detection",
    "cxcywh_to_xyxy",
    "detection_iou",
    "intersection_over_union",
    "IOU_THRESHOLD",
    "suppress",
    "DirectOutput",
    "GridOutput",
    "UnsupportedOutput",
    "classify_output",
    "DecoderConfig",
    "OutputDecoder",
    "decode",
    "CallableEngine",
    "InferenceEngine",
    "ModelMetadata",
    "InferenceFailure",
    "InitializationFailure",
    "OverlayError",
    "UnsupportedOutputShape",
    "load_labels",
    "DetectionPipeline",
    "find_project_root",
    "infer_backend",
    "load_pipeline",
    "resolve_path",
    "prepare_input",
    "rotate_upright",
    "FpsCounter",
    "LatestFrameWorker",
    "draw_detections",
    "draw_status",
    "OverlayConfig",
    "load_overlay_config",
    "setup_logging",
]
