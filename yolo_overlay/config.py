from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple


_BACKENDS = ("onnxruntime", "litert", "torchscript")


@dataclass(frozen=True)
class OverlayConfig:
    model: str
    labels: str
    backend: Optional[str] = None
    conf_threshold: float = 0.25
    num_threads: int = 4
    onnx_providers: Optional[Tuple[str, ...]] = None
    pixel_coordinates: bool = False
    input_size: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.model.strip():
            raise ValueError("model must be a non-empty string")
        if not self.labels.strip():
            raise ValueError("labels must be a non-empty string")
        if self.backend is not None and self.backend not in _BACKENDS:
            raise ValueError(f"backend must be one of {list(_BACKENDS)}")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")
        if self.input_size is not None and self.input_size < 32:
            raise ValueError("input_size must be >= 32")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"log_level must be a logging level name, got {self.log_level!r}")


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = payload.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_bool(payload: Dict[str, Any], key: str, default: bool) -> bool:
    value = payload.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _coerce_providers(value: object) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [p for p in value.split(",")]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        cleaned = tuple(item.strip() for item in value if item.strip())
        if not cleaned:
            raise ValueError("onnx_providers must not be empty")
        return cleaned
    raise ValueError("onnx_providers must be a string or list of strings")


def load_overlay_config(path: Path) -> OverlayConfig:
    if not path.exists():
        raise FileNotFoundError(f"Overlay config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid overlay config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Overlay config must be a JSON object")

    allowed = {f.name for f in fields(OverlayConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown overlay config keys: {unknown}")

    backend = payload.get("backend")
    if backend is not None and not isinstance(backend, str):
        raise ValueError("backend must be a string")
    log_level = payload.get("log_level", "INFO")
    if not isinstance(log_level, str):
        raise ValueError("log_level must be a string")

    return OverlayConfig(
        model=_require_str(payload, "model"),
        labels=_require_str(payload, "labels"),
        backend=backend,
        conf_threshold=_optional_number(payload, "conf_threshold", 0.25),
        num_threads=_optional_int(payload, "num_threads", 4),
        onnx_providers=_coerce_providers(payload.get("onnx_providers")),
        pixel_coordinates=_optional_bool(payload, "pixel_coordinates", False),
        input_size=_optional_int(payload, "input_size", None),
        log_level=log_level,
    )


def collect_cli_dests(parser: argparse.ArgumentParser, argv: Sequence[str]) -> set[str]:
    dests: set[str] = set()
    for opt, action in parser._option_string_actions.items():
        for arg in argv:
            if arg == opt or arg.startswith(f"{opt}="):
                dests.add(action.dest)
                break
    return dests


# argparse dest -> OverlayConfig field
_CLI_FIELDS = {
    "model": "model",
    "labels": "labels",
    "backend": "backend",
    "conf": "conf_threshold",
    "threads": "num_threads",
    "onnx_providers": "onnx_providers",
    "pixel_coordinates": "pixel_coordinates",
    "imgsz": "input_size",
    "log_level": "log_level",
}


def merge_cli_overrides(cfg: OverlayConfig, args: argparse.Namespace, cli_dests: set[str]) -> OverlayConfig:
    """
    Return `cfg` with the options the user passed explicitly on the command line applied on top.
    """

    updates: Dict[str, Any] = {}
    for dest, field_name in _CLI_FIELDS.items():
        if dest not in cli_dests:
            continue
        value = getattr(args, dest)
        if field_name == "onnx_providers":
            value = _coerce_providers(value)
        updates[field_name] = value
    if not updates:
        return cfg
    return replace(cfg, **updates)
