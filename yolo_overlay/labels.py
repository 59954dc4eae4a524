from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

from .types import UNKNOWN_LABEL


def _load_names_mapping(path: Path) -> List[str]:
    """
    Parse the lightweight `metadata.yaml` format exported alongside YOLO models:

        names:
          0: person
          1: bicycle
          ...

    Missing indices are filled with "Unknown".
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue

            # Parse "id: label"
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    if not names:
        return []
    return [names.get(i, UNKNOWN_LABEL) for i in range(max(names) + 1)]


def load_labels(path: Union[str, Path]) -> List[str]:
    """
    Load the label table: one class name per non-blank line, or a `names:`
    mapping for `.yaml`/`.yml` files.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Label file not found: {p}")

    if p.suffix.lower() in (".yaml", ".yml"):
        labels = _load_names_mapping(p)
    else:
        labels = [line.strip() for line in p.read_text(encoding="utf-8").splitlines() if line.strip()]

    if not labels:
        raise ValueError(f"No labels found in {p}")
    return labels
