from __future__ import annotations

import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]

# Running `pytest` from a checkout without `pip install -e .` (or with
# --import-mode=importlib) leaves the repo root off sys.path, so
# `import yolo_overlay` would fail.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))
