"""
Optional inference engines for yolo_overlay.

Engines are kept in a separate module so core functionality (decoding, NMS)
stays lightweight and can be used without installing inference runtimes.
"""

from __future__ import annotations

__all__ = []
