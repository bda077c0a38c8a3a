"""
Tensor backends for yolo_runner.

Each backend lives in its own module and imports its runtime lazily, so the
pure-Python parts (clipping, records, decode) stay usable without an
inference runtime installed.
"""

from __future__ import annotations

__all__ = []
