"""
===============================================================================
CRC CARD — infrastructure/queue/import_utils.py
===============================================================================

Responsibilities:
    - Check that a dotted path ("module.attr") resolves to a callable, so a
      broken job path fails at startup rather than inside the worker.

Collaborators:
    - rq_queue.RQSweepQueue
    - importlib
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache
from importlib import import_module


@lru_cache(maxsize=128)
def is_importable_dotted_path(dotted_path: str) -> bool:
    """True when dotted_path imports and points at a callable."""
    try:
        module_name, attr_name = _split_dotted_path(dotted_path)
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        return callable(attr)
    except (ModuleNotFoundError, AttributeError):
        return False


def _split_dotted_path(dotted_path: str) -> tuple[str, str]:
    if not dotted_path or "." not in dotted_path:
        raise ValueError("dotted_path must look like 'module.attribute'")
    module_name, attr_name = dotted_path.rsplit(".", 1)
    if not module_name or not attr_name:
        raise ValueError("invalid dotted_path")
    return module_name, attr_name
