"""
===============================================================================
CRC CARD — interfaces/api/http/routers/__init__.py
===============================================================================

Responsibilities:
    - Re-export feature routers for the root router. No endpoints here.
===============================================================================
"""

from .admin import router as admin_router
from .deletion import router as deletion_router

__all__ = ["admin_router", "deletion_router"]
