"""
===============================================================================
CRC CARD — interfaces/api/http/router.py (root router / composition)
===============================================================================

Responsibilities:
  - Root APIRouter mounted by api/main.py under prefix="/v1".
  - Attach the RFC 7807 responses to OpenAPI.
  - Compose the feature routers (self-service first, admin last).
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter

from ....crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from .routers.admin import router as admin_router
from .routers.deletion import router as deletion_router


def build_router() -> APIRouter:
    """Build the v1 router (callable from tests without import side effects)."""
    api_router = APIRouter(responses=OPENAPI_ERROR_RESPONSES)

    api_router.include_router(deletion_router)
    api_router.include_router(admin_router)

    return api_router


router = build_router()

__all__ = ["router", "build_router"]
