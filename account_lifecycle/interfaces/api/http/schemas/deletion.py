"""
===============================================================================
CRC CARD — schemas/deletion.py
===============================================================================

Module:
    HTTP schemas for self-service account deletion

Responsibilities:
    - Request/response DTOs for /v1/account/deletion.
    - Require the explicit "DELETE" confirmation before a request is created.

Collaborators:
    - domain.entities.DeletionStatus
    - routers.deletion
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .....domain.entities import DeletionStatus

CONFIRMATION_PHRASE = "DELETE"


class CreateDeletionReq(BaseModel):
    """Request to delete the caller's account after the grace period."""

    reason: str | None = Field(
        default=None, description="Optional free-text reason (trimmed)"
    )
    confirmation: str = Field(
        ..., description=f'Must be exactly "{CONFIRMATION_PHRASE}"'
    )

    @field_validator("confirmation")
    @classmethod
    def confirmation_matches(cls, v: str) -> str:
        if v != CONFIRMATION_PHRASE:
            raise ValueError(f'confirmation must be "{CONFIRMATION_PHRASE}"')
        return v


class DeletionRequestRes(BaseModel):
    id: UUID
    status: DeletionStatus
    requested_at: datetime
    scheduled_for: datetime
    reason: str | None = None
    can_cancel: bool
    days_remaining: int = Field(..., ge=0)


class DeletionStatusRes(BaseModel):
    deletion: DeletionRequestRes | None = None
    grace_period_days: int


class CancelDeletionRes(BaseModel):
    ok: bool = True
    detail: str
