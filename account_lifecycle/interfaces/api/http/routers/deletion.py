"""
===============================================================================
CRC CARD — interfaces/api/http/routers/deletion.py
===============================================================================

Module:
    Self-service account deletion router

Responsibilities:
    - POST   /account/deletion: request deletion (explicit confirmation)
    - GET    /account/deletion: current pending request, if any
    - DELETE /account/deletion: cancel the pending request
    - Translate HTTP -> DeletionRequestManager calls. Lifecycle errors are
      mapped centrally (api/exception_handlers.py).

Collaborators:
    - application.usecases.deletion.DeletionRequestManager
    - identity.account.get_account_principal
    - container (factories)
    - schemas.deletion
===============================================================================
"""

from __future__ import annotations

import math
from datetime import datetime

from account_lifecycle.application.usecases.deletion import DeletionRequestManager
from account_lifecycle.container import get_clock, get_deletion_manager
from account_lifecycle.domain.entities import DeletionRequest
from account_lifecycle.domain.services import Clock
from account_lifecycle.identity.account import AccountPrincipal, get_account_principal
from fastapi import APIRouter, Depends

from ..schemas.deletion import (
    CancelDeletionRes,
    CreateDeletionReq,
    DeletionRequestRes,
    DeletionStatusRes,
)

router = APIRouter()

_SECONDS_PER_DAY = 86400


def _days_remaining(request: DeletionRequest, now: datetime) -> int:
    seconds = (request.scheduled_for - now).total_seconds()
    return max(0, math.ceil(seconds / _SECONDS_PER_DAY))


def _to_deletion_res(request: DeletionRequest, now: datetime) -> DeletionRequestRes:
    return DeletionRequestRes(
        id=request.id,
        status=request.status,
        requested_at=request.requested_at,
        scheduled_for=request.scheduled_for,
        reason=request.reason,
        can_cancel=request.can_cancel,
        days_remaining=_days_remaining(request, now),
    )


@router.post(
    "/account/deletion",
    response_model=DeletionRequestRes,
    status_code=201,
    tags=["account"],
)
def request_account_deletion(
    req: CreateDeletionReq,
    principal: AccountPrincipal = Depends(get_account_principal),
    manager: DeletionRequestManager = Depends(get_deletion_manager),
    clock: Clock = Depends(get_clock),
):
    request = manager.request_deletion(
        principal.account_id,
        req.reason,
        ip_address=principal.ip_address,
        user_agent=principal.user_agent,
    )
    return _to_deletion_res(request, clock.now())


@router.get(
    "/account/deletion",
    response_model=DeletionStatusRes,
    tags=["account"],
)
def get_account_deletion(
    principal: AccountPrincipal = Depends(get_account_principal),
    manager: DeletionRequestManager = Depends(get_deletion_manager),
    clock: Clock = Depends(get_clock),
):
    request = manager.get_active_request(principal.account_id)
    return DeletionStatusRes(
        deletion=_to_deletion_res(request, clock.now()) if request else None,
        grace_period_days=manager.grace_period_days,
    )


@router.delete(
    "/account/deletion",
    response_model=CancelDeletionRes,
    tags=["account"],
)
def cancel_account_deletion(
    principal: AccountPrincipal = Depends(get_account_principal),
    manager: DeletionRequestManager = Depends(get_deletion_manager),
):
    manager.cancel_deletion(
        principal.account_id,
        ip_address=principal.ip_address,
        user_agent=principal.user_agent,
    )
    return CancelDeletionRes(ok=True, detail="Account deletion cancelled")
