"""
===============================================================================
CRC CARD — identity/account.py
===============================================================================

Responsibilities:
    - Resolve the calling account for self-service endpoints from the
      upstream gateway headers (X-Account-Id, optional X-Tenant-Id).
    - Bind account_id into the logging context.

Collaborators:
    - context.set_account_context
    - crosscutting.error_responses.unauthorized

Notes:
    - Session/JWT validation happens at the gateway; this service trusts the
      forwarded identity.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Request

from ..context import set_account_context
from ..crosscutting.error_responses import unauthorized


@dataclass(frozen=True)
class AccountPrincipal:
    account_id: str
    tenant_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def get_account_principal(
    request: Request,
    account_id: str | None = Header(None, alias="X-Account-Id"),
    tenant_id: str | None = Header(None, alias="X-Tenant-Id"),
    user_agent: str | None = Header(None, alias="User-Agent"),
) -> AccountPrincipal:
    account_id = (account_id or "").strip()
    if not account_id:
        raise unauthorized("Missing account identity. Send the X-Account-Id header.")

    set_account_context(account_id)
    return AccountPrincipal(
        account_id=account_id,
        tenant_id=(tenant_id or "").strip() or None,
        ip_address=_client_ip(request),
        user_agent=user_agent,
    )


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None
