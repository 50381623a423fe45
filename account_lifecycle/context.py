"""
===============================================================================
CRC CARD — account_lifecycle/context.py (Request / job context)
===============================================================================

Responsibilities:
  - Hold request-scoped context in ContextVars (async-safe).
  - Correlate logs, metrics, traces and audit entries without threading
    parameters through every call.
  - Minimal helpers: set_account_context(), get_context_dict(), clear_context().

Collaborators:
  - crosscutting.middleware: sets request_id/method/path per HTTP request.
  - crosscutting.logger: enriches log lines via get_context_dict().
  - crosscutting.tracing: sets trace_id/span_id when OTel is enabled.
  - audit.AuditLogRecorder: reads request_id for audit entries.
  - worker.jobs: sets a job-scoped request_id and clears it when done.

Constraints:
  - Primitive values only (str).
  - Empty string means "not available".
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")
span_id_var: ContextVar[str] = ContextVar("span_id", default="")

http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")

# Account the current request acts for (self-service endpoints only).
account_id_var: ContextVar[str] = ContextVar("account_id", default="")

_CTX_REQUEST_ID: Final[str] = "request_id"
_CTX_TRACE_ID: Final[str] = "trace_id"
_CTX_SPAN_ID: Final[str] = "span_id"
_CTX_METHOD: Final[str] = "method"
_CTX_PATH: Final[str] = "path"
_CTX_ACCOUNT_ID: Final[str] = "account_id"


def set_account_context(account_id: str) -> None:
    account_id_var.set(account_id or "")


def get_context_dict() -> dict[str, str]:
    """Current context as a dict, omitting empty keys."""
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx[_CTX_REQUEST_ID] = val
    if val := trace_id_var.get():
        ctx[_CTX_TRACE_ID] = val
    if val := span_id_var.get():
        ctx[_CTX_SPAN_ID] = val
    if val := http_method_var.get():
        ctx[_CTX_METHOD] = val
    if val := http_path_var.get():
        ctx[_CTX_PATH] = val
    if val := account_id_var.get():
        ctx[_CTX_ACCOUNT_ID] = val

    return ctx


def clear_context() -> None:
    """
    Reset context at the end of a request/job so values never leak into the
    next unit of work handled by the same worker.
    """
    request_id_var.set("")
    trace_id_var.set("")
    span_id_var.set("")
    http_method_var.set("")
    http_path_var.set("")
    account_id_var.set("")
