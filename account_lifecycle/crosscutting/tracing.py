"""
===============================================================================
MODULE: OpenTelemetry tracing (opt-in) + log correlation
===============================================================================

- Spans are created only when OTEL_ENABLED is set.
- trace_id/span_id are copied into contextvars so log lines carry them.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  span() context manager

Collaborators:
  - account_lifecycle/context.py (trace_id_var, span_id_var)
  - crosscutting/config.py (otel_enabled)
===============================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from ..context import span_id_var, trace_id_var

_tracer: Optional[trace.Tracer] = None
_enabled: bool = False


def init_tracing(enabled: bool) -> None:
    """Install the tracer provider once per process (no-op when disabled)."""
    global _tracer, _enabled

    if not enabled:
        _enabled = False
        _tracer = None
        return

    if _tracer is not None:
        _enabled = True
        return

    resource = Resource.create({"service.name": "account-lifecycle"})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer("account-lifecycle")
    _enabled = True


@contextmanager
def span(name: str, attributes: Optional[dict] = None) -> Generator[Any, None, None]:
    """
    Usage:
      with span("deletion.sweep", {"batch_size": 100}):
          ...

    No-op when tracing is disabled.
    """
    if not _enabled or _tracer is None:
        yield None
        return

    with _tracer.start_as_current_span(name) as s:
        for k, v in (attributes or {}).items():
            s.set_attribute(k, v)

        ctx = s.get_span_context()
        trace_id_var.set(format(ctx.trace_id, "032x"))
        span_id_var.set(format(ctx.span_id, "016x"))

        yield s
