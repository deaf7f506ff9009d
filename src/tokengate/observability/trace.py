"""Request trace ids for log correlation."""

import logging
from contextvars import ContextVar
from typing import Optional
from uuid import uuid4

_trace_id: ContextVar[Optional[str]] = ContextVar("tokengate_trace_id", default=None)


def get_trace_id() -> Optional[str]:
    return _trace_id.get()


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Bind a trace id to the current context, generating one if not given."""
    value = trace_id or uuid4().hex
    _trace_id.set(value)
    return value


class TraceIdFilter(logging.Filter):
    """Stamp ``record.trace_id`` so formatters can include it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or "-"
        return True
