"""Observability helpers for TokenGate."""

from tokengate.observability.metrics import metrics
from tokengate.observability.trace import (
    TraceIdFilter,
    get_trace_id,
    set_trace_id,
)

__all__ = ["TraceIdFilter", "get_trace_id", "metrics", "set_trace_id"]
