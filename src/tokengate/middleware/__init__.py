"""Middleware components for TokenGate API."""

from tokengate.middleware.trace import TRACE_HEADER, trace_id_middleware

__all__ = ["TRACE_HEADER", "trace_id_middleware"]
