"""TokenGate HTTP API."""

from tokengate.api.errors import register_error_handlers
from tokengate.api.router import router

__all__ = ["register_error_handlers", "router"]
