"""TokenGate engine - lease state machine and its errors.

Import ``LeaseManager`` from ``tokengate.engine.core``; this package must not
import it (``tokengate.models`` depends on the errors below).
"""

from tokengate.engine.errors import (
    LeaseNotFound,
    MalformedRecord,
    NoneAvailable,
    StoreUnavailable,
    TokenGateError,
)

__all__ = [
    "LeaseNotFound",
    "MalformedRecord",
    "NoneAvailable",
    "StoreUnavailable",
    "TokenGateError",
]
