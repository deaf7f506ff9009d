"""TokenGate engine errors."""


class TokenGateError(Exception):
    """Base error for TokenGate operations."""

    def __init__(self, message: str, code: str = "TOKENGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class LeaseNotFound(TokenGateError):
    """Lease does not exist or has already been reclaimed."""

    def __init__(self, lease_id: str):
        super().__init__(f"Lease not found: {lease_id}", "LEASE_NOT_FOUND")
        self.lease_id = lease_id


class NoneAvailable(TokenGateError):
    """Availability queue is exhausted."""

    def __init__(self):
        super().__init__("No available leases", "NONE_AVAILABLE")


class MalformedRecord(TokenGateError):
    """Stored lease record could not be decoded."""

    def __init__(self, lease_id: str, reason: str):
        super().__init__(
            f"Malformed lease record {lease_id}: {reason}",
            "MALFORMED_RECORD",
        )
        self.lease_id = lease_id
        self.reason = reason


class StoreUnavailable(TokenGateError):
    """Backing store could not be reached or timed out."""

    def __init__(self, operation: str, cause: Exception | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Store unavailable during {operation}{detail}",
            "STORE_UNAVAILABLE",
        )
        self.operation = operation
        self.cause = cause
