"""TokenGate data models."""

from tokengate.models.lease import BlockingMarker, Lease

__all__ = [
    "BlockingMarker",
    "Lease",
]
