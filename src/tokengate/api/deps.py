"""API dependencies."""

from fastapi import HTTPException, Request

from tokengate.engine.core import LeaseManager


def get_lease_manager(request: Request) -> LeaseManager:
    """Return the lease manager created in the application lifespan."""
    manager = getattr(request.app.state, "lease_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Lease manager not initialized")
    return manager
