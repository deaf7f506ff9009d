"""REST API router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from tokengate.api.deps import get_lease_manager
from tokengate.api.schemas import (
    CheckoutResponse,
    ConfigResponse,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    KeepaliveResponse,
    LeaseResponse,
    MetricsResponse,
    ReleaseResponse,
)
from tokengate.config import VERSION
from tokengate.engine import LeaseNotFound, NoneAvailable, StoreUnavailable
from tokengate.engine.core import LeaseManager

logger = logging.getLogger("tokengate.api")

router = APIRouter(prefix="/v1", responses={500: {"model": ErrorResponse}})


# ============================================================================
# Health & Config
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(manager: LeaseManager = Depends(get_lease_manager)):
    """Health check endpoint (pings the store)."""
    try:
        reachable = await manager.store.ping()
    except StoreUnavailable as e:
        logger.warning(f"Health check failed: {e.message}")
        reachable = False

    body = HealthResponse(
        status="healthy" if reachable else "degraded",
        version=VERSION,
        store="ok" if reachable else "unreachable",
    )
    if not reachable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(),
        )
    return body


@router.get("/config", response_model=ConfigResponse)
async def get_config(manager: LeaseManager = Depends(get_lease_manager)):
    """Get effective lease configuration."""
    return ConfigResponse(**manager.get_config())


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(manager: LeaseManager = Depends(get_lease_manager)):
    """Get lease counters and pool sizes."""
    return MetricsResponse(**await manager.stats())


# ============================================================================
# Lease Endpoints
# ============================================================================


@router.post("/keys", response_model=LeaseResponse, status_code=status.HTTP_201_CREATED)
async def create_lease(manager: LeaseManager = Depends(get_lease_manager)):
    """Create a new lease."""
    lease = await manager.create()
    return LeaseResponse.from_lease(lease)


@router.get("/keys", response_model=CheckoutResponse)
async def checkout_lease(manager: LeaseManager = Depends(get_lease_manager)):
    """Check out the next available lease. Returns 404 immediately when none are free."""
    try:
        lease_id = await manager.checkout()
    except NoneAvailable as e:
        raise HTTPException(status_code=404, detail=e.message)
    return CheckoutResponse(id=lease_id)


@router.get("/keys/{lease_id}", response_model=LeaseResponse)
async def get_lease(lease_id: str, manager: LeaseManager = Depends(get_lease_manager)):
    """Get a lease by ID."""
    try:
        lease = await manager.describe(lease_id)
    except LeaseNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return LeaseResponse.from_lease(lease)


@router.put("/keys/{lease_id}", response_model=ReleaseResponse)
async def release_lease(lease_id: str, manager: LeaseManager = Depends(get_lease_manager)):
    """Release (unblock) a checked out lease."""
    try:
        lease = await manager.release(lease_id)
    except LeaseNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return ReleaseResponse(
        message=f"{lease_id} is unblocked",
        lease=LeaseResponse.from_lease(lease),
    )


@router.put("/keepalive/{lease_id}", response_model=KeepaliveResponse)
async def keepalive_lease(lease_id: str, manager: LeaseManager = Depends(get_lease_manager)):
    """Reset a lease's expiry timer."""
    try:
        lease = await manager.keepalive(lease_id)
    except LeaseNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return KeepaliveResponse(expiry=lease.expiry)


@router.delete("/keys/{lease_id}", response_model=DeleteResponse)
async def delete_lease(lease_id: str, manager: LeaseManager = Depends(get_lease_manager)):
    """Delete a lease."""
    try:
        await manager.delete(lease_id)
    except LeaseNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return DeleteResponse(message=f"{lease_id} is deleted")
