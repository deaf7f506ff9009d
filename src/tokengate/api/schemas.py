"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from tokengate.models import Lease


class LeaseResponse(BaseModel):
    """Full lease snapshot."""

    id: str
    expiry: datetime
    is_active: bool
    is_blocked: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    blocked_at: Optional[datetime] = None

    @classmethod
    def from_lease(cls, lease: Lease) -> "LeaseResponse":
        return cls(**lease.model_dump())


class CheckoutResponse(BaseModel):
    """Checked out lease id."""

    id: str


class ReleaseResponse(BaseModel):
    """Release result."""

    ok: bool = True
    message: str
    lease: LeaseResponse


class KeepaliveResponse(BaseModel):
    """Keepalive result."""

    ok: bool = True
    message: str = "Timer reset"
    expiry: datetime


class DeleteResponse(BaseModel):
    """Delete result."""

    ok: bool = True
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    store: str = Field(..., description="Store ping result")


class ConfigResponse(BaseModel):
    """Effective lease configuration."""

    store_backend: str
    lease_ttl_seconds: int
    blocking_ttl_seconds: int
    sweep_interval_seconds: float
    requeue_on_release: bool
    version: str


class MetricsResponse(BaseModel):
    """Metrics snapshot with pool sizes."""

    metrics: dict[str, Any]
    pool: dict[str, int]


class ErrorResponse(BaseModel):
    """Error body for TokenGate errors."""

    detail: str
    code: str
