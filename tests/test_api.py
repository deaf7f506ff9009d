"""
REST API tests.

Drives the FastAPI app through httpx's ASGI transport with an in-memory
store and a controllable clock.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from tokengate.engine import StoreUnavailable
from tokengate.engine.core import LeaseManager
from tokengate.main import app
from tokengate.middleware import TRACE_HEADER
from tokengate.observability.metrics import metrics
from tokengate.store.memory import InMemoryStore


class UnreachableStore(InMemoryStore):
    """Store whose every call fails as if the server were down."""

    async def get(self, key):
        raise StoreUnavailable("get")

    async def lpop(self, name):
        raise StoreUnavailable("lpop")

    async def ping(self):
        raise StoreUnavailable("ping")

    def batch(self):
        raise StoreUnavailable("transaction")


@pytest.fixture
async def broken_client(test_settings, clock):
    app.state.lease_manager = LeaseManager(
        UnreachableStore(clock=clock.monotonic), test_settings, clock=clock
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.state.lease_manager = None


# ============================================================================
# Health & Config
# ============================================================================


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["store"] == "ok"


@pytest.mark.asyncio
async def test_health_degraded_when_store_unreachable(broken_client):
    response = await broken_client.get("/v1/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["store"] == "unreachable"


@pytest.mark.asyncio
async def test_config(client):
    response = await client.get("/v1/config")

    assert response.status_code == 200
    data = response.json()
    assert data["lease_ttl_seconds"] == 300
    assert data["blocking_ttl_seconds"] == 30
    assert data["requeue_on_release"] is False


@pytest.mark.asyncio
async def test_metrics(client):
    await client.post("/v1/keys")

    response = await client.get("/v1/metrics")

    assert response.status_code == 200
    data = response.json()
    assert data["pool"] == {"available": 1, "tracked": 1}
    assert data["metrics"]["counters"]["leases.created"] == 1


@pytest.mark.asyncio
async def test_manager_missing_is_503():
    app.state.lease_manager = None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/v1/keys")
    assert response.status_code == 503


# ============================================================================
# Lease lifecycle
# ============================================================================


@pytest.mark.asyncio
async def test_create_lease(client):
    response = await client.post("/v1/keys")

    assert response.status_code == 201
    data = response.json()
    assert data["id"]
    assert data["is_active"] is True
    assert data["is_blocked"] is False
    assert data["expiry"] > data["created_at"]


@pytest.mark.asyncio
async def test_full_lifecycle(client):
    created = (await client.post("/v1/keys")).json()
    lease_id = created["id"]

    # Checkout
    response = await client.get("/v1/keys")
    assert response.status_code == 200
    assert response.json() == {"id": lease_id}

    response = await client.get(f"/v1/keys/{lease_id}")
    assert response.status_code == 200
    assert response.json()["is_blocked"] is True
    assert response.json()["blocked_at"] is not None

    # Second checkout finds nothing
    response = await client.get("/v1/keys")
    assert response.status_code == 404

    # Keepalive
    response = await client.put(f"/v1/keepalive/{lease_id}")
    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["message"] == "Timer reset"

    # Release
    response = await client.put(f"/v1/keys/{lease_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == f"{lease_id} is unblocked"
    assert data["lease"]["is_blocked"] is False

    # Delete
    response = await client.delete(f"/v1/keys/{lease_id}")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "message": f"{lease_id} is deleted"}

    response = await client.get(f"/v1/keys/{lease_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_checkout_empty_pool_is_404(client):
    response = await client.get("/v1/keys")

    assert response.status_code == 404
    assert response.json()["detail"] == "No available leases"


@pytest.mark.asyncio
async def test_keepalive_moves_expiry(client, clock):
    created = (await client.post("/v1/keys")).json()
    clock.advance(60)

    response = await client.put(f"/v1/keepalive/{created['id']}")

    assert response.status_code == 200
    assert response.json()["expiry"] > created["expiry"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/v1/keys/unknown"),
        ("PUT", "/v1/keys/unknown"),
        ("PUT", "/v1/keepalive/unknown"),
        ("DELETE", "/v1/keys/unknown"),
    ],
)
async def test_unknown_lease_is_404(client, method, path):
    response = await client.request(method, path)

    assert response.status_code == 404
    assert "unknown" in response.json()["detail"]


@pytest.mark.asyncio
async def test_delete_twice_is_404(client):
    lease_id = (await client.post("/v1/keys")).json()["id"]

    assert (await client.delete(f"/v1/keys/{lease_id}")).status_code == 200
    assert (await client.delete(f"/v1/keys/{lease_id}")).status_code == 404


# ============================================================================
# Errors & tracing
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("POST", "/v1/keys"),
        ("GET", "/v1/keys"),
        ("GET", "/v1/keys/some-id"),
        ("PUT", "/v1/keepalive/some-id"),
    ],
)
async def test_store_outage_is_500(broken_client, method, path):
    response = await broken_client.request(method, path)

    assert response.status_code == 500
    assert response.json()["code"] == "STORE_UNAVAILABLE"
    assert metrics.counter_value("api.store_unavailable") == 1


@pytest.mark.asyncio
async def test_trace_id_is_echoed(client):
    response = await client.get("/v1/health", headers={TRACE_HEADER: "trace-123"})
    assert response.headers[TRACE_HEADER] == "trace-123"


@pytest.mark.asyncio
async def test_trace_id_is_generated(client):
    response = await client.get("/v1/health")
    assert len(response.headers[TRACE_HEADER]) == 32
