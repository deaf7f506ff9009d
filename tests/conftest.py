"""
Pytest fixtures for TokenGate tests.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test config is set before importing tokengate modules.
os.environ.setdefault("TOKENGATE_ENV", "development")
os.environ.setdefault("TOKENGATE_STORE_BACKEND", "memory")

from tokengate.config import Settings
from tokengate.engine.core import LeaseManager
from tokengate.observability.metrics import metrics
from tokengate.store.memory import InMemoryStore


class FakeClock:
    """Controllable UTC clock shared by the manager and the in-memory store."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self.now.timestamp()

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        store_backend="memory",
        lease_ttl_seconds=300,
        blocking_ttl_seconds=30,
        sweep_interval_seconds=5,
        requeue_on_release=False,
    )


@pytest.fixture
def store(clock) -> InMemoryStore:
    return InMemoryStore(clock=clock.monotonic)


@pytest.fixture
def manager(store, test_settings, clock) -> LeaseManager:
    return LeaseManager(store, test_settings, clock=clock)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
async def client(manager):
    """Async test client wired to the test lease manager (lifespan not run)."""
    from tokengate.main import app

    app.state.lease_manager = manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.state.lease_manager = None
