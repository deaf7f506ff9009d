"""TokenGate main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tokengate.api import register_error_handlers, router
from tokengate.config import VERSION, settings
from tokengate.engine import StoreUnavailable
from tokengate.engine.core import LeaseManager
from tokengate.middleware.trace import trace_id_middleware
from tokengate.observability.trace import TraceIdFilter
from tokengate.store import create_store
from tokengate.tasks.sweep import start_lease_sweep, stop_lease_sweep

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(TraceIdFilter())
logger = logging.getLogger("tokengate")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting TokenGate server...")
    logger.info(f"Environment: {settings.env.value}")
    logger.info(f"Store backend: {settings.store_backend.value}")

    store = create_store(settings)
    try:
        await store.ping()
        logger.info("Store reachable")
    except StoreUnavailable as e:
        # Requests fail with 500 until the store comes back
        logger.error(f"Store unreachable at startup: {e.message}")

    manager = LeaseManager(store, settings)
    app.state.lease_manager = manager

    await start_lease_sweep(manager)
    logger.info("Lease sweep task started")

    yield

    logger.info("Shutting down TokenGate server...")
    await stop_lease_sweep()
    await store.close()
    app.state.lease_manager = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="TokenGate",
    description="Short-lived lease allocator with automatic expiry reclamation",
    version=VERSION,
    lifespan=lifespan,
)

# Trace ID middleware (correlation across logs)
app.middleware("http")(trace_id_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)

register_error_handlers(app)
app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "tokengate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
