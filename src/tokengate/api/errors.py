"""Application-level error handlers."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tokengate.engine import StoreUnavailable, TokenGateError
from tokengate.observability.metrics import metrics

logger = logging.getLogger("tokengate.api")


def register_error_handlers(app: FastAPI) -> None:
    """
    Map engine errors that escape a route to JSON responses.

    Routes translate not-found outcomes to 404 themselves; what reaches
    these handlers is a store outage or an unexpected failure, both 500.
    """

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error(f"Store unavailable on {request.method} {request.url.path}: {exc.message}")
        metrics.inc_counter("api.store_unavailable")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(TokenGateError)
    async def tokengate_error_handler(request: Request, exc: TokenGateError):
        logger.error(
            f"Unhandled {exc.code} on {request.method} {request.url.path}: {exc.message}"
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error", "code": "INTERNAL_ERROR"},
        )
