import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bucketgate.app.api.buckets import router as buckets_router
from bucketgate.app.core.config import settings
from bucketgate.app.core.logging import get_logger, setup_logging
from bucketgate.app.exceptions import BucketGateException, BucketNotFoundError
from bucketgate.app.limiter.store import get_enforcement_store, get_limiter_store
from bucketgate.app.middleware.rate_limit import RateLimitMiddleware
from bucketgate.app.middleware.request_id import RequestIdMiddleware, get_request_id


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Builds the admission and enforcement stores on startup. Limiter
        state lives only in memory and is dropped on shutdown.
        """
        store = get_limiter_store()
        get_enforcement_store()
        logger.info(
            "Application startup complete",
            extra={
                "limiter": str(store.snapshot),
                "rate_limit_enabled": settings.rate_limit_enabled,
                "debug_mode": settings.debug,
            },
        )
        yield
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="bucketgate",
        description="Per-identity leaky bucket admission control",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware)

    # Request ID middleware (outermost - request_id is set before admission)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(buckets_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with limiter status."""
        snapshot = get_limiter_store().snapshot
        return {
            "status": "ok",
            "components": {
                "limiter": {
                    "status": "ok",
                    "capacity": snapshot.capacity,
                    "leak_rate": snapshot.leak_rate,
                    "identities": len(snapshot),
                },
                "rate_limit": {
                    "status": "ok" if settings.rate_limit_enabled else "disabled",
                    "identities": len(get_enforcement_store().snapshot),
                },
            },
        }

    @app.exception_handler(BucketNotFoundError)
    async def bucket_not_found_handler(request: Request, exc: BucketNotFoundError) -> JSONResponse:
        """Handle BucketNotFoundError and return HTTP 404 response."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "bucket_not_found", "message": exc.message, "identity": exc.identity},
        )

    @app.exception_handler(BucketGateException)
    async def bucketgate_exception_handler(request: Request, exc: BucketGateException) -> JSONResponse:
        """Handle any other BucketGateException with its own status code."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "bucketgate_error", "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; debug mode adds the
        exception message and type.
        """
        request_id = get_request_id(request)

        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exc(),
            },
        )

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                    "request_id": request_id,
                },
            )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            },
        )

    return app


# Create the application instance
app = create_app()
