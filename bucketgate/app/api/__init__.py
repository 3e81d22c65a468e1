"""API routers for bucketgate."""

from bucketgate.app.api.buckets import router as buckets_router

__all__ = ["buckets_router"]
