"""Middleware package for bucketgate."""

from bucketgate.app.middleware.rate_limit import RateLimitMiddleware
from bucketgate.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "RateLimitMiddleware",
    "RequestIdMiddleware",
    "get_request_id",
]
