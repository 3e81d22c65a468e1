"""Rate limiting middleware for bucketgate.

Admits each request against the per-identity leaky bucket held by a
LimiterStore. Identities are derived from the Bearer API key when present,
otherwise from the client IP address.
"""

import hashlib
import math
from typing import Iterable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from bucketgate.app.core.config import settings
from bucketgate.app.core.logging import get_log_context, get_logger
from bucketgate.app.exceptions import RateLimitExceededError
from bucketgate.app.limiter.models import FILL_UNIT, BucketState
from bucketgate.app.limiter.store import LimiterStore, get_enforcement_store

logger = get_logger(__name__)


def remaining_capacity(bucket: BucketState, capacity: float) -> int:
    """Whole requests that still fit in the bucket."""
    return max(0, math.floor(capacity - bucket.level))


def retry_after_seconds(bucket: BucketState, capacity: float, leak_rate: float) -> int:
    """Seconds until one more unit fits, rounded up (at least 1)."""
    overflow = bucket.level + FILL_UNIT - capacity
    return max(1, math.ceil(overflow / leak_rate))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce leaky bucket limits on requests.

    Rate limits are applied per API key if available, otherwise per IP.
    """

    def __init__(
        self,
        app,
        store: Optional[LimiterStore] = None,
        exempt_paths: Optional[Iterable[str]] = None,
        max_key_length: Optional[int] = None,
    ):
        super().__init__(app)
        self._store = store
        self.exempt_paths = frozenset(
            exempt_paths if exempt_paths is not None else settings.rate_limit_exempt_paths
        )
        self.max_key_length = max_key_length or settings.rate_limit_max_key_length

    @property
    def store(self) -> LimiterStore:
        if self._store is None:
            self._store = get_enforcement_store()
        return self._store

    def _get_client_key(self, request: Request) -> str:
        """Get rate limit key for the request.

        Uses API key if available, otherwise falls back to IP address.
        Both are hashed using SHA-256 so raw keys and addresses are never
        stored in limiter state.

        Args:
            request: FastAPI request object

        Returns:
            Rate limit key string

        Raises:
            ValueError: If the API key exceeds max_key_length
        """
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            api_key = auth[7:].strip()
            if len(api_key) > self.max_key_length:
                raise ValueError(f"API key too long (max {self.max_key_length} characters)")
            # 32 hex chars (128 bits) for collision resistance
            key_hash = hashlib.sha256(api_key.encode()).hexdigest()[:32]
            return f"ratelimit:apikey:{key_hash}"

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
        else:
            client_ip = request.client.host if request.client else "unknown"

        ip_hash = hashlib.sha256(client_ip.encode()).hexdigest()[:32]
        return f"ratelimit:ip:{ip_hash}"

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        try:
            key = self._get_client_key(request)
        except ValueError as e:
            return JSONResponse(
                status_code=400,
                content={"error": "invalid_api_key", "message": str(e)},
            )

        store = self.store
        result = await store.admit(key)
        bucket = result.state.get_bucket(key)
        limit = str(math.floor(store.capacity))

        if not result.admitted:
            exc = RateLimitExceededError(
                identity=key,
                retry_after=retry_after_seconds(bucket, store.capacity, store.leak_rate),
            )
            logger.info(
                f"Rate limit exceeded for {key}, retry after {exc.retry_after}s",
                extra=get_log_context(
                    request_id=getattr(request.state, "request_id", None),
                    identity=key,
                    admitted=False,
                    path=request.url.path,
                    method=request.method,
                ),
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response(),
                headers={
                    "X-RateLimit-Limit": limit,
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(exc.retry_after),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = limit
        response.headers["X-RateLimit-Remaining"] = str(remaining_capacity(bucket, store.capacity))

        return response
