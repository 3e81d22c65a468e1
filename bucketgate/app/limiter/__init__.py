"""Leaky bucket admission control.

Pure per-identity limiter state plus a lock-guarded store for hosting it.
"""

from bucketgate.app.limiter.models import (
    FILL_UNIT,
    AdmissionResult,
    BucketState,
    LimiterState,
)
from bucketgate.app.limiter.service import (
    allow_request,
    create_limiter,
    get_bucket_state,
    get_bucket_state_at_time,
    prune_idle_buckets,
)
from bucketgate.app.limiter.store import (
    LimiterStore,
    get_enforcement_store,
    get_limiter_store,
    reset_enforcement_store,
    reset_limiter_store,
)

__all__ = [
    # Models
    "FILL_UNIT",
    "AdmissionResult",
    "BucketState",
    "LimiterState",
    # Operations
    "allow_request",
    "create_limiter",
    "get_bucket_state",
    "get_bucket_state_at_time",
    "prune_idle_buckets",
    # Hosting
    "LimiterStore",
    "get_enforcement_store",
    "get_limiter_store",
    "reset_enforcement_store",
    "reset_limiter_store",
]
