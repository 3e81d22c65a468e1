"""Guarded holder for the current limiter snapshot.

The limiter core never mutates anything, so a hosting service keeps the
latest LimiterState in one slot and serializes the read-evaluate-write
sequence with an asyncio.Lock. Suitable for single-instance deployments.
"""

import asyncio
import time
from typing import Callable, Optional

from bucketgate.app.core.config import settings
from bucketgate.app.core.logging import get_logger
from bucketgate.app.limiter.models import AdmissionResult, BucketState, LimiterState
from bucketgate.app.limiter.service import (
    allow_request,
    create_limiter,
    get_bucket_state,
    get_bucket_state_at_time,
    prune_idle_buckets,
)

logger = get_logger(__name__)


class LimiterStore:
    """Owner of the mutable "current limiter" slot.

    Memory grows with every new identity; call prune() to drop idle ones.
    """

    def __init__(
        self,
        capacity: float = 10.0,
        leak_rate: float = 1.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize store with an empty limiter.

        Args:
            capacity: Maximum bucket level per identity
            leak_rate: Units leaked per clock unit
            clock: Timestamp source used when callers pass no timestamp
        """
        self._state = create_limiter(capacity, leak_rate)
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> LimiterState:
        """Latest limiter state."""
        return self._state

    @property
    def capacity(self) -> float:
        return self._state.capacity

    @property
    def leak_rate(self) -> float:
        return self._state.leak_rate

    def now(self) -> float:
        return self._clock()

    async def admit(self, identity: str, timestamp: Optional[float] = None) -> AdmissionResult:
        """Evaluate one request for identity and store the resulting state.

        Args:
            identity: Key of the caller being limited
            timestamp: Request time (defaults to the store clock)

        Returns:
            AdmissionResult from the limiter core
        """
        async with self._lock:
            at = self._clock() if timestamp is None else timestamp
            result = allow_request(self._state, identity, at)
            self._state = result.state
            return result

    def get_bucket(self, identity: str) -> Optional[BucketState]:
        """Stored bucket for identity in the latest snapshot."""
        return get_bucket_state(self._state, identity)

    def project_bucket(self, identity: str, at: Optional[float] = None) -> BucketState:
        """Bucket for identity drained to at (defaults to the store clock)."""
        at = self._clock() if at is None else at
        return get_bucket_state_at_time(self._state, identity, at)

    async def prune(self, older_than: float) -> int:
        """Drop identities idle since before older_than.

        Returns:
            Number of identities removed
        """
        async with self._lock:
            before = len(self._state)
            self._state = prune_idle_buckets(self._state, older_than)
            removed = before - len(self._state)
        logger.info(f"Pruned {removed} idle buckets (older than {older_than})")
        return removed

    async def reset(self) -> None:
        """Forget every identity, keeping capacity and leak rate."""
        async with self._lock:
            self._state = create_limiter(self._state.capacity, self._state.leak_rate)
        logger.info("Limiter store reset")


_limiter_store: Optional[LimiterStore] = None


def get_limiter_store() -> LimiterStore:
    """Get the global limiter store, built from settings on first use."""
    global _limiter_store
    if _limiter_store is None:
        _limiter_store = LimiterStore(
            capacity=settings.rate_limit_capacity,
            leak_rate=settings.rate_limit_leak_rate,
        )
        logger.debug(f"Created limiter store: {_limiter_store.snapshot}")
    return _limiter_store


def reset_limiter_store() -> None:
    """Reset the global limiter store instance."""
    global _limiter_store
    _limiter_store = None


_enforcement_store: Optional[LimiterStore] = None


def get_enforcement_store() -> LimiterStore:
    """Get the store backing RateLimitMiddleware.

    Separate from get_limiter_store(); no API route reads or writes it.
    """
    global _enforcement_store
    if _enforcement_store is None:
        _enforcement_store = LimiterStore(
            capacity=settings.rate_limit_capacity,
            leak_rate=settings.rate_limit_leak_rate,
        )
        logger.debug(f"Created enforcement store: {_enforcement_store.snapshot}")
    return _enforcement_store


def reset_enforcement_store() -> None:
    """Reset the enforcement store instance."""
    global _enforcement_store
    _enforcement_store = None
