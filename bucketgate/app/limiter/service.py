"""Leaky bucket admission service.

Pure functions over LimiterState. Every call returns new values and
leaves its inputs untouched, so callers may share snapshots freely.
"""

from typing import Optional

from bucketgate.app.core.logging import get_log_context, get_logger
from bucketgate.app.exceptions import InvalidArgumentError
from bucketgate.app.limiter.models import AdmissionResult, BucketState, LimiterState

logger = get_logger(__name__)


def _check_arguments(limiter: Optional[LimiterState], identity: Optional[str]) -> None:
    if limiter is None:
        raise InvalidArgumentError("limiter", "Rate limiter cannot be None")
    if identity is None:
        raise InvalidArgumentError("identity", "Identity cannot be None")


def create_limiter(capacity: float, leak_rate: float) -> LimiterState:
    """Create an empty limiter.

    Args:
        capacity: Maximum bucket level
        leak_rate: Units leaked per unit of time

    Returns:
        LimiterState with no tracked identities

    Raises:
        InvalidArgumentError: If capacity or leak_rate is not positive
    """
    return LimiterState(capacity=capacity, leak_rate=leak_rate)


def allow_request(
    limiter: LimiterState,
    identity: str,
    timestamp: float,
) -> AdmissionResult:
    """Decide whether identity may make a request at timestamp.

    The bucket is drained up to timestamp before the fill attempt. A
    rejected request still records the drained level and the new
    timestamp, so a stream of rejections cannot freeze the clock.

    Args:
        limiter: Current limiter state
        identity: Key of the caller being limited
        timestamp: Request time in the limiter's time unit

    Returns:
        AdmissionResult with the decision and the limiter state to use next

    Raises:
        InvalidArgumentError: If limiter or identity is None
    """
    _check_arguments(limiter, identity)

    leaked = limiter.leaked_bucket(identity, timestamp)
    filled = leaked.try_fill(limiter.capacity)

    if filled is None:
        bucket = BucketState(level=leaked.level, last_update=timestamp)
        admitted = False
    else:
        bucket = filled
        admitted = True

    logger.debug(
        f"Admission for {identity!r} at {timestamp}: {bucket}",
        extra=get_log_context(identity=identity, admitted=admitted),
    )
    return AdmissionResult(admitted=admitted, state=limiter.with_bucket(identity, bucket))


def get_bucket_state(limiter: LimiterState, identity: str) -> Optional[BucketState]:
    """Stored bucket for identity, without draining.

    Returns:
        BucketState, or None if the identity has never been observed

    Raises:
        InvalidArgumentError: If limiter or identity is None
    """
    _check_arguments(limiter, identity)
    return limiter.get_bucket(identity)


def get_bucket_state_at_time(
    limiter: LimiterState,
    identity: str,
    timestamp: float,
) -> BucketState:
    """What identity's bucket would look like at timestamp.

    Nothing is persisted; the limiter is unchanged.

    Returns:
        Drained BucketState, or an empty bucket if the identity is unknown

    Raises:
        InvalidArgumentError: If limiter or identity is None
    """
    _check_arguments(limiter, identity)
    return limiter.leaked_bucket(identity, timestamp)


def prune_idle_buckets(limiter: LimiterState, older_than: float) -> LimiterState:
    """Drop identities last observed before older_than.

    Raises:
        InvalidArgumentError: If limiter is None
    """
    if limiter is None:
        raise InvalidArgumentError("limiter", "Rate limiter cannot be None")

    kept = {
        identity: bucket
        for identity, bucket in limiter.buckets.items()
        if bucket.last_update >= older_than
    }
    if len(kept) == len(limiter):
        return limiter
    return LimiterState(capacity=limiter.capacity, leak_rate=limiter.leak_rate, buckets=kept)
