"""Leaky bucket data models.

This module contains immutable dataclasses for per-identity bucket state,
the limiter snapshot that owns them, and admission results. Every update
returns a new value; nothing here is mutated after construction.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from bucketgate.app.exceptions import InvalidArgumentError

# Each admitted request adds exactly one unit.
FILL_UNIT = 1.0


@dataclass(frozen=True)
class BucketState:
    """Fill level of one identity's bucket at its last observation."""
    level: float = 0.0
    last_update: float = 0.0

    def __post_init__(self) -> None:
        if self.level < 0:
            object.__setattr__(self, "level", 0.0)

    def leak(self, at_time: float, leak_rate: float) -> "BucketState":
        """Drain the bucket up to at_time.

        A timestamp earlier than last_update moves the clock back without
        draining. Long gaps drain to exactly zero.

        Args:
            at_time: Timestamp to project the bucket to
            leak_rate: Units drained per unit of time

        Returns:
            New BucketState stamped with at_time
        """
        if at_time < self.last_update:
            return BucketState(level=self.level, last_update=at_time)

        drained = (at_time - self.last_update) * leak_rate
        return BucketState(level=max(0.0, self.level - drained), last_update=at_time)

    def try_fill(self, capacity: float) -> Optional["BucketState"]:
        """Add one unit if it fits under capacity.

        Returns:
            The filled bucket (same timestamp), or None on overflow
        """
        if self.level + FILL_UNIT > capacity:
            return None
        return BucketState(level=self.level + FILL_UNIT, last_update=self.last_update)

    def __str__(self) -> str:
        return f"BucketState(level={self.level:.2f}, last_update={self.last_update:.2f})"


def _require_positive(name: str, value: float) -> float:
    # NaN fails every comparison, so test for "not > 0" rather than "<= 0"
    if value is None or not value > 0:
        raise InvalidArgumentError(name, f"{name} must be positive, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class LimiterState:
    """Limiter configuration plus the bucket of every observed identity.

    Attributes:
        capacity: Maximum fill level of any bucket
        leak_rate: Units drained per unit of time
        buckets: Read-only mapping of identity to BucketState
    """
    capacity: float
    leak_rate: float
    buckets: Mapping[str, BucketState] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "capacity", _require_positive("capacity", self.capacity))
        object.__setattr__(self, "leak_rate", _require_positive("leak_rate", self.leak_rate))
        object.__setattr__(self, "buckets", MappingProxyType(dict(self.buckets)))

    def __len__(self) -> int:
        return len(self.buckets)

    def __contains__(self, identity: object) -> bool:
        return identity in self.buckets

    def __iter__(self) -> Iterator[str]:
        return iter(self.buckets)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LimiterState):
            return NotImplemented
        return (
            self.capacity == other.capacity
            and self.leak_rate == other.leak_rate
            and dict(self.buckets) == dict(other.buckets)
        )

    def __hash__(self) -> int:
        return hash((self.capacity, self.leak_rate, frozenset(self.buckets.items())))

    def get_bucket(self, identity: str) -> Optional[BucketState]:
        """Stored bucket for identity, or None if never observed."""
        return self.buckets.get(identity)

    def leaked_bucket(self, identity: str, timestamp: float) -> BucketState:
        """Bucket for identity drained up to timestamp.

        Unknown identities get an empty bucket first observed at timestamp.
        """
        bucket = self.buckets.get(identity)
        if bucket is None:
            return BucketState(level=0.0, last_update=timestamp)
        return bucket.leak(timestamp, self.leak_rate)

    def with_bucket(self, identity: str, bucket: Optional[BucketState]) -> "LimiterState":
        """Copy of this state with identity's entry replaced.

        Passing bucket=None drops the identity.
        """
        buckets = dict(self.buckets)
        if bucket is None:
            buckets.pop(identity, None)
        else:
            buckets[identity] = bucket
        return LimiterState(
            capacity=self.capacity,
            leak_rate=self.leak_rate,
            buckets=buckets,
        )

    def without_bucket(self, identity: str) -> "LimiterState":
        return self.with_bucket(identity, None)

    def __str__(self) -> str:
        return (
            f"LimiterState(capacity={self.capacity:.1f}, "
            f"leak_rate={self.leak_rate:.1f}, identities={len(self.buckets)})"
        )


@dataclass(frozen=True)
class AdmissionResult:
    """Result of an admission check.

    Attributes:
        admitted: Whether the request was accepted
        state: Limiter state to use for the next call
    """
    admitted: bool
    state: LimiterState

    def __post_init__(self) -> None:
        if self.state is None:
            raise InvalidArgumentError("state", "Admission result requires a limiter state")

    def __bool__(self) -> bool:
        return self.admitted
