"""Tests for BucketState leak and fill transforms."""

import dataclasses

import pytest

from bucketgate.app.limiter import BucketState


class TestLeak:
    """Tests for draining a bucket over elapsed time."""

    def test_leak_drains_proportionally(self):
        bucket = BucketState(level=3.0, last_update=0.0)

        leaked = bucket.leak(2.0, leak_rate=1.0)

        assert leaked.level == pytest.approx(1.0)
        assert leaked.last_update == 2.0

    def test_leak_fractional_rate(self):
        bucket = BucketState(level=2.0, last_update=0.0)

        leaked = bucket.leak(1.5, leak_rate=0.5)

        assert leaked.level == pytest.approx(1.25)

    def test_leak_floors_at_zero(self):
        """Long idle gaps drain to exactly zero, never negative."""
        bucket = BucketState(level=3.0, last_update=0.0)

        leaked = bucket.leak(1_000_000.0, leak_rate=1.0)

        assert leaked.level == 0.0
        assert leaked.last_update == 1_000_000.0

    def test_leak_backwards_time_keeps_level(self):
        """An earlier timestamp moves the clock back without draining."""
        bucket = BucketState(level=2.0, last_update=5.0)

        leaked = bucket.leak(3.0, leak_rate=10.0)

        assert leaked.level == 2.0
        assert leaked.last_update == 3.0

    def test_leak_same_timestamp_is_noop(self):
        bucket = BucketState(level=2.0, last_update=5.0)

        assert bucket.leak(5.0, leak_rate=1.0) == bucket

    def test_leak_does_not_mutate(self):
        bucket = BucketState(level=3.0, last_update=0.0)

        bucket.leak(2.0, leak_rate=1.0)

        assert bucket == BucketState(level=3.0, last_update=0.0)


class TestTryFill:
    """Tests for adding one unit against capacity."""

    def test_fill_adds_one_unit(self):
        bucket = BucketState(level=2.0, last_update=7.0)

        filled = bucket.try_fill(capacity=5.0)

        assert filled == BucketState(level=3.0, last_update=7.0)

    def test_fill_up_to_exact_capacity(self):
        bucket = BucketState(level=4.0, last_update=0.0)

        assert bucket.try_fill(capacity=5.0).level == 5.0

    def test_fill_overflow_returns_none(self):
        bucket = BucketState(level=4.5, last_update=0.0)

        assert bucket.try_fill(capacity=5.0) is None

    def test_fill_with_fractional_capacity_below_one(self):
        """A capacity under one unit can never admit."""
        assert BucketState().try_fill(capacity=0.5) is None


class TestBucketStateValue:
    """Tests for BucketState value semantics."""

    def test_negative_level_clamped(self):
        assert BucketState(level=-3.0, last_update=1.0).level == 0.0

    def test_frozen(self):
        bucket = BucketState(level=1.0, last_update=0.0)

        with pytest.raises(dataclasses.FrozenInstanceError):
            bucket.level = 2.0

    def test_str(self):
        assert str(BucketState(level=1.0, last_update=0.5)) == "BucketState(level=1.00, last_update=0.50)"
