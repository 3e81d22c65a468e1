"""Tests for custom exceptions."""

import pytest

from bucketgate.app.exceptions import (
    BucketGateException,
    BucketNotFoundError,
    InvalidArgumentError,
    RateLimitExceededError,
)
from bucketgate.app.limiter import AdmissionResult


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (BucketGateException(), 500),
        (InvalidArgumentError("capacity"), 400),
        (RateLimitExceededError("user1"), 429),
        (BucketNotFoundError("user1"), 404),
    ],
)
def test_status_codes(exc, status_code):
    assert isinstance(exc, BucketGateException)
    assert exc.status_code == status_code


def test_invalid_argument_default_message():
    exc = InvalidArgumentError("identity")

    assert exc.argument == "identity"
    assert str(exc) == "Invalid argument: identity"


def test_rate_limit_exceeded_response():
    exc = RateLimitExceededError("user1", retry_after=3)

    assert exc.to_response() == {
        "error": "rate_limit_exceeded",
        "message": "Rate limit exceeded. Please try again later.",
        "retry_after": 3,
    }


def test_admission_result_requires_state():
    with pytest.raises(InvalidArgumentError):
        AdmissionResult(admitted=True, state=None)
