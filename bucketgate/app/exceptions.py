"""Custom exceptions for the bucketgate application."""


class BucketGateException(Exception):
    """Base class for bucketgate exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Bucketgate error"):
        self.message = message
        super().__init__(message)


class InvalidArgumentError(BucketGateException, ValueError):
    """Raised when a caller violates the limiter's input contract.

    Covers missing limiter state or identity and non-positive
    capacity or leak rate. These are programmer errors and must not
    be retried without fixing the caller.
    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, argument: str, message: str | None = None):
        self.argument = argument
        super().__init__(message or f"Invalid argument: {argument}")


class RateLimitExceededError(BucketGateException):
    """Raised by the hosting layer when an identity's bucket overflows.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(self, identity: str, retry_after: int = 1, detail: str | None = None):
        self.identity = identity
        self.retry_after = retry_after
        super().__init__(detail or "Rate limit exceeded. Please try again later.")

    def to_response(self) -> dict:
        """Convert to API response format."""
        return {
            "error": "rate_limit_exceeded",
            "message": self.message,
            "retry_after": self.retry_after,
        }


class BucketNotFoundError(BucketGateException):
    """Raised when inspecting an identity that has never been observed.

    Maps to HTTP 404 Not Found.
    """
    status_code = 404

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"No bucket tracked for identity {identity!r}")
