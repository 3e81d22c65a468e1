"""Root conftest for the bucketgate test suite."""
