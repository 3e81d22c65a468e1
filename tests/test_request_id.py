"""Tests for request ID middleware."""

import uuid

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from bucketgate.app.middleware.request_id import RequestIdMiddleware, get_request_id


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/whoami")
    async def whoami(request: Request):
        return {"request_id": get_request_id(request)}

    return TestClient(app)


class TestRequestIdMiddleware:
    """Test RequestIdMiddleware."""

    def test_preserves_incoming_request_id(self, client):
        resp = client.get("/whoami", headers={"X-Request-ID": "abc-123"})

        assert resp.headers["X-Request-ID"] == "abc-123"
        assert resp.json()["request_id"] == "abc-123"

    def test_generates_request_id(self, client):
        resp = client.get("/whoami")

        request_id = resp.headers["X-Request-ID"]
        assert str(uuid.UUID(request_id)) == request_id
        assert resp.json()["request_id"] == request_id

    def test_custom_header_name(self):
        app = FastAPI()
        app.add_middleware(RequestIdMiddleware, header_name="X-Correlation-ID")

        @app.get("/")
        async def root():
            return {}

        resp = TestClient(app).get("/", headers={"X-Correlation-ID": "corr-1"})

        assert resp.headers["X-Correlation-ID"] == "corr-1"


def test_get_request_id_without_middleware():
    app = FastAPI()

    @app.get("/")
    async def root(request: Request):
        return {"request_id": get_request_id(request)}

    assert TestClient(app).get("/").json() == {"request_id": "unknown"}
