from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from consistency.core.logging import get_request_id
from consistency.core.middleware.request_id import RequestIdMiddleware, sanitize_request_id


def _make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/")
    async def root(request: Request):
        return {
            "request_id": getattr(request.state, "request_id", None),
            "context_request_id": get_request_id(),
        }

    return app


def test_generates_request_id_when_missing():
    client = TestClient(_make_app())

    resp = client.get("/")
    assert resp.status_code == 200
    rid_header = resp.headers.get("x-request-id")
    body = resp.json()

    assert rid_header
    assert body["request_id"] == rid_header
    assert body["context_request_id"] == rid_header


def test_echoes_provided_request_id():
    client = TestClient(_make_app())

    provided = "test-rid-123"
    resp = client.get("/", headers={"X-Request-Id": provided})

    assert resp.status_code == 200
    assert resp.headers.get("x-request-id") == provided
    assert resp.json().get("request_id") == provided


def test_context_cleared_after_request():
    client = TestClient(_make_app())
    client.get("/", headers={"X-Request-Id": "rid-scoped"})
    assert get_request_id() is None


def test_unsafe_request_id_replaced():
    client = TestClient(_make_app())

    resp = client.get("/", headers={"X-Request-Id": "bad id\twith spaces"})
    rid = resp.headers.get("x-request-id")
    assert rid and rid != "bad id\twith spaces"
    assert resp.json()["request_id"] == rid


def test_sanitize_request_id():
    assert sanitize_request_id("abc-123_x.y:z") == "abc-123_x.y:z"
    assert sanitize_request_id("") is None
    assert sanitize_request_id(None) is None
    assert sanitize_request_id("x" * 129) is None
