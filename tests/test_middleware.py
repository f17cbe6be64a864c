"""
Tests for the recovery, OS context and request logging middleware,
each exercised on its own around a minimal app.
"""
import json
import logging
from dataclasses import FrozenInstanceError

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from todo_api.app.core.context import RequestContext, get_request_context
from todo_api.app.middleware import (
    OSContextMiddleware,
    RecoveryMiddleware,
    RequestLoggerMiddleware,
    UNKNOWN_OS,
    detect_os,
)
from todo_api.app.middleware import os_context

WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


def access_records(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "todo_api.access"]


# ============================================================================
# Recovery
# ============================================================================

@pytest.fixture
def panicking_app():
    app = FastAPI()
    calls = {"ok": 0}

    @app.get("/boom")
    async def boom():
        raise ValueError("kaboom")

    @app.get("/ok")
    async def ok():
        calls["ok"] += 1
        return {"ok": True}

    app.add_middleware(RecoveryMiddleware)
    app.state.calls = calls
    return app


def test_recovery_turns_exception_into_500(panicking_app, caplog):
    client = TestClient(panicking_app)
    with caplog.at_level(logging.ERROR):
        response = client.get("/boom")

    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    assert response.headers["content-type"].startswith("text/plain")
    assert "panic" in caplog.text
    assert "kaboom" in caplog.text


def test_recovery_keeps_serving_after_panic(panicking_app):
    client = TestClient(panicking_app)
    for _ in range(3):
        assert client.get("/boom").status_code == 500
    assert client.get("/ok").status_code == 200
    assert panicking_app.state.calls["ok"] == 1


def test_recovery_after_headers_sent_appends_body():
    async def partial_app(scope, receive, send):
        await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/plain")]})
        await send({"type": "http.response.body", "body": b"partial ", "more_body": True})
        raise RuntimeError("late failure")

    client = TestClient(RecoveryMiddleware(partial_app))
    response = client.get("/")

    # The status line was already sent; only the body can still change.
    assert response.status_code == 200
    assert response.text == "partial Internal Server Error"


@pytest.mark.asyncio
async def test_recovery_logs_failed_write_after_headers_sent(caplog):
    async def partial_app(scope, receive, send):
        await send({"type": "http.response.start", "status": 200, "headers": []})
        raise RuntimeError("late failure")

    sent = []

    async def send(message):
        if message["type"] == "http.response.body":
            raise OSError("connection reset by peer")
        sent.append(message)

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    middleware = RecoveryMiddleware(partial_app)
    scope = {"type": "http", "method": "GET", "path": "/", "headers": []}
    with caplog.at_level(logging.ERROR):
        await middleware(scope, receive, send)

    assert [m["type"] for m in sent] == ["http.response.start"]
    assert "write error" in caplog.text
    assert "connection reset by peer" in caplog.text


@pytest.mark.asyncio
async def test_recovery_passes_non_http_scopes_through():
    seen = []

    async def inner(scope, receive, send):
        seen.append(scope["type"])

    await RecoveryMiddleware(inner)({"type": "lifespan"}, None, None)
    assert seen == ["lifespan"]


# ============================================================================
# OS context
# ============================================================================

class TestDetectOS:
    def test_windows(self):
        assert detect_os(WINDOWS_UA) == "Windows"

    def test_ios(self):
        assert detect_os(IPHONE_UA) == "iOS"

    def test_empty_header_gives_placeholder(self):
        assert detect_os("") == ""

    def test_unrecognised_header_gives_placeholder(self):
        assert detect_os("definitely not a browser") == ""

    def test_parser_failure_does_not_raise(self, monkeypatch):
        def broken(_):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr(os_context, "parse_user_agent", broken)
        assert detect_os(WINDOWS_UA) == ""


@pytest.fixture
def context_echo_app():
    app = FastAPI()

    @app.get("/ctx")
    async def ctx(request: Request):
        context = get_request_context(request)
        return {"present": context is not None, "os": context.os if context else None}

    app.add_middleware(OSContextMiddleware)
    return app


def test_os_context_is_visible_to_handler(context_echo_app):
    client = TestClient(context_echo_app)
    response = client.get("/ctx", headers={"User-Agent": WINDOWS_UA})
    assert response.json() == {"present": True, "os": "Windows"}


def test_os_context_present_for_empty_user_agent(context_echo_app):
    client = TestClient(context_echo_app)
    response = client.get("/ctx", headers={"User-Agent": ""})
    assert response.json() == {"present": True, "os": ""}


def test_os_context_does_not_leak_between_requests(context_echo_app):
    client = TestClient(context_echo_app)
    first = client.get("/ctx", headers={"User-Agent": WINDOWS_UA}).json()
    second = client.get("/ctx", headers={"User-Agent": IPHONE_UA}).json()
    assert first["os"] == "Windows"
    assert second["os"] == "iOS"


def test_request_context_is_immutable():
    context = RequestContext()
    tagged = context.with_os("Linux")
    assert context.os is None
    assert tagged.os == "Linux"
    with pytest.raises(FrozenInstanceError):
        tagged.os = "Windows"


# ============================================================================
# Request logger
# ============================================================================

def test_request_logger_emits_one_record_per_request(caplog):
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return {"hello": "world"}

    app.add_middleware(RequestLoggerMiddleware)
    client = TestClient(app)

    with caplog.at_level(logging.INFO, logger="todo_api.access"):
        client.get("/hello")
        client.get("/missing")

    records = access_records(caplog)
    assert [r["path"] for r in records] == ["/hello", "/missing"]
    for record in records:
        assert record["latency"] >= 0
        assert record["os"] == UNKNOWN_OS
        assert set(record) == {"timestamp", "latency", "path", "os"}


def test_request_logger_uses_configured_time_zone(caplog, settings):
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return {}

    app.add_middleware(RequestLoggerMiddleware, tz=settings.tz)
    with caplog.at_level(logging.INFO, logger="todo_api.access"):
        TestClient(app).get("/hello")

    (record,) = access_records(caplog)
    assert record["timestamp"].endswith("+09:00")


def test_request_logger_waits_for_recovered_panic(caplog):
    app = FastAPI()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("boom")

    # add_middleware prepends: recovery ends up inside the logger.
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(OSContextMiddleware)

    with caplog.at_level(logging.INFO, logger="todo_api.access"):
        response = TestClient(app).get("/boom", headers={"User-Agent": WINDOWS_UA})

    assert response.status_code == 500
    (record,) = access_records(caplog)
    assert record["path"] == "/boom"
    assert record["os"] == "Windows"
