"""
End-to-end checks of the assembled application: public endpoints,
the diagnostic endpoints and the order of the global middleware.
"""
import json
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from todo_api.app.api.endpoints import diagnostics
from todo_api.app.main import build_middleware
from todo_api.app.middleware import OSContextMiddleware, RecoveryMiddleware, RequestLoggerMiddleware

LINUX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"
ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


def test_healthz_returns_ok(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"message": "OK"}


def test_healthz_accepts_any_method(client):
    assert client.post("/healthz").json() == {"message": "OK"}


def test_unknown_path_is_404(client):
    assert client.get("/healthz/extra").status_code == 404


def test_do_panic_is_recovered(client):
    response = client.get("/do-panic")
    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    # The process keeps serving.
    assert client.get("/healthz").status_code == 200


def test_test_os_reports_detected_os(client):
    response = client.get("/test-os", headers={"User-Agent": LINUX_UA})
    assert response.status_code == 200
    assert response.text == f"User-Agent: {LINUX_UA}\nDetected OS: Linux"


def test_test_os_with_android(client):
    response = client.get("/test-os", headers={"User-Agent": ANDROID_UA})
    assert response.text.endswith("Detected OS: Android")


def test_test_os_with_empty_user_agent(client):
    response = client.get("/test-os", headers={"User-Agent": ""})
    assert response.status_code == 200
    assert response.text == "User-Agent: \nDetected OS: "


def test_test_os_without_context_middleware():
    app = FastAPI()
    app.include_router(diagnostics.router)
    response = TestClient(app).get("/test-os", headers={"User-Agent": LINUX_UA})
    assert response.status_code == 500
    assert response.text == "OS information not found in context"


def test_middleware_order(app, settings):
    assert [m.cls for m in build_middleware(settings)] == [
        OSContextMiddleware,
        RequestLoggerMiddleware,
        RecoveryMiddleware,
    ]
    assert [m.cls for m in app.user_middleware] == [
        OSContextMiddleware,
        RequestLoggerMiddleware,
        RecoveryMiddleware,
    ]


def test_every_request_is_logged_with_its_os(client, caplog):
    with caplog.at_level(logging.INFO, logger="todo_api.access"):
        client.get("/healthz", headers={"User-Agent": LINUX_UA})
        client.get("/do-panic", headers={"User-Agent": LINUX_UA})
        client.get("/todos", headers={"User-Agent": LINUX_UA})

    records = [json.loads(r.getMessage()) for r in caplog.records if r.name == "todo_api.access"]
    assert [r["path"] for r in records] == ["/healthz", "/do-panic", "/todos"]
    assert {r["os"] for r in records} == {"Linux"}


def test_exception_in_auth_dependency_is_recovered(app, client, auth):
    app.state.settings = None
    response = client.get("/todos", auth=auth)
    assert response.status_code == 500
    assert response.text == "Internal Server Error"


def test_public_endpoints_accept_trace(client):
    assert client.request("TRACE", "/healthz").json() == {"message": "OK"}
    assert client.request("TRACE", "/do-panic").status_code == 500
