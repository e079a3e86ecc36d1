"""
Tests for application-level endpoints, request logging and error handling.
"""
import logging

import pytest
from fastapi.testclient import TestClient

from app import config
from app.main import app


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["message"] == "Server is running"
    assert "timestamp" in body


def test_health_reports_uptime(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["uptime"] >= 0


def test_request_id_header_and_log(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.requests"):
        response = client.get("/health")

    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 36
    assert f"Incoming request id={request_id}" in caplog.text
    assert "status=200" in caplog.text


def test_client_errors_logged_as_warnings(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.requests"):
        client.get("/api/persons", headers={"Authorization": "Bearer junk"})

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING and r.name == "app.requests"]
    assert warnings
    assert "status=401" in warnings[0].getMessage()


@pytest.fixture
def failing_route():
    path = "/__boom"

    @app.get(path)
    async def boom():
        raise RuntimeError("kaboom")

    yield path
    app.router.routes[:] = [r for r in app.router.routes if getattr(r, "path", None) != path]


def test_unhandled_errors_return_json_500(failing_route, monkeypatch):
    monkeypatch.setattr(config, "IS_PRODUCTION", False)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get(failing_route)

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "error": "kaboom"}


def test_unhandled_error_details_hidden_in_production(failing_route, monkeypatch):
    monkeypatch.setattr(config, "IS_PRODUCTION", True)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get(failing_route)

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
