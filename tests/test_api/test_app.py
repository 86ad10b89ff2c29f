"""Tests for the app factory, base routes and error rendering."""

from __future__ import annotations

from fastapi.testclient import TestClient

from status_notify.api.app import create_app
from status_notify.config.settings import AppConfig, MetricsConfig


def test_health_endpoint(test_client):
    """GET /health should return 200 with status ok."""
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_app_has_openapi(test_client):
    """The app should serve an OpenAPI schema."""
    response = test_client.get("/openapi.json")
    assert response.status_code == 200
    assert response.json()["info"]["title"] == "status-notify"


def test_metrics_endpoint_exposes_pipeline_metrics(test_client):
    test_client.post(
        "/api/v1/status-events",
        json={"project_id": 1, "new_status": 999, "acting_role": "Admin"},
    )
    response = test_client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert "statusnotify_catalog_misses_total 1.0" in body
    assert 'http_request_total{method="POST",route="/api/v1/status-events",status_code="200"}' in body


def test_metrics_disabled(app_config):
    config = app_config.model_copy(update={"metrics": MetricsConfig(enabled=False)})
    with TestClient(create_app(config=config)) as client:
        response = client.get("/metrics")
    assert response.status_code == 200
    assert response.text == ""


def test_engine_built_from_config():
    config = AppConfig(db={"dsn": "sqlite+aiosqlite:///:memory:"})
    with TestClient(create_app(config=config)) as client:
        assert client.app.state.engine.is_initialized
        response = client.get("/api/v1/statuses")
    assert response.status_code == 200
    assert response.json()["statuses"] == []


def test_error_rendered_as_code_and_message(test_client):
    response = test_client.get("/api/v1/statuses/12345")
    assert response.status_code == 404
    assert response.json() == {"code": "status-not-found", "message": "status not found"}


def test_engine_not_ready_without_lifespan(app_config):
    client = TestClient(create_app(config=app_config), raise_server_exceptions=False)
    response = client.get("/api/v1/statuses")
    assert response.status_code == 503
    assert response.json()["code"] == "engine-not-ready"
