"""Tests for metrics collection and health checks."""

from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lessonboard.api import health, metrics
from lessonboard.core.metrics import (
    MetricsCollector,
    auth_events_total,
    catalog_lookups_total,
    chat_sends_total,
    errors_total,
    http_request_duration_seconds,
    http_requests_total,
    initialize_metrics,
    player_urls_total,
)
from lessonboard.services.catalog import VideoCatalog


class TestMetricsCollection:
    """Tests for Prometheus metrics collection."""

    def test_record_request_increments_counter(self) -> None:
        initial = http_requests_total.labels(
            method="GET", endpoint="/test", status="200"
        )._value.get()

        MetricsCollector.record_request(method="GET", endpoint="/test", status=200, duration=0.1)

        final = http_requests_total.labels(
            method="GET", endpoint="/test", status="200"
        )._value.get()
        assert final == initial + 1

    def test_record_request_observes_duration(self) -> None:
        MetricsCollector.record_request(
            method="GET",
            endpoint="/videos/power-electronics/{video_id}",
            status=200,
            duration=0.5,
        )

        histogram = http_request_duration_seconds.labels(
            method="GET", endpoint="/videos/power-electronics/{video_id}"
        )
        assert histogram._sum.get() > 0

    @pytest.mark.parametrize(
        "record,counter,label",
        [
            (MetricsCollector.record_catalog_lookup, catalog_lookups_total, {"result": "miss"}),
            (MetricsCollector.record_player_url, player_urls_total, {"result": "rejected"}),
            (MetricsCollector.record_auth_event, auth_events_total, {"event": "signout"}),
            (MetricsCollector.record_chat_send, chat_sends_total, {"result": "failed"}),
        ],
    )
    def test_domain_counters(self, record: Any, counter: Any, label: Dict[str, str]) -> None:
        initial = counter.labels(**label)._value.get()

        record(*label.values())

        assert counter.labels(**label)._value.get() == initial + 1

    def test_record_error_by_code(self) -> None:
        initial = errors_total.labels(
            error_code="VIDEO_NOT_FOUND", endpoint="/api/v1/videos/x"
        )._value.get()

        MetricsCollector.record_error(error_code="VIDEO_NOT_FOUND", endpoint="/api/v1/videos/x")

        final = errors_total.labels(
            error_code="VIDEO_NOT_FOUND", endpoint="/api/v1/videos/x"
        )._value.get()
        assert final == initial + 1

    def test_catalog_lookup_recorded(self, video_records: List[Dict[str, Any]]) -> None:
        catalog = VideoCatalog(video_records)
        initial = catalog_lookups_total.labels(result="hit")._value.get()

        catalog.find_video("v1")

        assert catalog_lookups_total.labels(result="hit")._value.get() == initial + 1

    def test_initialize_metrics(self) -> None:
        initialize_metrics("0.3.0-test")


# ============================================================================
# Health endpoints
# ============================================================================


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(metrics.router)
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def provider(name: str = "auth0") -> MagicMock:
    mock = MagicMock()
    mock.name = name
    return mock


class TestHealthCheck:
    """Tests for /health component checks."""

    def test_all_healthy(
        self, app: FastAPI, client: TestClient, video_records: List[Dict[str, Any]]
    ) -> None:
        app.state.catalog = VideoCatalog(video_records)
        app.state.identity_provider = provider()

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert set(data["components"]) == {"catalog", "templates", "auth"}
        assert data["uptime_seconds"] >= 0

    def test_catalog_not_loaded(self, app: FastAPI, client: TestClient) -> None:
        app.state.identity_provider = provider()

        response = client.get("/health")

        assert response.status_code == 503
        catalog = response.json()["components"]["catalog"]
        assert catalog["status"] == "unhealthy"
        assert catalog["details"]["error"] == "Catalog not loaded"

    def test_catalog_without_valid_videos(
        self, app: FastAPI, client: TestClient, video_records: List[Dict[str, Any]]
    ) -> None:
        app.state.catalog = VideoCatalog([video_records[2]])
        app.state.identity_provider = provider()

        response = client.get("/health")

        catalog = response.json()["components"]["catalog"]
        assert catalog["status"] == "unhealthy"
        assert catalog["details"]["records"] == 1
        assert catalog["details"]["videos"] == 0

    def test_auth_not_configured(
        self, app: FastAPI, client: TestClient, video_records: List[Dict[str, Any]]
    ) -> None:
        app.state.catalog = VideoCatalog(video_records)
        app.state.identity_provider = None
        app.state.allow_anonymous = False

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["components"]["auth"]["status"] == "unhealthy"

    def test_missing_template(
        self,
        app: FastAPI,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
        video_records: List[Dict[str, Any]],
    ) -> None:
        app.state.catalog = VideoCatalog(video_records)
        app.state.identity_provider = provider()
        monkeypatch.setattr(health, "REQUIRED_TEMPLATES", ("base.html", "missing.html"))

        response = client.get("/health")

        templates = response.json()["components"]["templates"]
        assert templates["status"] == "unhealthy"
        assert templates["details"]["missing"] == ["missing.html"]

    def test_reset_start_time(self, app: FastAPI, client: TestClient) -> None:
        health.reset_start_time()
        app.state.identity_provider = provider()

        response = client.get("/health")
        assert response.json()["uptime_seconds"] < 5


class TestProbes:
    """Tests for liveness and readiness probes."""

    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/liveness")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_readiness_not_ready(self, client: TestClient) -> None:
        response = client.get("/readiness")

        assert response.status_code == 503
        assert response.json()["ready"] is False
        assert response.json()["message"] == "Catalog not loaded"

    def test_readiness_ready(
        self, app: FastAPI, client: TestClient, video_records: List[Dict[str, Any]]
    ) -> None:
        app.state.catalog = VideoCatalog(video_records)

        response = client.get("/readiness")

        assert response.status_code == 200
        assert response.json()["ready"] is True


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    def test_prometheus_format(self, client: TestClient) -> None:
        MetricsCollector.record_chat_send("ok")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "chat_sends_total" in response.text
