"""Prometheus metrics collection for the dashboard.

This module defines and manages Prometheus metrics for request rates,
catalog lookups, player URL construction, authentication and chat.
"""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("lessonboard", "Lessonboard application information")

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

# Catalog metrics
catalog_lookups_total = Counter(
    "catalog_lookups_total",
    "Video catalog lookups by result",
    ["result"],
)

# Player metrics
player_urls_total = Counter(
    "player_urls_total",
    "Embed URL constructions by result",
    ["result"],
)

# Authentication metrics
auth_events_total = Counter(
    "auth_events_total",
    "Authentication events by type",
    ["event"],
)

# Chat metrics
chat_sends_total = Counter(
    "chat_sends_total",
    "Mock chat sends by result",
    ["result"],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors by error code and endpoint",
    ["error_code", "endpoint"],
)


class MetricsCollector:
    """Centralized metrics collection and update helper.

    Provides static methods for recording metrics throughout
    the application in a consistent manner.
    """

    @staticmethod
    def record_request(
        method: str,
        endpoint: str,
        status: int,
        duration: float,
    ) -> None:
        """Record HTTP request metrics.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: Route template (e.g. /videos/power-electronics/{video_id})
            status: HTTP status code
            duration: Request duration in seconds
        """
        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

    @staticmethod
    def record_catalog_lookup(result: str) -> None:
        """Record a catalog lookup ("hit", "miss", "invalid_id", "invalid_record")."""
        catalog_lookups_total.labels(result=result).inc()

    @staticmethod
    def record_player_url(result: str) -> None:
        """Record an embed URL build ("built" or "rejected")."""
        player_urls_total.labels(result=result).inc()

    @staticmethod
    def record_auth_event(event: str) -> None:
        """Record an authentication event (e.g. "signin", "callback_failed")."""
        auth_events_total.labels(event=event).inc()

    @staticmethod
    def record_chat_send(result: str) -> None:
        """Record a chat send outcome."""
        chat_sends_total.labels(result=result).inc()

    @staticmethod
    def record_error(error_code: str, endpoint: str) -> None:
        """Record an error by code and endpoint."""
        errors_total.labels(error_code=error_code, endpoint=endpoint).inc()


def initialize_metrics(version: str) -> None:
    """Initialize application info metric."""
    app_info.info({"version": version})
