"""Prometheus metrics integration for FastAPI."""

import logging
import time
from typing import Any, Callable

from fastapi import FastAPI
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.requests import Request
from starlette.responses import Response

from gliner_api.app.config import settings

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total count of HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
)
ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of currently active HTTP requests",
    ["method", "endpoint"],
)
PII_ENTITIES_DETECTED = Counter(
    "pii_entities_detected_total",
    "Total count of PII entities returned to clients",
    ["label"],
)
DETECTION_FAILURES = Counter(
    "pii_detection_failures_total",
    "Total count of failed detection requests",
    ["kind"],
)


def monitored_paths() -> set[str]:
    return {
        path.strip()
        for path in settings.PROMETHEUS_MONITORED_PATHS.split(",")
        if path.strip()
    }


class PrometheusMiddleware:
    """ASGI middleware collecting request metrics for monitored paths."""

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http" or scope["path"] not in monitored_paths():
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        method = scope["method"]
        ACTIVE_REQUESTS.labels(method=method, endpoint=path).inc()
        started = time.perf_counter()

        async def send_wrapper(message: dict) -> None:
            if message["type"] == "http.response.start":
                REQUEST_COUNT.labels(
                    method=method, endpoint=path, status_code=message["status"]
                ).inc()
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            REQUEST_COUNT.labels(method=method, endpoint=path, status_code=500).inc()
            raise
        finally:
            ACTIVE_REQUESTS.labels(method=method, endpoint=path).dec()
            REQUEST_LATENCY.labels(method=method, endpoint=path).observe(
                time.perf_counter() - started
            )


def track_pii_entity(label: str) -> None:
    """Increment the detected-entity counter for one label."""
    PII_ENTITIES_DETECTED.labels(label=label).inc()


def track_detection_failure(kind: str) -> None:
    """Increment the failure counter for one error category."""
    DETECTION_FAILURES.labels(kind=kind).inc()


async def metrics(request: Request) -> Response:
    """Expose the default registry in the Prometheus text format."""
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


def setup_prometheus(app: FastAPI) -> None:
    """Register the Prometheus middleware and the /metrics route."""
    app.add_middleware(PrometheusMiddleware)
    app.add_route("/metrics", metrics, include_in_schema=False)
    logger.info(
        "Prometheus metrics setup complete. Monitoring paths: %s",
        ", ".join(sorted(monitored_paths())),
    )
