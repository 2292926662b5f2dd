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

logger = logging.getLogger(__name__)

# Define Prometheus metrics
REQUEST_COUNT = Counter(
    "prose_http_requests_total",
    "Total count of HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "prose_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
)
ERROR_COUNT = Counter(
    "prose_http_errors_total",
    "Total count of HTTP errors",
    ["method", "endpoint", "status_code"],
)
ACTIVE_REQUESTS = Gauge(
    "prose_http_active_requests",
    "Number of currently active HTTP requests",
    ["method", "endpoint"],
)
ANALYSIS_ITEMS = Counter(
    "prose_analysis_items_total",
    "Total count of tokens, sentences and entities returned",
    ["kind"],
)
ANALYSIS_LATENCY = Histogram(
    "prose_analysis_duration_seconds",
    "Time spent inside the document analyzer",
    ["kind"],
)
ANALYSIS_FAILURES = Counter(
    "prose_analysis_failures_total",
    "Total count of failed or timed out analyses",
    ["kind"],
)


class PrometheusMiddleware:
    """ASGI middleware collecting request metrics for the monitored paths."""

    def __init__(self, app: Any, monitored_paths: list[str]) -> None:
        self.app = app
        self.monitored_paths = set(monitored_paths)
        logger.info("Prometheus middleware initialized")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["path"] not in self.monitored_paths:
            return await self.app(scope, receive, send)

        path = scope["path"]
        method = scope["method"]

        ACTIVE_REQUESTS.labels(method=method, endpoint=path).inc()
        start = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status_code = message["status"]
                REQUEST_COUNT.labels(
                    method=method, endpoint=path, status_code=status_code
                ).inc()
                if status_code >= 400:
                    ERROR_COUNT.labels(
                        method=method, endpoint=path, status_code=status_code
                    ).inc()
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            ERROR_COUNT.labels(method=method, endpoint=path, status_code=500).inc()
            logger.exception("Error in request: %s", str(e))
            raise
        finally:
            ACTIVE_REQUESTS.labels(method=method, endpoint=path).dec()
            REQUEST_LATENCY.labels(method=method, endpoint=path).observe(
                time.perf_counter() - start
            )


def track_analysis(kind: str, items: int, duration: float) -> None:
    """Record a successful analysis.

    Args:
        kind: One of "tokens", "sentences" or "entities".
        items: Number of items returned to the caller.
        duration: Seconds spent in the analyzer.
    """
    ANALYSIS_ITEMS.labels(kind=kind).inc(items)
    ANALYSIS_LATENCY.labels(kind=kind).observe(duration)


def track_analysis_failure(kind: str) -> None:
    ANALYSIS_FAILURES.labels(kind=kind).inc()


def metrics_endpoint() -> Callable:
    """Create metrics endpoint handler.

    Returns:
        Callable: Starlette endpoint handler function
    """

    async def metrics(request: Request) -> Response:
        return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)

    return metrics


def setup_prometheus(app: FastAPI, monitored_paths: list[str]) -> None:
    """Set up Prometheus metrics for FastAPI app.

    Args:
        app: FastAPI application instance
        monitored_paths: Request paths to collect HTTP metrics for
    """
    app.add_middleware(PrometheusMiddleware, monitored_paths=monitored_paths)
    app.add_route("/metrics", metrics_endpoint(), include_in_schema=False)
    logger.info(
        "Prometheus metrics setup complete. Monitoring paths: %s",
        ", ".join(monitored_paths),
    )
