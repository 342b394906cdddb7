from __future__ import annotations

"""Prometheus metrics for the interview relay.

Adds an HTTP middleware that records request latency per method/path/status,
plus counters for relayed stream frames and upstream failures.
"""

import time
from typing import Callable, Awaitable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

# Streaming requests stay open for the whole completion, hence the long tail
REQUEST_LATENCY = Histogram(
    "relay_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

STREAM_FRAMES = Counter(
    "relay_stream_frames_total",
    "Upstream completion stream frames by outcome",
    labelnames=("outcome",),
)

UPSTREAM_ERRORS = Counter(
    "relay_upstream_errors_total",
    "Failed calls to the record store or vendor APIs",
    labelnames=("service",),
)


def sanitize_path(path: str) -> str:
    """Reduce a request path to its first segment (e.g. ``/voice-chat``)."""
    if not path:
        return "/"
    segs = path.split("?")[0].split("/")
    if len(segs) > 1:
        return "/" + segs[1]
    return path


def record_upstream_error(service: str) -> None:
    UPSTREAM_ERRORS.labels(service=service).inc()


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        REQUEST_LATENCY.labels(
            method=request.method,
            path=sanitize_path(request.url.path),
            status=str(response.status_code),
        ).observe(elapsed)
        return response

    return middleware
