from __future__ import annotations

import time
from typing import cast

from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.middleware.http_logging import route_template

metrics_router = APIRouter(tags=["metrics"])

# IMPORTANT (healthcare safety):
# - Labels carry route templates and fixed outcome names only, never submitted values.

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=("method", "route", "status_code"),
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=("method", "route", "status_code"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

llm_requests_total = Counter(
    "llm_requests_total",
    "Total chat-completion calls made for report generation",
    labelnames=("outcome",),
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "Chat-completion call duration in seconds",
    labelnames=("outcome",),
    # Report generation is slow: most calls land between a few seconds and a minute.
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 45.0, 60.0, 120.0),
)


def observe_llm_request(*, outcome: str, duration_seconds: float) -> None:
    llm_requests_total.labels(outcome=outcome).inc()
    llm_request_duration_seconds.labels(outcome=outcome).observe(duration_seconds)


class PrometheusMetricsMiddleware:
    """Pure ASGI so the client's `http.disconnect` still reaches the routes."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code = 500

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            route_label = route_template(scope)
            method = scope["method"]
            code = str(int(status_code))
            duration = time.perf_counter() - started
            http_requests_total.labels(method=method, route=route_label, status_code=code).inc()
            http_request_duration_seconds.labels(
                method=method, route=route_label, status_code=code
            ).observe(duration)


@metrics_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    payload = generate_latest()
    return Response(content=cast(bytes, payload), media_type=CONTENT_TYPE_LATEST)
