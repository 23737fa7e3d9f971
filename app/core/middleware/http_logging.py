"""HTTP logging middleware.

- Logs request metadata only: report submissions contain denial letters and
  clinical notes, so bodies, query strings and headers never reach the logs.
- Generates or propagates X-Request-ID so a failed report can be traced.
- Pure ASGI: `receive` is passed through untouched so routes can still see
  `http.disconnect` from the client.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("app.http")

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def request_id_for(headers: Headers) -> str:
    """Return the caller's X-Request-ID when it is safe to log, else a fresh UUID4 hex."""

    candidate = headers.get(REQUEST_ID_HEADER)
    if candidate and _SAFE_REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


def route_template(scope: Scope) -> str:
    """Route template matched by the router, or "unmatched"."""

    route = scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return "unmatched"


class HttpLoggingMiddleware:
    """One log record per request, plus a stack trace for unhandled exceptions."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = request_id_for(Headers(scope=scope))
        started = time.perf_counter()
        # Route handlers and exception handlers read it back via request.state.
        scope.setdefault("state", {})["request_id"] = request_id
        status_code = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        def metadata(code: int) -> dict[str, object]:
            return {
                "request_id": request_id,
                "http_method": scope["method"],
                "request_path": route_template(scope),
                "status_code": code,
                "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
            }

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception:  # noqa: BLE001 - logged with stack trace, then re-raised
            logger.exception("Unhandled exception while processing request", extra=metadata(500))
            raise

        logger.info("Request completed", extra=metadata(status_code))
