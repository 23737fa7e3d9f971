"""Unit tests for the HTTP logging middleware.

We assert structured log fields via `caplog` (not message strings) and verify:
- X-Request-ID is generated, propagated, or replaced when unsafe
- Successful requests emit exactly one INFO record with metadata only
- Unhandled exceptions emit an ERROR record with a stack trace and return 500
"""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.middleware.http_logging import HttpLoggingMiddleware


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(HttpLoggingMiddleware)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/reports/{report_id}")
    async def get_report(report_id: str) -> dict[str, str]:
        return {"id": report_id}

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    return app


def _records(caplog: pytest.LogCaptureFixture, level: int) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "app.http" and r.levelno == level]


def test_successful_request_logs_route_template_only(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="app.http")

    with TestClient(_make_app()) as client:
        res = client.get("/reports/denial-123?denial_text=Not+medically+necessary")

    assert res.status_code == 200
    assert res.headers["x-request-id"]

    info_records = _records(caplog, logging.INFO)
    assert len(info_records) == 1
    record = info_records[0]
    assert record.__dict__["request_id"] == res.headers["x-request-id"]
    assert record.__dict__["http_method"] == "GET"
    # Route template, not the raw path or query string.
    assert record.__dict__["request_path"] == "/reports/{report_id}"
    assert record.__dict__["status_code"] == 200
    assert record.__dict__["duration_ms"] >= 0


def test_propagates_valid_request_id(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="app.http")

    with TestClient(_make_app()) as client:
        res = client.get("/health", headers={"X-Request-ID": "req_abc-123"})

    assert res.headers["x-request-id"] == "req_abc-123"
    assert _records(caplog, logging.INFO)[0].__dict__["request_id"] == "req_abc-123"


def test_replaces_unsafe_request_id() -> None:
    with TestClient(_make_app()) as client:
        res = client.get("/health", headers={"X-Request-ID": "bad id\twith spaces"})

    assert res.headers["x-request-id"] != "bad id\twith spaces"
    assert len(res.headers["x-request-id"]) == 32


def test_unhandled_exception_returns_500_and_logs_error(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="app.http")

    with TestClient(_make_app(), raise_server_exceptions=False) as client:
        res = client.get("/boom", headers={"X-Request-ID": "req_err_001"})

    assert res.status_code == 500

    error_records = _records(caplog, logging.ERROR)
    assert len(error_records) == 1
    record = error_records[0]
    assert record.__dict__["request_id"] == "req_err_001"
    assert record.__dict__["request_path"] == "/boom"
    assert record.__dict__["status_code"] == 500
    assert record.exc_info
