from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from app.core.llm.openai_client import OpenAIError
from app.domain.exceptions import (
    ClientDisconnectedError,
    ReportSubmissionError,
    UploadTooLargeError,
)

logger = logging.getLogger("app.reports")

# Non-standard "client closed request" status; nobody is listening for the body anyway.
CLIENT_CLOSED_REQUEST = 499


def _log_failure(*, request: Request, status_code: int, error: str, message: str) -> None:
    # IMPORTANT: do not log request bodies, field values, or any PHI.
    request_id = getattr(request.state, "request_id", None) or request.headers.get(
        "X-Request-ID"
    )
    logger.info(
        message,
        extra={
            "request_id": request_id,
            "http_method": request.method,
            "request_path": request.url.path,  # no query string
            "status_code": status_code,
            "error": error,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register application exception handlers."""

    @app.exception_handler(ReportSubmissionError)
    async def handle_report_submission_error(
        request: Request,
        exc: ReportSubmissionError,
    ) -> PlainTextResponse:
        status_code = 413 if isinstance(exc, UploadTooLargeError) else 400
        _log_failure(
            request=request,
            status_code=status_code,
            error=type(exc).__name__,
            message="Report submission rejected",
        )
        return PlainTextResponse(exc.message, status_code=status_code)

    @app.exception_handler(OpenAIError)
    async def handle_openai_error(request: Request, exc: OpenAIError) -> PlainTextResponse:
        # Messages carry status codes and parse diagnostics only, never prompt/output text.
        _log_failure(
            request=request,
            status_code=500,
            error=type(exc).__name__,
            message="Report generation failed",
        )
        return PlainTextResponse(f"Generation failed: {exc}", status_code=500)

    @app.exception_handler(ClientDisconnectedError)
    async def handle_client_disconnected(
        request: Request,
        exc: ClientDisconnectedError,
    ) -> Response:
        _log_failure(
            request=request,
            status_code=CLIENT_CLOSED_REQUEST,
            error="client_disconnected",
            message="Client disconnected before the report was generated",
        )
        return Response(status_code=CLIENT_CLOSED_REQUEST)
