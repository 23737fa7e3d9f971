from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from app.core.cancellation import run_until_disconnected
from app.core.llm.deps import get_openai_client
from app.core.settings import get_settings
from app.reports.form_parser import parse_report_form
from app.reports.schemas import ReportOut
from app.reports.service import LLMClient, ReportService

router = APIRouter(prefix="/api", tags=["reports"])
logger = logging.getLogger("app.reports")

_MULTIPART_REQUEST_BODY = {
    "required": False,
    "content": {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "properties": {
                    "report_type": {
                        "type": "string",
                        "description": "Kind of report to produce (e.g. Appeal).",
                    },
                    "denial_text": {
                        "type": "string",
                        "description": "Denial reason as provided by the payer.",
                    },
                    "files[]": {
                        "type": "array",
                        "items": {"type": "string", "format": "binary"},
                        "description": "Clinical notes to include (decoded as UTF-8 text).",
                    },
                },
            }
        }
    },
}


@router.post(
    "/report",
    response_model=ReportOut,
    summary="Generate an insurance-ready clinical report",
    description=(
        "Accepts a multipart form with an optional report type, payer denial details and "
        "any number of attached clinical notes (`files[]`), and returns a report generated "
        "by the language model.\n\n"
        "Nothing submitted here is stored. Errors are returned as plain text: 400 for "
        "malformed input, 413 for oversize uploads, 500 when generation fails."
    ),
    openapi_extra={"requestBody": _MULTIPART_REQUEST_BODY},
)
async def create_report(
    request: Request,
    openai_client: LLMClient = Depends(get_openai_client),
) -> ReportOut:
    """
    IMPORTANT (safety):
    - We do not store uploads or LLM output anywhere.
    - We do not log field values, file contents, prompts or LLM outputs (may contain PHI).
    """

    settings = get_settings()
    report_request = await parse_report_form(
        content_type=request.headers.get("content-type"),
        stream=request.stream(),
        max_upload_bytes=settings.max_upload_bytes,
    )

    request_id = getattr(request.state, "request_id", None)
    logger.info(
        "Report submission parsed",
        extra={
            "request_id": request_id,
            "file_count": len(report_request.files),
            "upload_bytes": sum(len(f.content) for f in report_request.files),
        },
    )

    svc = ReportService(llm_client=openai_client)
    report = await run_until_disconnected(
        request, svc.generate_report(report_request=report_request)
    )

    logger.info("Report generated", extra={"request_id": request_id, "success": True})
    return report
