from __future__ import annotations

import asyncio
import time
from typing import Protocol

from app.core.llm.openai_client import (
    DecodeError,
    EmptyResponseError,
    MissingCredentialError,
    OpenAIError,
    ProviderError,
    TransportError,
)
from app.core.metrics import observe_llm_request
from app.reports.prompt import build_prompt
from app.reports.schemas import ReportOut, ReportRequest


class LLMClient(Protocol):
    async def complete(self, prompt: str) -> str: ...


_OUTCOME_BY_ERROR: dict[type[OpenAIError], str] = {
    MissingCredentialError: "missing_credential",
    TransportError: "transport_error",
    ProviderError: "provider_error",
    DecodeError: "decode_error",
    EmptyResponseError: "empty_response",
}


def llm_outcome_label(exc: BaseException | None) -> str:
    if exc is None:
        return "success"
    if isinstance(exc, asyncio.CancelledError):
        return "cancelled"
    return _OUTCOME_BY_ERROR.get(type(exc), "error")


class ReportService:
    def __init__(self, *, llm_client: LLMClient):
        self._llm = llm_client

    async def generate_report(self, *, report_request: ReportRequest) -> ReportOut:
        """Render the prompt for one submission and ask the LLM for the report.

        Errors from the LLM client propagate unchanged; they are translated into
        HTTP responses at the edge.
        """

        prompt = build_prompt(report_request)

        started = time.perf_counter()
        failure: BaseException | None = None
        try:
            text = await self._llm.complete(prompt)
        except BaseException as exc:  # noqa: BLE001 - recorded for metrics, then re-raised
            failure = exc
            raise
        finally:
            observe_llm_request(
                outcome=llm_outcome_label(failure),
                duration_seconds=time.perf_counter() - started,
            )

        return ReportOut(report=text.strip())
