from __future__ import annotations

from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from app.core.llm.schemas import ChatMessage, ChatRequest, ChatResponse

API_KEY_SETTING = "OPENAI_API_KEY"

REPORT_SYSTEM_PROMPT = (
    "You are a medical documentation expert. Please produce detailed, professional, "
    "and insurance-appropriate clinical narratives."
)


class OpenAIError(Exception):
    """Base error for OpenAI client failures (mapped to 500 at the edge)."""


class MissingCredentialError(OpenAIError):
    """Raised when no API key is configured."""

    def __init__(self) -> None:
        super().__init__(f"{API_KEY_SETTING} is not set in environment variables")


class TransportError(OpenAIError):
    """Raised when the request could not be sent or no response arrived in time."""


class ProviderError(OpenAIError):
    """Raised when OpenAI answers with a non-success status code."""

    def __init__(self, status_code: int, reason: str = ""):
        status = f"{status_code} {reason}".strip()
        super().__init__(f"OpenAI API responded with non-success status: {status}")
        self.status_code = status_code


class DecodeError(OpenAIError):
    """Raised when a successful response body does not have the chat-completion shape."""


class EmptyResponseError(OpenAIError):
    """Raised when OpenAI returns no choices."""

    def __init__(self) -> None:
        super().__init__("No choices returned in OpenAI response")


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str | None
    base_url: str
    model: str
    timeout_seconds: float


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class OpenAIClient:
    """
    Minimal OpenAI chat-completion client used for report generation.

    Design notes:
    - No logging in this module (prompts/outputs may contain PHI).
    - Exactly one request per call: no retries and no streaming.
    - The API key is checked on every call so a missing key fails the request,
      not the process.
    """

    def __init__(self, *, config: OpenAIConfig, http_client: httpx.AsyncClient | None = None):
        self._config = config
        # Optional shared client (tests inject one backed by httpx.MockTransport).
        self._http_client = http_client

    @property
    def model(self) -> str:
        return self._config.model

    def _build_request(self, prompt: str) -> ChatRequest:
        return ChatRequest(
            model=self._config.model,
            messages=[
                ChatMessage(role="system", content=REPORT_SYSTEM_PROMPT),
                ChatMessage(role="user", content=prompt),
            ],
        )

    async def _post(self, *, url: str, headers: dict[str, str], body: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(
                url, headers=headers, json=body, timeout=self._config.timeout_seconds
            )
        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            return await client.post(url, headers=headers, json=body)

    async def complete(self, prompt: str) -> str:
        api_key = (self._config.api_key or "").strip()
        if not api_key:
            raise MissingCredentialError()

        url = f"{self._config.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        body = self._build_request(prompt).model_dump()

        try:
            resp = await self._post(url=url, headers=headers, body=body)
        except httpx.TimeoutException as exc:
            raise TransportError("OpenAI request timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to send OpenAI request: {exc}") from exc

        if not resp.is_success:
            raise ProviderError(resp.status_code, resp.reason_phrase)

        try:
            parsed = ChatResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            raise DecodeError(
                f"Failed to parse OpenAI response JSON: {_describe_validation_error(exc)}"
            ) from exc

        if not parsed.choices:
            raise EmptyResponseError()

        return parsed.choices[0].message.content.strip()
