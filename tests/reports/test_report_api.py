from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.llm.deps import get_openai_client
from app.core.llm.openai_client import OpenAIClient, OpenAIConfig
from app.main import create_app
from app.reports.prompt import PROMPT_PREAMBLE
from tests.reports._helpers import build_multipart

FIXED_REPORT = "Stub clinical report text."


@contextmanager
def _client_with_provider(handler) -> Iterator[TestClient]:
    """TestClient whose OpenAI client talks to `handler` through httpx.MockTransport."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = OpenAIConfig(
        api_key="sk-test",
        base_url="https://llm.test/v1",
        model="gpt-4o",
        timeout_seconds=5.0,
    )
    llm = OpenAIClient(config=config, http_client=http_client)

    app = create_app()
    app.dependency_overrides[get_openai_client] = lambda: llm
    try:
        with TestClient(app) as client:
            yield client
    finally:
        asyncio.run(http_client.aclose())


def _post_report(client: TestClient, parts: list[tuple[str, bytes, str | None]]) -> httpx.Response:
    body, content_type = build_multipart(parts)
    return client.post("/api/report", content=body, headers={"Content-Type": content_type})


def test_generate_report_end_to_end() -> None:
    outbound: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        outbound.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": FIXED_REPORT}}]},
        )

    with _client_with_provider(handler) as client:
        res = _post_report(
            client,
            [
                ("report_type", b"Appeal", None),
                ("denial_text", b"Lacked documentation", None),
                ("files[]", b"Subjective: pain", "note.txt"),
            ],
        )

    assert res.status_code == 200, res.text
    assert res.json() == {"report": FIXED_REPORT}
    assert "X-Request-ID" in res.headers

    assert len(outbound) == 1
    user_prompt = outbound[0]["messages"][1]["content"]
    assert user_prompt == (
        f"{PROMPT_PREAMBLE}\n\n"
        "Report type: Appeal\n\n"
        "Denial details provided by payer: Lacked documentation\n\n"
        "Attached clinical notes:\n"
        "--- note.txt ---\n"
        "Subjective: pain\n"
    )


def test_generate_report_accepts_standard_multipart_client() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": "  ok  "}}]},
        )

    with _client_with_provider(handler) as client:
        res = client.post(
            "/api/report",
            data={"report_type": "Appeal"},
            files=[
                ("files[]", ("a.txt", b"first", "text/plain")),
                ("files[]", ("b.txt", b"second", "text/plain")),
            ],
        )

    assert res.status_code == 200, res.text
    assert res.json() == {"report": "ok"}


def test_missing_api_key_returns_500_naming_the_setting(client: TestClient) -> None:
    res = _post_report(client, [("report_type", b"Appeal", None)])

    assert res.status_code == 500
    assert res.headers["content-type"].startswith("text/plain")
    assert res.text.startswith("Generation failed: ")
    assert "OPENAI_API_KEY" in res.text


def test_provider_error_returns_500_with_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    with _client_with_provider(handler) as client:
        res = _post_report(client, [("denial_text", b"Not medically necessary", None)])

    assert res.status_code == 500
    assert res.text.startswith("Generation failed: ")
    assert "500" in res.text


def test_empty_choices_returns_500() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    with _client_with_provider(handler) as client:
        res = _post_report(client, [])

    assert res.status_code == 500
    assert res.text == "Generation failed: No choices returned in OpenAI response"


def test_invalid_utf8_field_returns_400_naming_field() -> None:
    with _client_with_provider(lambda request: httpx.Response(500)) as client:
        res = _post_report(client, [("report_type", b"\xc3\x28", None)])

    assert res.status_code == 400
    assert "report_type" in res.text


def test_non_multipart_body_returns_400(client: TestClient) -> None:
    res = client.post("/api/report", json={"report_type": "Appeal"})
    assert res.status_code == 400


def test_oversize_upload_returns_413(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_UPLOAD_MB", "1")
    from app.core.settings import get_settings

    get_settings.cache_clear()

    with _client_with_provider(lambda request: httpx.Response(500)) as client:
        res = _post_report(client, [("files[]", b"x" * (1024 * 1024 + 1), "big.txt")])

    assert res.status_code == 413


def test_legacy_generate_route_is_not_served(client: TestClient) -> None:
    body, content_type = build_multipart([])
    res = client.post("/api/generate", content=body, headers={"Content-Type": content_type})
    assert res.status_code == 404


def test_truncated_body_returns_400_without_calling_provider() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": "ok"}}]}
        )

    body, content_type = build_multipart(
        [("report_type", b"Appeal", None), ("files[]", b"Subjective: pain", "note.txt")]
    )
    truncated = body[: body.index(b"Subjective") + len(b"Subj")]

    with _client_with_provider(handler) as client:
        res = client.post("/api/report", content=truncated, headers={"Content-Type": content_type})

    assert res.status_code == 400
    assert calls == []


def test_oversize_denial_text_returns_413(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_UPLOAD_MB", "1")
    from app.core.settings import get_settings

    get_settings.cache_clear()

    with _client_with_provider(lambda request: httpx.Response(500)) as client:
        res = _post_report(client, [("denial_text", b"x" * (1024 * 1024 + 1), None)])

    assert res.status_code == 413
