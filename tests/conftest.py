from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    # Environment variables win over a developer's `.env`, so pin the values tests rely on.
    # An empty key means tests can never reach the real provider.
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("MAX_UPLOAD_MB", "10")
    # Settings are cached via @lru_cache; clear so each test sees its own environment.
    from app.core.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c
