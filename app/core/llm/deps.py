from __future__ import annotations

from app.core.llm.openai_client import OpenAIClient, OpenAIConfig
from app.core.settings import get_settings


def get_openai_client() -> OpenAIClient:
    """
    Dependency provider for OpenAIClient.

    The client is always returned, even without an API key, so that every
    report request fails the same way (MissingCredentialError) until the
    configuration is fixed.
    """

    settings = get_settings()
    config = OpenAIConfig(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout_seconds=float(settings.openai_timeout_seconds),
    )
    return OpenAIClient(config=config)
