from __future__ import annotations

from pydantic import BaseModel, Field


class HealthOut(BaseModel):
    """Health check response."""

    status: str = Field(
        description="`ok` when the API process is up; the LLM provider is not contacted.",
        examples=["ok"],
    )
