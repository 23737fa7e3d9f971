"""Wire shapes for the OpenAI chat-completion API (only the fields we use)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

ChatRole = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    model: str
    messages: list[ChatMessage]


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: ChatMessage


class ChatResponse(BaseModel):
    # The provider returns many more fields (id, usage, ...); we only rely on choices.
    model_config = ConfigDict(extra="ignore")

    choices: list[ChatChoice]
