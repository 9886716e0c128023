"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ota_assistant.messages import ChatMessage

MAX_MESSAGE_CHARS = 4000


class ChatRequest(BaseModel):
    """A chat turn: the full conversation so far, oldest first."""

    messages: list[ChatMessage] = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Conversation history; the last entry is normally the customer's new message",
    )
    context: dict[str, Any] | None = Field(
        default=None,
        description="Optional extra info (e.g. booking reference); currently unused",
    )

    @field_validator("messages")
    @classmethod
    def _limit_message_length(cls, messages: list[ChatMessage]) -> list[ChatMessage]:
        for msg in messages:
            if len(msg.content) > MAX_MESSAGE_CHARS:
                raise ValueError(f"Each message must be at most {MAX_MESSAGE_CHARS} characters")
        return messages


class ChatResponse(BaseModel):
    """The assistant's reply for this turn."""

    reply: str = Field(..., description="The assistant's response message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "ota-assistant"
