"""Chat message type shared by the API, the agent and the model backends."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """One entry of an ordered conversation."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(role="assistant", content=content)


def build_conversation(
    system_prompt: str,
    history: Sequence[ChatMessage],
    max_messages: int,
) -> list[ChatMessage]:
    """Pin *system_prompt* at index 0 and keep the last *max_messages* turns.

    System entries inside *history* are dropped so the pinned prompt stays
    the only one.
    """
    turns = [m for m in history if m.role != "system"]
    if max_messages > 0:
        turns = turns[-max_messages:]
    else:
        turns = []
    return [ChatMessage.system(system_prompt), *turns]


def last_user_content(messages: Sequence[ChatMessage]) -> str:
    """Return the content of the most recent user message, or ``""``."""
    for msg in reversed(messages):
        if msg.role == "user":
            return msg.content
    return ""
