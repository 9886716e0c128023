"""Contract shared by every model backend and by the failover chain."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from ota_assistant.messages import ChatMessage


class LLMGenerationError(Exception):
    """A backend could not produce a reply (transport, provider or empty output)."""

    def __init__(self, message: str = "Failed to generate a reply.", *, provider: str | None = None):
        self.provider = provider
        super().__init__(message)


@dataclass(frozen=True)
class LLMOptions:
    temperature: float = 0.3
    max_tokens: int = 600


class LLMClient(Protocol):
    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str: ...


def require_text(text: str | None, provider: str) -> str:
    """Return *text* trimmed, or raise if the provider sent back nothing."""
    trimmed = (text or "").strip()
    if not trimmed:
        raise LLMGenerationError("LLM returned an empty response.", provider=provider)
    return trimmed
