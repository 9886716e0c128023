"""Offline backend: a fixed demo answer, no network."""

from __future__ import annotations

from collections.abc import Sequence

from ota_assistant.llm.base import LLMOptions
from ota_assistant.messages import ChatMessage, last_user_content


class MockLLMClient:
    provider_id = "mock"

    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str:
        question = last_user_content(messages)
        paragraphs = [
            "This is a demo response from the help center chatbot.",
            "We are currently running in offline mode with no connection to any external LLM.",
            (
                f'I received your question: "{question}". In a real environment, you would '
                "see an AI-generated response with the next steps."
                if question
                else "In a real environment, you would see an AI-generated response with the next steps."
            ),
        ]
        return "\n\n".join(paragraphs)
