"""Anthropic backend through LangChain's ``ChatAnthropic``."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage

from ota_assistant.config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL
from ota_assistant.llm.base import LLMGenerationError, LLMOptions, require_text
from ota_assistant.messages import ChatMessage

logger = logging.getLogger(__name__)

_ROLE_TO_MESSAGE: dict[str, Callable[[str], AnyMessage]] = {
    "system": lambda text: SystemMessage(content=text),
    "user": lambda text: HumanMessage(content=text),
    "assistant": lambda text: AIMessage(content=text),
}


def to_langchain_messages(messages: Sequence[ChatMessage]) -> list[AnyMessage]:
    return [_ROLE_TO_MESSAGE[m.role](m.content) for m in messages]


class AnthropicLLMClient:
    provider_id = "anthropic"

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self._api_key = ANTHROPIC_API_KEY if api_key is None else api_key
        self._model = model or ANTHROPIC_MODEL
        self._llms: dict[LLMOptions, ChatAnthropic] = {}
        if not self._api_key:
            logger.warning("ANTHROPIC_API_KEY is not set. Anthropic calls will fail until it is configured.")

    def _build_llm(self, options: LLMOptions) -> ChatAnthropic:
        """Build (once per option set) the chat model for *options*."""
        llm = self._llms.get(options)
        if llm is None:
            llm = ChatAnthropic(
                model=self._model,
                api_key=self._api_key,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
            self._llms[options] = llm
        return llm

    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str:
        if not self._api_key:
            raise LLMGenerationError(
                "Anthropic is not configured (missing ANTHROPIC_API_KEY).", provider=self.provider_id,
            )

        llm = self._build_llm(options or LLMOptions())
        try:
            response = llm.invoke(to_langchain_messages(messages))
        except Exception as exc:
            logger.error("Error calling Anthropic: %s", exc)
            raise LLMGenerationError(provider=self.provider_id) from exc

        content = response.content
        if isinstance(content, list):
            # Content blocks: keep the text ones
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return require_text(content, self.provider_id)
