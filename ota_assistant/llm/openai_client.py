"""OpenAI Chat Completions backend."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ota_assistant.config import OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL
from ota_assistant.llm.base import LLMGenerationError, LLMOptions, require_text
from ota_assistant.messages import ChatMessage
from ota_assistant.services.http_client import JsonHttpClient, UpstreamAPIError

logger = logging.getLogger(__name__)


class OpenAILLMClient:
    provider_id = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        http: JsonHttpClient | None = None,
    ):
        self._api_key = OPENAI_API_KEY if api_key is None else api_key
        self._model = model or OPENAI_MODEL
        self._http = http or JsonHttpClient(
            "openai",
            OPENAI_BASE_URL,
            headers={"Authorization": f"Bearer {self._api_key}"},
            max_retries=1,
        )
        if not self._api_key:
            logger.warning("OPENAI_API_KEY is not set. OpenAI calls will fail until it is configured.")

    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str:
        if not self._api_key:
            raise LLMGenerationError(
                "LLM is not configured (missing OPENAI_API_KEY).", provider=self.provider_id,
            )

        opts = options or LLMOptions()
        try:
            data = self._http.post(
                "/chat/completions",
                json_body={
                    "model": self._model,
                    "messages": [{"role": m.role, "content": m.content} for m in messages],
                    "temperature": opts.temperature,
                    "max_tokens": opts.max_tokens,
                },
            )
        except UpstreamAPIError as exc:
            logger.error("Error calling OpenAI: %s", exc)
            raise LLMGenerationError(provider=self.provider_id) from exc

        choices = (data or {}).get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content")
        return require_text(content, self.provider_id)
