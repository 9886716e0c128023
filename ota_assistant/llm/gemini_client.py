"""Google Gemini backend over the ``generateContent`` REST endpoint."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ota_assistant.config import GEMINI_API_KEY, GEMINI_BASE_URL, GEMINI_MODEL
from ota_assistant.llm.base import LLMGenerationError, LLMOptions, require_text
from ota_assistant.messages import ChatMessage
from ota_assistant.services.http_client import JsonHttpClient, UpstreamAPIError

logger = logging.getLogger(__name__)


class GeminiLLMClient:
    provider_id = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        *,
        http: JsonHttpClient | None = None,
    ):
        self._api_key = GEMINI_API_KEY if api_key is None else api_key
        self._model = model or GEMINI_MODEL
        self._http = http or JsonHttpClient("gemini", base_url or GEMINI_BASE_URL, max_retries=1)
        if not self._api_key:
            logger.warning("GEMINI_API_KEY is not set. Gemini calls will fail until it is configured.")

    @staticmethod
    def build_body(messages: Sequence[ChatMessage], options: LLMOptions) -> dict[str, Any]:
        """Translate a conversation into a Gemini request body.

        Gemini has no ``system`` or ``assistant`` roles in ``contents``: the
        system prompt goes to ``systemInstruction`` and assistant turns are
        sent as ``model``.
        """
        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
            if m.role != "system"
        ]
        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_tokens,
            },
        }
        system = next((m for m in messages if m.role == "system"), None)
        if system is not None:
            body["systemInstruction"] = {"role": "system", "parts": [{"text": system.content}]}
        return body

    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str:
        if not self._api_key:
            raise LLMGenerationError(
                "Gemini is not configured (missing GEMINI_API_KEY).", provider=self.provider_id,
            )

        body = self.build_body(messages, options or LLMOptions())
        try:
            data = self._http.post(
                f"/{self._model}:generateContent",
                params={"key": self._api_key},
                json_body=body,
            )
        except UpstreamAPIError as exc:
            logger.error("Error calling Gemini: %s", exc)
            raise LLMGenerationError(provider=self.provider_id) from exc

        parts = (((data or {}).get("candidates") or [{}])[0].get("content") or {}).get("parts") or []
        text = parts[0].get("text") if parts else None
        if not text:
            text = "\n".join(p.get("text", "") for p in parts)
        return require_text(text, self.provider_id)
