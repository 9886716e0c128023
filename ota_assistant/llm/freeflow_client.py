"""Backend for the self-hosted FreeFlow chat service (``POST /chat``)."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ota_assistant.config import FREEFLOW_SERVICE_URL
from ota_assistant.llm.base import LLMGenerationError, LLMOptions, require_text
from ota_assistant.messages import ChatMessage
from ota_assistant.services.http_client import JsonHttpClient, UpstreamAPIError

logger = logging.getLogger(__name__)


class FreeflowLLMClient:
    provider_id = "freeflow"

    def __init__(self, service_url: str | None = None, *, http: JsonHttpClient | None = None):
        self._http = http or JsonHttpClient("freeflow", service_url or FREEFLOW_SERVICE_URL, max_retries=1)

    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str:
        opts = options or LLMOptions()
        try:
            data = self._http.post(
                "/chat",
                json_body={
                    "messages": [m.model_dump() for m in messages],
                    "temperature": opts.temperature,
                    "maxTokens": opts.max_tokens,
                },
            )
        except UpstreamAPIError as exc:
            logger.error("Error calling FreeFlow service: %s", exc)
            raise LLMGenerationError(provider=self.provider_id) from exc

        return require_text((data or {}).get("reply"), self.provider_id)
