"""Ordered failover across interchangeable model backends.

The primary provider comes from ``LLM_PROVIDER``; the others line up behind
it in a fixed order and the offline mock always comes last, so a turn can
still be answered when every networked provider is down.  Attempts are
strictly sequential: the next backend is only called once the previous one
has failed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ota_assistant.config import LLM_PROVIDER
from ota_assistant.llm.anthropic_client import AnthropicLLMClient
from ota_assistant.llm.base import LLMClient, LLMGenerationError, LLMOptions
from ota_assistant.llm.freeflow_client import FreeflowLLMClient
from ota_assistant.llm.gemini_client import GeminiLLMClient
from ota_assistant.llm.mock_client import MockLLMClient
from ota_assistant.llm.openai_client import OpenAILLMClient
from ota_assistant.messages import ChatMessage
from ota_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)

PROVIDER_IDS = ("gemini", "openai", "anthropic", "freeflow", "mock")
FALLBACK_ORDER = ("gemini", "openai", "anthropic")
DEFAULT_PROVIDER = "gemini"


class AllProvidersFailedError(LLMGenerationError):
    """Every configured backend failed for this request."""

    def __init__(self, attempted: Sequence[str]):
        self.attempted = tuple(attempted)
        super().__init__(f"All LLM providers failed ({', '.join(self.attempted) or 'none configured'}).")


@dataclass(frozen=True)
class ProviderEntry:
    id: str
    backend: LLMClient


def first_success(attempts: Sequence[tuple[str, Callable[[], str]]]) -> str:
    """Run *attempts* in order and return the first non-blank result.

    A blank result counts as a failure.  When everything fails,
    :class:`AllProvidersFailedError` is raised from the last error.
    """
    last_error: Exception | None = None
    for name, attempt in attempts:
        try:
            result = attempt()
            if not result or not result.strip():
                raise LLMGenerationError("LLM returned an empty response.", provider=name)
            return result
        except Exception as exc:
            last_error = exc
            logger.warning("Provider %r failed (%s), trying next if available", name, exc)

    raise AllProvidersFailedError([name for name, _ in attempts]) from last_error


def ordered_provider_ids(primary: str) -> list[str]:
    """Return the provider ids to try, primary first and mock last."""
    primary = primary.strip().lower()
    if primary == "mock":
        return ["mock"]
    if primary not in PROVIDER_IDS:
        logger.warning("Unknown LLM_PROVIDER %r, using %s", primary, DEFAULT_PROVIDER)
        primary = DEFAULT_PROVIDER
    return [primary, *(p for p in FALLBACK_ORDER if p != primary), "mock"]


_BACKEND_FACTORIES: dict[str, Callable[[], LLMClient]] = {
    "gemini": GeminiLLMClient,
    "openai": OpenAILLMClient,
    "anthropic": AnthropicLLMClient,
    "freeflow": FreeflowLLMClient,
    "mock": MockLLMClient,
}


class FailoverLLMClient:
    """One ``generate_reply`` backed by an ordered list of providers."""

    def __init__(self, providers: Sequence[ProviderEntry]):
        if not providers:
            raise ValueError("FailoverLLMClient needs at least one provider")
        self._providers = list(providers)

    @classmethod
    def from_primary(cls, primary: str) -> FailoverLLMClient:
        return cls([ProviderEntry(pid, _BACKEND_FACTORIES[pid]()) for pid in ordered_provider_ids(primary)])

    @property
    def provider_ids(self) -> list[str]:
        return [p.id for p in self._providers]

    def _attempt(self, provider: ProviderEntry, messages: Sequence[ChatMessage], options: LLMOptions | None):
        def run() -> str:
            logger.info("Trying provider %r to generate reply...", provider.id)
            with metrics.track("llm", provider.id):
                reply = provider.backend.generate_reply(messages, options)
            logger.info("Provider %r succeeded.", provider.id)
            return reply

        return provider.id, run

    def generate_reply(
        self,
        messages: Sequence[ChatMessage],
        options: LLMOptions | None = None,
    ) -> str:
        try:
            return first_success([self._attempt(p, messages, options) for p in self._providers])
        except AllProvidersFailedError:
            logger.error("All configured LLM providers failed: %s", ", ".join(self.provider_ids))
            raise


def build_llm_client(primary: str | None = None) -> LLMClient:
    """Return the generator for ``LLM_PROVIDER``.

    Mock mode skips the chain altogether and never touches the network.
    """
    primary = (primary or LLM_PROVIDER).strip().lower()
    if primary == "mock":
        logger.info("LLM_PROVIDER=mock: using the offline backend only")
        return MockLLMClient()
    client = FailoverLLMClient.from_primary(primary)
    logger.info("LLM failover order: %s", " -> ".join(client.provider_ids))
    return client
