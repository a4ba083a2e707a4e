"""
LLM Orchestrator

Shared logic for all providers:
- Model → provider resolution, failing before any network call
- Chunk normalization for streamed responses
- Message history assembly with threshold-triggered summarization

The orchestrator delegates the actual API call to the selected provider,
keeping provider implementations clean and focused on API translation.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import Request

from chatbroker.core.config import Settings
from chatbroker.services.llm.base import LLMProvider
from chatbroker.services.llm.exceptions import ProviderUnavailableError
from chatbroker.services.llm.history import ConversationStore, HistoryAssembler
from chatbroker.services.llm.models import ChatMessage, CompletionOptions, Provider
from chatbroker.services.llm.normalizer import extract_delta
from chatbroker.services.llm.registry import (
    ProviderSet,
    create_providers,
    list_available_models,
    resolve_provider,
)
from chatbroker.services.llm.summarizer import SUMMARIZATION_PROVIDER, Summarizer

logger = logging.getLogger(__name__)


class LLMOrchestrator:
    """Routes chat calls to the provider that serves the requested model."""

    def __init__(self, providers: ProviderSet):
        self.providers = providers
        self.history = HistoryAssembler(
            Summarizer(providers.get(SUMMARIZATION_PROVIDER))
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMOrchestrator":
        return cls(create_providers(settings))

    def _get_adapter(self, model: str) -> LLMProvider:
        provider = resolve_provider(model)
        adapter = self.providers.get(provider)
        if adapter is None:
            raise ProviderUnavailableError(
                provider.value,
                model,
                [p.value for p in self.providers.available],
            )
        return adapter

    def stream_chat(
        self,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion as text deltas.

        Resolution happens on call, so an unknown model or missing provider
        raises here rather than on first iteration. Close the returned
        iterator (e.g. with contextlib.aclosing) to release the vendor stream
        when stopping early.

        Raises:
            UnsupportedModelError: Unknown model
            ProviderUnavailableError: Model known but its provider has no adapter
        """
        adapter = self._get_adapter(model)
        logger.info("stream_chat model=%s provider=%s", model, adapter.provider_name)
        return self._stream_deltas(adapter, model, messages, options)

    async def _stream_deltas(
        self,
        adapter: LLMProvider,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None,
    ) -> AsyncIterator[str]:
        async with aclosing(adapter.stream_completion(model, messages, options)) as chunks:
            async for chunk in chunks:
                text = extract_delta(chunk, adapter.provider)
                if text:
                    yield text

    async def get_chat_completion(
        self,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        """Return the complete response text for a chat request."""
        adapter = self._get_adapter(model)
        logger.info("get_chat_completion model=%s provider=%s", model, adapter.provider_name)
        return await adapter.full_completion(model, messages, options)

    def get_available_models(self) -> dict[Provider, list[str]]:
        return list_available_models(self.providers.adapters)

    async def get_message_history(
        self,
        store: ConversationStore,
        conversation_id,
        summarize: bool = True,
    ) -> list[ChatMessage]:
        return await self.history.build_history(store, conversation_id, summarize)


def get_orchestrator(request: Request) -> LLMOrchestrator:
    """FastAPI dependency: the orchestrator built during application startup."""
    return request.app.state.orchestrator
