"""
Abstract base class for all LLM providers.

Each provider implements the API-specific translation layer and yields
raw vendor chunks. Text extraction is shared (see normalizer), and model
resolution lives in the orchestrator.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from chatbroker.services.llm.models import ChatMessage, CompletionOptions, Provider
from chatbroker.services.llm.normalizer import extract_delta


class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    provider: Provider

    @property
    def provider_name(self) -> str:
        return self.provider.value

    @abstractmethod
    def stream_completion(
        self,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[Any]:
        """
        Stream a chat completion as raw vendor chunks.

        Implementations are async generators that hold the vendor stream in
        an ``async with`` block, so ``aclose()`` releases the connection when
        the consumer stops early.

        Args:
            model: The API model identifier (e.g., "gpt-4o")
            messages: Canonical message list, oldest first
            options: Optional sampling/length settings

        Yields:
            Vendor chunk objects, in the order the vendor emitted them

        Raises:
            StreamFault: At the point where the vendor call fails
        """
        ...

    async def full_completion(
        self,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        """
        Drain stream_completion and return the concatenated text.

        All-or-nothing: if the stream faults, the partial text is dropped
        and the fault propagates.
        """
        parts: list[str] = []
        async with aclosing(self.stream_completion(model, messages, options)) as chunks:
            async for chunk in chunks:
                parts.append(extract_delta(chunk, self.provider))
        return "".join(parts)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider_name})"
