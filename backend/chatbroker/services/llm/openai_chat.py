"""
OpenAI Chat Completions API Provider

Handles GPT-4o, GPT-4o-mini and other Chat Completions API models:
- client.chat.completions.create(stream=True)
- messages passed through as role/content dicts
- chunks shaped as chunk.choices[0].delta.content
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from chatbroker.services.llm.base import LLMProvider
from chatbroker.services.llm.exceptions import StreamFault
from chatbroker.services.llm.models import ChatMessage, CompletionOptions, Provider

logger = logging.getLogger(__name__)


class OpenAIChatProvider(LLMProvider):
    """Provider for the OpenAI Chat Completions API."""

    provider = Provider.OPENAI

    def __init__(self, api_key: str | None):
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not set")
        self.client = AsyncOpenAI(api_key=api_key)

    def _build_params(self, options: CompletionOptions | None) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if options is None:
            return params
        if options.max_tokens is not None:
            params["max_completion_tokens"] = options.max_tokens
        if options.temperature is not None:
            params["temperature"] = options.temperature
        return params

    async def stream_completion(
        self,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[Any]:
        try:
            stream = await self.client.chat.completions.create(
                model=model,
                messages=[msg.to_dict() for msg in messages],
                stream=True,
                **self._build_params(options),
            )
            async with stream:
                async for chunk in stream:
                    yield chunk
        except openai.OpenAIError as e:
            logger.error("OpenAI stream failed for model %s: %s", model, e)
            raise StreamFault(self.provider_name, model, str(e)) from e
