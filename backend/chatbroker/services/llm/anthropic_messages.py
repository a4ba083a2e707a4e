"""
Anthropic Messages API Provider

Handles Claude models:
- client.messages.create(stream=True)
- system prompt is a separate parameter, not a message
- only user/assistant turns go into messages
- text arrives in content_block_delta events as event.delta.text
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from chatbroker.services.llm.base import LLMProvider
from chatbroker.services.llm.exceptions import StreamFault
from chatbroker.services.llm.models import (
    ChatMessage,
    CompletionOptions,
    MessageRole,
    Provider,
)

logger = logging.getLogger(__name__)

# The Messages API requires max_tokens on every request
DEFAULT_MAX_TOKENS = 4096


class AnthropicProvider(LLMProvider):
    """Provider for the Anthropic Messages API (Claude models)."""

    provider = Provider.ANTHROPIC

    def __init__(self, api_key: str | None):
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")
        self.client = AsyncAnthropic(api_key=api_key)

    @staticmethod
    def convert_messages(
        messages: list[ChatMessage],
    ) -> tuple[str, list[dict[str, str]]]:
        """
        Split canonical messages into (system prompt, Anthropic messages).

        All system messages are joined with a blank line, in order.
        """
        system_prompt = "\n\n".join(
            msg.content for msg in messages if msg.role == MessageRole.SYSTEM
        )
        converted = [
            msg.to_dict()
            for msg in messages
            if msg.role in (MessageRole.USER, MessageRole.ASSISTANT)
        ]
        return system_prompt, converted

    async def stream_completion(
        self,
        model: str,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[Any]:
        system_prompt, anthropic_messages = self.convert_messages(messages)

        params: dict[str, Any] = {
            "max_tokens": (options.max_tokens if options and options.max_tokens else DEFAULT_MAX_TOKENS),
        }
        if system_prompt:
            params["system"] = system_prompt
        if options is not None and options.temperature is not None:
            params["temperature"] = options.temperature

        try:
            stream = await self.client.messages.create(
                model=model,
                messages=anthropic_messages,
                stream=True,
                **params,
            )
            async with stream:
                async for event in stream:
                    yield event
        except anthropic.AnthropicError as e:
            logger.error("Anthropic stream failed for model %s: %s", model, e)
            raise StreamFault(self.provider_name, model, str(e)) from e
