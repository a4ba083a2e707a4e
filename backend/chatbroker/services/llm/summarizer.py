"""
Conversation Summarizer

Compresses older conversation turns into a short bullet digest.

Always uses one fixed provider/model, independent of the model the
conversation itself runs on, so summary quality and cost are set here.
Embedded images and attachments are replaced with a placeholder before
anything is sent.
"""

import logging
import re

from chatbroker.services.llm.base import LLMProvider
from chatbroker.services.llm.exceptions import SummarizationUnavailableError
from chatbroker.services.llm.models import (
    ChatMessage,
    CompletionOptions,
    MessageRole,
    Provider,
)

logger = logging.getLogger(__name__)

SUMMARIZATION_PROVIDER = Provider.OPENAI
SUMMARIZATION_MODEL = "gpt-4o-mini"

RESOURCE_PLACEHOLDER = "<resource />"

# Applied in order: markdown images, HTML images, base64 data URIs, attachment markers
RESOURCE_PATTERNS = [
    re.compile(r"!\[.*?\]\(.*?\)"),
    re.compile(r"<img[^>]*>"),
    re.compile(r"data:image/[^;]+;base64,[^\"\s]+"),
    re.compile(r"\[attachment:.*?\]"),
]

SUMMARY_INSTRUCTION = (
    "You are a helpful assistant that summarizes conversations. "
    "Create a concise summary of the following conversation in bullet points. "
    "Focus on the main topics, questions, and answers. "
    "Be factual and objective. Do not add information not present in the conversation. "
    "Format your response as a list of bullet points using the '- ' prefix."
)


def scrub_resources(text: str) -> str:
    """Replace image/attachment references with the placeholder token."""
    for pattern in RESOURCE_PATTERNS:
        text = pattern.sub(RESOURCE_PLACEHOLDER, text)
    return text


def build_transcript(messages: list[ChatMessage]) -> str:
    return "\n\n".join(
        f"{msg.role.value}: {scrub_resources(msg.content)}" for msg in messages
    )


class Summarizer:
    """Summarizes message lists with the fixed summarization provider."""

    def __init__(self, provider: LLMProvider | None):
        # None when the summarization provider has no credentials
        self.provider = provider

    async def summarize(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 500,
        temperature: float = 0.3,
    ) -> str:
        """
        Generate a bullet-point summary of the given messages.

        Args:
            messages: The messages to compress, oldest first
            max_tokens: Length cap for the summary
            temperature: Sampling temperature

        Returns:
            The summary text

        Raises:
            SummarizationUnavailableError: If the summarization provider is not initialized
            StreamFault: If the provider call fails
        """
        if self.provider is None:
            raise SummarizationUnavailableError(
                SUMMARIZATION_PROVIDER.value, SUMMARIZATION_MODEL
            )

        request = [
            ChatMessage(role=MessageRole.SYSTEM, content=SUMMARY_INSTRUCTION),
            ChatMessage(
                role=MessageRole.USER,
                content=(
                    "Please summarize the following conversation in bullet points:\n\n"
                    + build_transcript(messages)
                ),
            ),
        ]

        logger.info(
            "Summarizing %d messages with %s", len(messages), SUMMARIZATION_MODEL
        )
        return await self.provider.full_completion(
            SUMMARIZATION_MODEL,
            request,
            CompletionOptions(max_tokens=max_tokens, temperature=temperature),
        )
