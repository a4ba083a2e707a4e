"""
History Assembler

Builds the message list sent to a provider for one chat turn:
persisted messages in creation order, headed by the conversation's
system prompt, with older turns optionally folded into a summary.

Truncation only ever happens together with summarization. When
summarize=False the full history is returned even above the threshold.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from chatbroker.services.llm.models import ChatMessage, MessageRole
from chatbroker.services.llm.summarizer import Summarizer

logger = logging.getLogger(__name__)

# Histories longer than this are candidates for summarization
CONVERSATION_MESSAGES_THRESHOLD = 20

RECOGNIZED_ROLES = {role.value for role in MessageRole}


class StoredMessage(Protocol):
    role: str
    content: str
    created_at: datetime


class ConversationStore(Protocol):
    """Read side of the conversation store used to assemble history."""

    async def load_messages(self, conversation_id) -> Sequence[StoredMessage]:
        """Messages of the conversation, oldest first."""
        ...

    async def load_system_prompt(self, conversation_id) -> str | None:
        ...


class HistoryAssembler:
    def __init__(
        self,
        summarizer: Summarizer,
        threshold: int = CONVERSATION_MESSAGES_THRESHOLD,
    ):
        self.summarizer = summarizer
        self.threshold = threshold

    async def build_history(
        self,
        store: ConversationStore,
        conversation_id,
        summarize: bool = True,
    ) -> list[ChatMessage]:
        """
        Assemble the provider-facing history of a conversation.

        Args:
            store: Conversation store to read from
            conversation_id: The conversation to load
            summarize: Fold messages beyond the threshold into a summary

        Returns:
            A new list of ChatMessage; persisted messages are never modified

        Raises:
            ConversationNotFoundError: If the store has no such conversation
        """
        records = await store.load_messages(conversation_id)
        messages = [
            ChatMessage(role=MessageRole(record.role), content=record.content)
            for record in records
            if record.role in RECOGNIZED_ROLES
        ]

        system_prompt = await store.load_system_prompt(conversation_id)
        if system_prompt:
            messages.insert(0, ChatMessage(role=MessageRole.SYSTEM, content=system_prompt))

        if len(messages) <= self.threshold:
            return messages

        if not summarize:
            return messages

        recent = messages[-self.threshold:]
        older = messages[:-self.threshold]

        try:
            summary = await self.summarizer.summarize(older)
        except Exception as e:
            logger.error(
                "Error summarizing history of conversation %s, keeping the last %d messages: %s",
                conversation_id,
                self.threshold,
                e,
            )
            return recent

        summary_message = ChatMessage(
            role=MessageRole.SYSTEM,
            content=f"Summary of previous conversation: \n{summary}",
        )
        return [summary_message, *recent]
