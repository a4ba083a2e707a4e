"""
Conversation Service

Persistence for conversations and their messages, plus the
SQLAlchemy-backed ConversationStore used to assemble chat history.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from chatbroker.models.conversation import Conversation
from chatbroker.models.message import Message
from chatbroker.services.llm.exceptions import ConversationNotFoundError

logger = logging.getLogger(__name__)

# Stored first user/assistant messages are cut to this length
PREVIEW_LENGTH = 100


def make_preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    if len(content) > length:
        return f"{content[:length - 3]}..."
    return content


async def list_conversations(
    db: AsyncSession,
    user_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[tuple[Conversation, int]]:
    """Return (conversation, message_count) pairs, most recently updated first."""
    counts = (
        select(
            Message.conversation_id,
            func.count(Message.id).label("message_count"),
        )
        .group_by(Message.conversation_id)
        .subquery()
    )
    stmt = select(
        Conversation, func.coalesce(counts.c.message_count, 0)
    ).outerjoin(counts, Conversation.id == counts.c.conversation_id)

    if user_id:
        stmt = stmt.where(Conversation.user_id == user_id)

    stmt = stmt.order_by(Conversation.updated_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [(conversation, count) for conversation, count in result.all()]


async def get_conversation(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    include_messages: bool = False,
) -> Conversation | None:
    stmt = select(Conversation).where(Conversation.id == conversation_id)
    if include_messages:
        stmt = stmt.options(selectinload(Conversation.messages))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_conversation(
    db: AsyncSession,
    title: str,
    model: str,
    user_id: str | None = None,
    system_prompt: str | None = None,
    subtitle: str | None = None,
) -> Conversation:
    conversation = Conversation(
        title=title,
        model=model,
        user_id=user_id,
        system_prompt=system_prompt or None,
        subtitle=subtitle,
        meta={},
    )
    db.add(conversation)
    await db.commit()
    await db.refresh(conversation)
    logger.info("Created conversation %s (model=%s)", conversation.id, model)
    return conversation


async def delete_conversation(db: AsyncSession, conversation_id: uuid.UUID) -> bool:
    await db.execute(delete(Message).where(Message.conversation_id == conversation_id))
    result = await db.execute(
        delete(Conversation).where(Conversation.id == conversation_id)
    )
    await db.commit()
    return result.rowcount > 0


async def add_message(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    role: str,
    content: str,
    model: str | None = None,
    tokens: int | None = None,
) -> Message:
    """
    Append a message and keep the conversation's previews current.

    The first user and first assistant messages are stored (truncated)
    on the conversation for list views.
    """
    conversation = await db.get(Conversation, conversation_id)
    if conversation is None:
        raise ConversationNotFoundError(conversation_id)

    message = Message(
        conversation_id=conversation_id,
        role=role,
        content=content,
        model=model,
        tokens=tokens,
        meta={},
    )
    db.add(message)

    if role == "user" and not conversation.first_user_message:
        conversation.first_user_message = make_preview(content)
    if role == "assistant" and not conversation.first_assistant_message:
        conversation.first_assistant_message = make_preview(content)
    conversation.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(message)
    return message


async def count_messages(db: AsyncSession, conversation_id: uuid.UUID, role: str) -> int:
    result = await db.execute(
        select(func.count(Message.id)).where(
            Message.conversation_id == conversation_id,
            Message.role == role,
        )
    )
    return result.scalar_one()


async def update_conversation_subtitle(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    subtitle: str,
) -> bool:
    conversation = await db.get(Conversation, conversation_id)
    if conversation is None:
        return False
    conversation.subtitle = subtitle
    await db.commit()
    return True


class SQLConversationStore:
    """ConversationStore backed by the SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, conversation_id: uuid.UUID) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def load_messages(self, conversation_id: uuid.UUID) -> list[Message]:
        await self._get(conversation_id)
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at)
        )
        return list(result.scalars().all())

    async def load_system_prompt(self, conversation_id: uuid.UUID) -> str | None:
        conversation = await self._get(conversation_id)
        return conversation.system_prompt
