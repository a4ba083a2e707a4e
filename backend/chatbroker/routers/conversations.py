from datetime import datetime
from typing import Any
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from chatbroker.core.database import get_db
from chatbroker.models.conversation import Conversation
from chatbroker.models.message import Message
from chatbroker.services.conversations import (
    create_conversation,
    delete_conversation,
    get_conversation,
    list_conversations,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# Schemas
class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    role: str
    content: str
    created_at: datetime
    tokens: int | None = None
    model: str | None = None
    metadata: dict[str, Any] = {}


class ConversationSummaryResponse(BaseModel):
    id: str
    title: str
    subtitle: str | None = None
    created_at: datetime
    updated_at: datetime
    user_id: str | None = None
    model: str
    message_count: int
    first_user_message: str | None = None
    first_assistant_message: str | None = None
    metadata: dict[str, Any] = {}


class ConversationResponse(ConversationSummaryResponse):
    system_prompt: str | None = None
    messages: list[MessageResponse] = []


class CreateConversationRequest(BaseModel):
    title: str
    model: str
    user_id: str | None = None
    system_prompt: str | None = None


class DeleteResponse(BaseModel):
    message: str


def _message_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=str(message.id),
        conversation_id=str(message.conversation_id),
        role=message.role,
        content=message.content,
        created_at=message.created_at,
        tokens=message.tokens,
        model=message.model,
        metadata=message.meta or {},
    )


def _summary_fields(conversation: Conversation, message_count: int) -> dict[str, Any]:
    return {
        "id": str(conversation.id),
        "title": conversation.title,
        "subtitle": conversation.subtitle,
        "created_at": conversation.created_at,
        "updated_at": conversation.updated_at,
        "user_id": conversation.user_id,
        "model": conversation.model,
        "message_count": message_count,
        "first_user_message": conversation.first_user_message,
        "first_assistant_message": conversation.first_assistant_message,
        "metadata": conversation.meta or {},
    }


# Endpoints
@router.get("", response_model=list[ConversationSummaryResponse])
async def get_conversations(
    user_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """List conversations, most recently updated first."""
    logger.info(
        "list_conversations called with user_id=%s, limit=%d, offset=%d",
        user_id, limit, offset,
    )
    rows = await list_conversations(db, user_id=user_id, limit=limit, offset=offset)
    return [
        ConversationSummaryResponse(**_summary_fields(conversation, count))
        for conversation, count in rows
    ]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation_detail(
    conversation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a conversation with its messages."""
    conversation = await get_conversation(db, conversation_id, include_messages=True)
    if not conversation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        )

    messages = [_message_response(m) for m in conversation.messages]
    return ConversationResponse(
        **_summary_fields(conversation, len(messages)),
        system_prompt=conversation.system_prompt,
        messages=messages,
    )


@router.post(
    "",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_new_conversation(
    data: CreateConversationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an empty conversation."""
    conversation = await create_conversation(
        db,
        title=data.title,
        model=data.model,
        user_id=data.user_id,
        system_prompt=data.system_prompt,
    )
    return ConversationResponse(
        **_summary_fields(conversation, 0),
        system_prompt=conversation.system_prompt,
        messages=[],
    )


@router.delete("/{conversation_id}", response_model=DeleteResponse)
async def remove_conversation(
    conversation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a conversation and all of its messages."""
    conversation = await get_conversation(db, conversation_id)
    if not conversation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        )

    if not await delete_conversation(db, conversation_id):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete conversation",
        )

    return DeleteResponse(message=f"Conversation {conversation_id} deleted successfully")
