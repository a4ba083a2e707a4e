"""
Chat Router

Streams model responses to the client as Server-Sent Events and
persists both sides of each turn.
"""

from collections.abc import AsyncIterator
from contextlib import aclosing
import json
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatbroker.core.config import get_settings
from chatbroker.core.database import get_session_factory
from chatbroker.core.security import CurrentUser
from chatbroker.services.conversations import (
    SQLConversationStore,
    add_message,
    count_messages,
    create_conversation,
    update_conversation_subtitle,
)
from chatbroker.services.llm.exceptions import (
    ConversationNotFoundError,
    LLMServiceError,
    StreamFault,
)
from chatbroker.services.llm.orchestrator import LLMOrchestrator, get_orchestrator
from chatbroker.services.prompt_compiler import (
    compile_system_prompt,
    load_file_system_prompt,
    make_subtitle,
    make_title,
    truncate,
)

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


# Schemas
class ChatRequest(BaseModel):
    model: str
    message: str
    conversation_id: uuid.UUID | None = None
    system_prompt: str | None = None
    summarize_history: bool = False


class ChatStreamResponse(BaseModel):
    content: str
    done: bool
    conversation_id: str | None = None
    error: str | None = None


def format_event(event: ChatStreamResponse) -> str:
    payload = event.model_dump(exclude_none=True)
    return f"data: {json.dumps(payload)}\n\n"


async def stream_events(
    deltas: AsyncIterator[str],
    session_factory: async_sessionmaker[AsyncSession],
    conversation_id: uuid.UUID,
    model: str,
) -> AsyncIterator[str]:
    """Frame text deltas as SSE events, then persist the assistant reply."""
    parts: list[str] = []
    try:
        async with aclosing(deltas) as stream:
            async for delta in stream:
                parts.append(delta)
                yield format_event(ChatStreamResponse(content=delta, done=False))
    except StreamFault as e:
        logger.error("Error streaming chat response for %s: %s", conversation_id, e)
        yield format_event(
            ChatStreamResponse(
                content="",
                done=True,
                conversation_id=str(conversation_id),
                error=str(e),
            )
        )
        return

    yield format_event(
        ChatStreamResponse(content="", done=True, conversation_id=str(conversation_id))
    )

    full_content = "".join(parts)
    try:
        async with session_factory() as db:
            await add_message(db, conversation_id, "assistant", full_content, model=model)

            # The first assistant reply becomes the conversation subtitle
            if await count_messages(db, conversation_id, "assistant") == 1:
                await update_conversation_subtitle(db, conversation_id, truncate(full_content))
    except (LLMServiceError, SQLAlchemyError) as e:
        logger.error("Error saving assistant reply for %s: %s", conversation_id, e)


@router.post("")
async def chat(
    data: ChatRequest,
    current_user: CurrentUser,
    orchestrator: LLMOrchestrator = Depends(get_orchestrator),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Send a message and stream the model's response."""
    available = orchestrator.get_available_models()
    if not any(data.model in models for models in available.values()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Model '{data.model}' is not available",
        )

    async with session_factory() as db:
        conversation_id = data.conversation_id
        if conversation_id is None:
            system_prompt = compile_system_prompt(
                load_file_system_prompt(settings.system_prompt_file),
                data.system_prompt,
            )
            conversation = await create_conversation(
                db,
                title=make_title(data.message),
                model=data.model,
                user_id=current_user.sub,
                system_prompt=system_prompt,
                subtitle=make_subtitle(data.message),
            )
            conversation_id = conversation.id

        try:
            await add_message(db, conversation_id, "user", data.message)
            history = await orchestrator.get_message_history(
                SQLConversationStore(db),
                conversation_id,
                summarize=data.summarize_history,
            )
        except ConversationNotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(e),
            )

    # The model is in the available catalog, so resolution cannot fail here
    deltas = orchestrator.stream_chat(data.model, history)

    return StreamingResponse(
        stream_events(deltas, session_factory, conversation_id, data.model),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
