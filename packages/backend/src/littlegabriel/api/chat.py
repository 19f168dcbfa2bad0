"""Counseling chat with Gabriel.

Learn: Completion mode streams Server-Sent Events:

    data: {"text": "Peace "}
    data: {"text": "be with you."}
    data: [DONE]

Assistant mode waits for the run to finish and returns plain text.
/bible-chat is always answered by the assistant, with the full conversation.

Chat turns are saved as ChatMessage rows on a best-effort basis. A failed
save is logged and never fails the conversation. The assistant's streamed
reply is saved after the stream ends, on its own DB session, because the
request's session is gone by then.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from littlegabriel.api.deps import get_llm
from littlegabriel.auth.dependencies import CurrentSession, get_current_session
from littlegabriel.db.engine import get_db
from littlegabriel.db.models import ChatMessage
from littlegabriel.schemas.llm import ChatRequest
from littlegabriel.services.llm_service import (
    LLMConfigurationError,
    LLMGateway,
    sse_stream,
    trim_history,
)

logger = structlog.get_logger()

router = APIRouter()


async def save_turn(db: AsyncSession, user_id: str, content: str, is_user: bool) -> None:
    try:
        db.add(
            ChatMessage(
                user_id=uuid.UUID(user_id),
                content=content,
                is_user_message=is_user,
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("chat.save_failed", user_id=user_id, is_user=is_user, error=str(e))


@router.post("/chat")
async def chat(
    body: ChatRequest,
    request: Request,
    session: CurrentSession = Depends(get_current_session),
    llm: LLMGateway = Depends(get_llm),
    db: AsyncSession = Depends(get_db),
):
    if not body.messages:
        raise HTTPException(status_code=400, detail="Messages are required")
    if not llm.configured:
        raise LLMConfigurationError(
            "OpenAI API key is not configured. Please contact the administrator."
        )

    last = body.messages[-1]
    await save_turn(db, session.user_id, last.content, is_user=True)

    if llm.use_assistant_mode():
        reply = await llm.run_assistant(last.content)
        await save_turn(db, session.user_id, reply, is_user=False)
        return PlainTextResponse(reply)

    messages = trim_history([m.model_dump() for m in body.messages])
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    user_id = session.user_id

    async def save_reply(text: str) -> None:
        if not text:
            return
        async with factory() as reply_db:
            await save_turn(reply_db, user_id, text, is_user=False)

    logger.info("chat.stream_started", user_id=user_id, history=len(messages) - 1)
    return StreamingResponse(
        sse_stream(llm.stream_chat(messages), on_complete=save_reply),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/bible-chat")
async def bible_chat(
    body: ChatRequest,
    llm: LLMGateway = Depends(get_llm),
):
    """Bible reader study chat. Always answered by the assistant.

    Learn: Unlike /chat, the whole conversation (minus system messages) is
    replayed into the thread, so follow-up questions keep their context.
    Nothing is saved to chat history.
    """
    if not body.messages:
        raise HTTPException(status_code=400, detail="Invalid request. Messages array is required.")
    if not llm.configured:
        raise LLMConfigurationError(
            "OpenAI API key is not configured. Please contact the administrator."
        )
    reply = await llm.run_assistant_thread([m.model_dump() for m in body.messages])
    return PlainTextResponse(reply)
