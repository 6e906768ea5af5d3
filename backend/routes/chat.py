"""
Chat API routes
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import StreamingResponse, PlainTextResponse
from typing import List, Optional
import asyncio

from auth.dependencies import get_current_user_id, UNAUTHORIZED
from config import Config
from models.chat import ChatRequest, PersistedMessage, VisibilityUpdate, ConversationSummary
from models.llm_models import get_model
from modules.chat_service import ChatService, get_chat_service
from modules.conversation_store import ConversationStore, get_conversation_store
from modules.event_channel import EventChannel
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering in nginx
}


async def _require_owner(store: ConversationStore, chat_id: str, user_id: str) -> ConversationSummary:
    conversation = await store.get_conversation(chat_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Not Found")
    if conversation.user_id != user_id:
        logger.warning(f"User {user_id} attempted to access chat {chat_id}")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    return conversation


def _stream_channel(channel: EventChannel, chat_service: ChatService, chat_id: str):
    async def event_generator():
        try:
            async for event in channel:
                yield event.to_sse_format()
                # Give control back to the event loop so uvicorn sends immediately
                await asyncio.sleep(0)
        finally:
            if not channel.closed:
                # Client went away mid-turn
                chat_service.stop(chat_id)

    return event_generator()


@router.post("")
async def send_chat_message(
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    chat_service: ChatService = Depends(get_chat_service),
    store: ConversationStore = Depends(get_conversation_store)
):
    """
    Run one chat turn and stream its progress as Server-Sent Events.

    Event types, in order of appearance:
    - user-message-id: id of the persisted user message
    - query-loading: planned task labels (and when to hide them)
    - text-delta: assistant text
    - tool-call / tool-loading / tool-result: tool activity
    - finish: the agent loop is done (reason: stop, step_budget, aborted, error)
    - message-annotation: server id of the saved assistant message
    - error: the turn failed
    """
    model = get_model(request.model_id)
    if model is None:
        raise HTTPException(status_code=404, detail="Model not found")

    model_api_key = request.model_api_key or Config.OPENAI_API_KEY
    if not model_api_key:
        raise HTTPException(status_code=400, detail="Model API key is required")

    financial_datasets_api_key = request.financial_datasets_api_key or Config.FINANCIAL_DATASETS_API_KEY
    if not financial_datasets_api_key:
        raise HTTPException(status_code=400, detail="Financial Datasets API key is required")

    if request.latest_user_message() is None:
        raise HTTPException(status_code=400, detail="No user message found")

    conversation = await store.get_conversation(request.id)
    if conversation is not None and conversation.user_id != user_id:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    channel = await chat_service.start_turn(
        request=request,
        user_id=user_id,
        model=model,
        model_api_key=model_api_key,
        financial_datasets_api_key=financial_datasets_api_key
    )

    return StreamingResponse(
        _stream_channel(channel, chat_service, request.id),
        media_type="text/event-stream",
        headers=SSE_HEADERS
    )


@router.post("/{chat_id}/stop")
async def stop_chat(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    chat_service: ChatService = Depends(get_chat_service),
    store: ConversationStore = Depends(get_conversation_store)
):
    """Cancel the chat's running turn, if any"""
    await _require_owner(store, chat_id, user_id)
    return {"stopped": chat_service.stop(chat_id)}


@router.delete("")
async def delete_chat(
    id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store)
):
    """Delete a chat and all of its messages"""
    if not id:
        raise HTTPException(status_code=404, detail="Not Found")

    await _require_owner(store, id, user_id)

    try:
        await store.delete_conversation(id)
    except Exception as e:
        logger.error(f"Failed to delete chat {id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while processing your request")

    return PlainTextResponse("Chat deleted", status_code=200)


@router.get("/history/{chat_id}", response_model=List[PersistedMessage])
async def get_chat_history(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store)
):
    """Stored messages of a chat; private chats are visible to their owner only"""
    conversation = await store.get_conversation(chat_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Not Found")
    if conversation.visibility != "public" and conversation.user_id != user_id:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)

    return await store.get_messages(chat_id)


@router.patch("/{chat_id}/visibility", response_model=ConversationSummary)
async def update_chat_visibility(
    chat_id: str,
    update: VisibilityUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store)
):
    await _require_owner(store, chat_id, user_id)
    return await store.update_visibility(chat_id, update.visibility)
