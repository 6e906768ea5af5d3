"""
Message statistics routes
"""
from fastapi import APIRouter, HTTPException, Depends

from auth.dependencies import get_current_user_id
from modules.conversation_store import ConversationStore, get_conversation_store
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/count")
async def get_message_count(
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store)
):
    """Number of messages the user has sent across all chats"""
    try:
        count = await store.count_user_messages(user_id)
    except Exception as e:
        logger.error(f"Failed to count messages for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get message count")

    return {"count": count}
