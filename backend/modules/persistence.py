"""
Persistence Finalizer - saves what a finished turn produced

Only complete messages are stored: an assistant message whose tool calls did
not all get answered is dropped along with its partial answers.
"""
from typing import List, Dict, Any
import uuid

from models.chat import PersistedMessage
from modules.agent.message_processor import sanitize_response_messages
from utils.logger import get_logger

logger = get_logger(__name__)


class PersistenceFinalizer:
    """Sanitize, assign ids, append. Never raises into the turn."""

    def __init__(self, store):
        self.store = store

    @staticmethod
    def to_persisted(chat_id: str, message: Dict[str, Any]) -> PersistedMessage:
        return PersistedMessage(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            role=message["role"],
            content=message.get("content"),
            tool_calls=message.get("tool_calls"),
            tool_call_id=message.get("tool_call_id"),
            name=message.get("name")
        )

    async def finalize(self, chat_id: str, response_messages: List[Dict[str, Any]]) -> List[PersistedMessage]:
        """
        Persist the turn's complete messages.

        Returns:
            The saved messages (empty when nothing was valid or the store failed)
        """
        sanitized = sanitize_response_messages(response_messages)
        if not sanitized:
            logger.info(f"No valid messages to save for chat {chat_id}")
            return []

        to_save = [self.to_persisted(chat_id, message) for message in sanitized]
        try:
            saved = await self.store.append_messages(chat_id, to_save)
        except Exception as e:
            logger.error(f"Failed to save chat {chat_id}: {e}", exc_info=True)
            return []

        logger.info(f"💾 Saved {len(saved)} message(s) for chat {chat_id}")
        return saved
