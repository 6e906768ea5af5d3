"""
Conversation store - the durable side of a chat turn

Each operation opens its own session so the store can be shared by concurrent
turns. Callers work with pydantic models only, never ORM rows.
"""
from collections import defaultdict
from typing import Dict, List, Optional
import asyncio

from database import AsyncSessionLocal
from crud import conversations as chat_crud
from models.chat import PersistedMessage, ConversationSummary
from utils.logger import get_logger

logger = get_logger(__name__)


class ConversationStore:
    """Append/read/delete access to conversations and their messages"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or AsyncSessionLocal
        # Appends to one chat run one at a time; sequence numbers are read-then-written
        self._append_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_conversation(self, chat_id: str) -> Optional[ConversationSummary]:
        async with self.session_factory() as db:
            chat = await chat_crud.get_chat(db, chat_id)
            return ConversationSummary.model_validate(chat) if chat else None

    async def create_conversation(
        self,
        chat_id: str,
        user_id: str,
        title: Optional[str] = None,
        visibility: str = "private"
    ) -> ConversationSummary:
        async with self.session_factory() as db:
            chat = await chat_crud.create_chat(db, chat_id, user_id, title=title, visibility=visibility)
            logger.info(f"Created chat {chat_id} for user {user_id}")
            return ConversationSummary.model_validate(chat)

    async def append_messages(self, chat_id: str, messages: List[PersistedMessage]) -> List[PersistedMessage]:
        if not messages:
            return []
        async with self._append_locks[chat_id]:
            async with self.session_factory() as db:
                rows = await chat_crud.append_messages(db, chat_id, messages)
                return [PersistedMessage.model_validate(row) for row in rows]

    async def get_messages(self, chat_id: str) -> List[PersistedMessage]:
        async with self.session_factory() as db:
            rows = await chat_crud.get_chat_messages(db, chat_id)
            return [PersistedMessage.model_validate(row) for row in rows]

    async def delete_conversation(self, chat_id: str) -> bool:
        async with self.session_factory() as db:
            deleted = await chat_crud.delete_chat(db, chat_id)
            self._append_locks.pop(chat_id, None)
            if deleted:
                logger.info(f"Deleted chat {chat_id}")
            return deleted

    async def update_visibility(self, chat_id: str, visibility: str) -> Optional[ConversationSummary]:
        async with self.session_factory() as db:
            chat = await chat_crud.update_chat_visibility(db, chat_id, visibility)
            return ConversationSummary.model_validate(chat) if chat else None

    async def count_user_messages(self, user_id: str) -> int:
        async with self.session_factory() as db:
            return await chat_crud.count_user_messages(db, user_id)


_store: Optional[ConversationStore] = None


def get_conversation_store() -> ConversationStore:
    """FastAPI dependency returning the process-wide store"""
    global _store
    if _store is None:
        _store = ConversationStore()
    return _store
