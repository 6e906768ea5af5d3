"""
Async CRUD operations for chats and chat messages
"""
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from models.db import Chat, ChatMessage
from models.chat import PersistedMessage


# Chat operations

async def create_chat(
    db: AsyncSession,
    chat_id: str,
    user_id: str,
    title: Optional[str] = None,
    visibility: str = "private"
) -> Chat:
    """Create a new chat"""
    db_chat = Chat(
        id=chat_id,
        user_id=user_id,
        title=title,
        visibility=visibility
    )
    db.add(db_chat)
    await db.commit()
    await db.refresh(db_chat)
    return db_chat


async def get_chat(db: AsyncSession, chat_id: str) -> Optional[Chat]:
    """Get a chat by ID"""
    result = await db.execute(
        select(Chat).where(Chat.id == chat_id)
    )
    return result.scalar_one_or_none()


async def update_chat_visibility(db: AsyncSession, chat_id: str, visibility: str) -> Optional[Chat]:
    """Update a chat's visibility flag"""
    db_chat = await get_chat(db, chat_id)
    if db_chat:
        db_chat.visibility = visibility
        await db.commit()
        await db.refresh(db_chat)
    return db_chat


async def delete_chat(db: AsyncSession, chat_id: str) -> bool:
    """Delete a chat and all its messages"""
    await db.execute(
        delete(ChatMessage).where(ChatMessage.chat_id == chat_id)
    )
    result = await db.execute(
        delete(Chat).where(Chat.id == chat_id)
    )
    await db.commit()
    return result.rowcount > 0


# ChatMessage operations

async def get_next_sequence(db: AsyncSession, chat_id: str) -> int:
    """Sequence number the next appended message should take"""
    result = await db.execute(
        select(func.max(ChatMessage.sequence)).where(ChatMessage.chat_id == chat_id)
    )
    current = result.scalar_one_or_none()
    return 0 if current is None else current + 1


async def append_messages(db: AsyncSession, chat_id: str, messages: List[PersistedMessage]) -> List[ChatMessage]:
    """
    Append messages to a chat in one transaction

    Sequence numbers continue from the chat's last stored message, in list order.
    The chat row is locked for the transaction so concurrent appends to the
    same chat take turns (the lock is a no-op on SQLite).
    """
    await db.execute(select(Chat.id).where(Chat.id == chat_id).with_for_update())
    sequence = await get_next_sequence(db, chat_id)
    rows = []
    for message in messages:
        rows.append(ChatMessage(
            id=message.id,
            chat_id=chat_id,
            role=message.role,
            content=message.content,
            sequence=sequence,
            tool_calls=message.tool_calls,
            tool_call_id=message.tool_call_id,
            name=message.name
        ))
        sequence += 1

    db.add_all(rows)
    await db.commit()
    for row in rows:
        await db.refresh(row)
    return rows


async def get_chat_messages(db: AsyncSession, chat_id: str) -> List[ChatMessage]:
    """Get all messages for a chat, ordered by sequence"""
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.chat_id == chat_id)
        .order_by(ChatMessage.sequence)
    )
    return list(result.scalars().all())


async def count_user_messages(db: AsyncSession, user_id: str) -> int:
    """Number of user-role messages across all of a user's chats"""
    result = await db.execute(
        select(func.count(ChatMessage.id))
        .join(Chat, Chat.id == ChatMessage.chat_id)
        .where(Chat.user_id == user_id, ChatMessage.role == "user")
    )
    return result.scalar_one()
