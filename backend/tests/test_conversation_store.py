"""
Tests for the SQL conversation store (SQLite file database via aiosqlite)
"""
import asyncio
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base
from models.chat import PersistedMessage
from models.db import ChatMessage
from modules.conversation_store import ConversationStore


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chats.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(session_factory):
    store = ConversationStore(session_factory=session_factory)
    await store.create_conversation("chat-1", "user-1", title="AAPL price")
    return store


def message(role, content=None, **kwargs):
    return PersistedMessage(id=str(uuid.uuid4()), chat_id="chat-1", role=role, content=content, **kwargs)


@pytest.mark.asyncio
async def test_append_numbers_messages_in_order(sql_store):
    await sql_store.append_messages("chat-1", [message("user", "AAPL price?")])
    saved = await sql_store.append_messages("chat-1", [message("assistant", "It is $227.50.")])

    assert saved[0].sequence == 1
    stored = await sql_store.get_messages("chat-1")
    assert [(m.role, m.sequence) for m in stored] == [("user", 0), ("assistant", 1)]


@pytest.mark.asyncio
async def test_concurrent_appends_get_distinct_sequences(sql_store):
    """A late finalize and the next user message racing on one chat"""
    await sql_store.append_messages("chat-1", [message("user", "AAPL news?")])
    call = {"id": "c1", "type": "function", "function": {"name": "getNews", "arguments": '{"ticker": "AAPL"}'}}

    await asyncio.gather(
        sql_store.append_messages("chat-1", [
            message("assistant", "", tool_calls=[call]),
            message("tool", "{}", tool_call_id="c1", name="getNews"),
        ]),
        sql_store.append_messages("chat-1", [message("user", "And MSFT?")]),
    )

    stored = await sql_store.get_messages("chat-1")
    assert [m.sequence for m in stored] == [0, 1, 2, 3]
    # The tool answer stays right behind its call
    assistant_index = [m.role for m in stored].index("assistant")
    assert stored[assistant_index + 1].tool_call_id == "c1"


@pytest.mark.asyncio
async def test_duplicate_sequence_is_rejected(sql_store, session_factory):
    await sql_store.append_messages("chat-1", [message("user", "AAPL price?")])

    async with session_factory() as db:
        db.add(ChatMessage(id=str(uuid.uuid4()), chat_id="chat-1", role="user", content="again", sequence=0))
        with pytest.raises(IntegrityError):
            await db.commit()


@pytest.mark.asyncio
async def test_delete_removes_messages(sql_store):
    await sql_store.append_messages("chat-1", [message("user", "AAPL price?")])

    assert await sql_store.delete_conversation("chat-1") is True
    assert await sql_store.get_conversation("chat-1") is None
    assert await sql_store.get_messages("chat-1") == []
    assert await sql_store.delete_conversation("chat-1") is False
