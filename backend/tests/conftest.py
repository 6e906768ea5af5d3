"""
Shared stand-ins for the turn's collaborators: the data gateway, the LLM
stream, the planner and the conversation store.
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

# Registers the seven tools in the global registry
import modules.tools.definitions  # noqa: F401
from models.chat import PersistedMessage, ConversationSummary
from models.sse import SSEEvent, TextDeltaEvent, LLMEndEvent
from modules.agent.planner import SubTask


class FakeDataClient:
    """Records every gateway call; returns canned payloads"""

    def __init__(self, delay: float = 0.0, fail_with: Optional[Exception] = None):
        self.calls: List[tuple] = []
        self.delay = delay
        self.fail_with = fail_with
        self.closed = False
        # Calls that ran to the end, and how many had when aclose() came
        self.completed: List[str] = []
        self.completed_at_close: Optional[int] = None

    async def _record(self, name: str, *args, **kwargs) -> Dict[str, Any]:
        self.calls.append((name, args, kwargs))
        if self.delay:
            await asyncio.sleep(self.delay)
        self.completed.append(name)
        if self.fail_with is not None:
            raise self.fail_with
        return {"endpoint": name, "args": list(args)}

    async def get_price_snapshot(self, ticker):
        self.calls.append(("get_price_snapshot", (ticker,), {}))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return {"snapshot": {"ticker": ticker, "price": 227.5, "market_cap": 3450000000000}}

    async def get_prices(self, ticker, **kwargs):
        return await self._record("get_prices", ticker, **kwargs)

    async def get_income_statements(self, ticker, period, **kwargs):
        return await self._record("get_income_statements", ticker, period, **kwargs)

    async def get_balance_sheets(self, ticker, period, **kwargs):
        return await self._record("get_balance_sheets", ticker, period, **kwargs)

    async def get_cash_flow_statements(self, ticker, period, **kwargs):
        return await self._record("get_cash_flow_statements", ticker, period, **kwargs)

    async def get_financial_metrics(self, ticker, period, **kwargs):
        return await self._record("get_financial_metrics", ticker, period, **kwargs)

    async def search_stocks(self, filters, **kwargs):
        return await self._record("search_stocks", filters, **kwargs)

    async def get_news(self, ticker, **kwargs):
        return await self._record("get_news", ticker, **kwargs)

    async def aclose(self):
        self.closed = True
        self.completed_at_close = len(self.completed)

    def count(self, name: str) -> int:
        return len([call for call in self.calls if call[0] == name])


def tool_call(call_id: str, name: str, arguments: str) -> Dict[str, Any]:
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


class ScriptedLLM:
    """
    Replays one scripted response per round.

    Each round is a dict with optional "text" (list of deltas), "tool_calls",
    and "error" (raised instead of answering). Rounds past the end of the
    script repeat the last one.
    """

    def __init__(self, rounds: List[Dict[str, Any]], delay: float = 0.0):
        self.rounds = rounds
        self.delay = delay
        self.requests: List[List[Dict[str, Any]]] = []

    async def __call__(self, messages, tools, llm_config, user_id, chat_id=None):
        self.requests.append([dict(m) for m in messages])
        script = self.rounds[min(len(self.requests), len(self.rounds)) - 1]

        if script.get("error"):
            raise script["error"]

        content = ""
        for delta in script.get("text", []):
            if self.delay:
                await asyncio.sleep(self.delay)
            content += delta
            yield SSEEvent(event="text-delta", data=TextDeltaEvent(delta=delta).model_dump())

        tool_calls = script.get("tool_calls", [])
        yield SSEEvent(
            event="llm_end",
            data=LLMEndEvent(
                content=content,
                tool_calls=tool_calls,
                finish_reason="tool_calls" if tool_calls else "stop"
            ).model_dump()
        )


class StubPlanner:
    def __init__(self, labels: Optional[List[str]] = None):
        self.labels = labels if labels is not None else []
        self.queries: List[str] = []

    async def plan(self, user_text: str) -> List[SubTask]:
        self.queries.append(user_text)
        return [SubTask(task_name=label, class_="task") for label in self.labels]


class InMemoryStore:
    """ConversationStore with the same async interface, kept in dicts"""

    def __init__(self, fail_on_append: bool = False):
        self.conversations: Dict[str, ConversationSummary] = {}
        self.messages: Dict[str, List[PersistedMessage]] = {}
        self.fail_on_append = fail_on_append
        self.append_calls = 0

    async def get_conversation(self, chat_id):
        return self.conversations.get(chat_id)

    async def create_conversation(self, chat_id, user_id, title=None, visibility="private"):
        conversation = ConversationSummary(
            id=chat_id, user_id=user_id, title=title, visibility=visibility, created_at=datetime.now()
        )
        self.conversations[chat_id] = conversation
        self.messages.setdefault(chat_id, [])
        return conversation

    async def append_messages(self, chat_id, messages):
        self.append_calls += 1
        if self.fail_on_append and any(m.role != "user" for m in messages):
            raise RuntimeError("database unavailable")
        stored = self.messages.setdefault(chat_id, [])
        saved = []
        for message in messages:
            saved_message = message.model_copy(update={"sequence": len(stored), "created_at": datetime.now()})
            stored.append(saved_message)
            saved.append(saved_message)
        return saved

    async def get_messages(self, chat_id):
        return list(self.messages.get(chat_id, []))

    async def delete_conversation(self, chat_id):
        self.messages.pop(chat_id, None)
        return self.conversations.pop(chat_id, None) is not None

    async def update_visibility(self, chat_id, visibility):
        conversation = self.conversations.get(chat_id)
        if conversation is None:
            return None
        conversation = conversation.model_copy(update={"visibility": visibility})
        self.conversations[chat_id] = conversation
        return conversation

    async def count_user_messages(self, user_id):
        return sum(
            1
            for chat_id, conversation in self.conversations.items()
            if conversation.user_id == user_id
            for message in self.messages.get(chat_id, [])
            if message.role == "user"
        )


@pytest.fixture
def data_client():
    return FakeDataClient()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_tool_call():
    return tool_call


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


@pytest.fixture
def stub_planner():
    return StubPlanner


@pytest.fixture
def fake_data_client():
    return FakeDataClient


@pytest.fixture
def in_memory_store():
    return InMemoryStore
