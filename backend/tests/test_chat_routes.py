"""
Tests for the chat HTTP API (collaborators replaced via dependency overrides)
"""
import json

import pytest
from fastapi.testclient import TestClient

from main import app
from auth.dependencies import get_current_user_id
from config import Config
from modules.chat_service import ChatService, get_chat_service
from modules.conversation_store import get_conversation_store
from models.chat import ChatRequest
from models.llm_models import get_model
from routes.chat import _stream_channel


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def memory_store(in_memory_store):
    return in_memory_store()


@pytest.fixture
def client(memory_store, scripted_llm, stub_planner, fake_data_client, make_tool_call, monkeypatch):
    monkeypatch.setattr(Config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(Config, "FINANCIAL_DATASETS_API_KEY", None)

    async def title_generator(first_message, api_key):
        return "AAPL price"

    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "getStockPrices", '{"ticker": "AAPL"}')]},
        {"text": ["AAPL is trading at $227.50."]},
    ])
    service = ChatService(
        store=memory_store,
        data_client_factory=lambda api_key: fake_data_client(),
        planner_factory=lambda api_key, user_id, chat_id: stub_planner(["Getting current price for AAPL"]),
        llm_streamer=llm,
        title_generator=title_generator,
        flush_timeout=1.0
    )

    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    app.dependency_overrides[get_conversation_store] = lambda: memory_store
    app.dependency_overrides[get_chat_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def chat_body(**overrides):
    body = {
        "id": "chat-1",
        "messages": [{"role": "user", "content": "What is the current price of AAPL?"}],
        "model_id": "gpt-4o",
        "model_api_key": "sk-test",
        "financial_datasets_api_key": "fd-test",
    }
    body.update(overrides)
    return body


def parse_sse(text):
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


# ============================================================================
# POST /chat
# ============================================================================

def test_chat_streams_ordered_events(client, memory_store):
    response = client.post("/chat", json=chat_body())

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    events = parse_sse(response.text)
    kinds = [name for name, _ in events]
    assert kinds[0] == "user-message-id"
    assert kinds[1] == "query-loading"
    assert events[2][1]["task_names"] == ["Getting current price for AAPL"]
    assert "tool-call" in kinds and "tool-result" in kinds
    assert kinds.index("finish") < kinds.index("message-annotation")

    text = "".join(data["delta"] for name, data in events if name == "text-delta")
    assert text == "AAPL is trading at $227.50."

    assert memory_store.conversations["chat-1"].user_id == "user-1"
    assert len(memory_store.messages["chat-1"]) == 4


def test_chat_requires_auth(client):
    app.dependency_overrides.pop(get_current_user_id)

    response = client.post("/chat", json=chat_body())

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


def test_chat_unknown_model(client):
    response = client.post("/chat", json=chat_body(model_id="gpt-99"))

    assert response.status_code == 404
    assert response.json()["detail"] == "Model not found"


def test_chat_missing_model_key(client):
    response = client.post("/chat", json=chat_body(model_api_key=None))

    assert response.status_code == 400
    assert response.json()["detail"] == "Model API key is required"


def test_chat_missing_financial_datasets_key(client):
    response = client.post("/chat", json=chat_body(financial_datasets_api_key=None))

    assert response.status_code == 400
    assert response.json()["detail"] == "Financial Datasets API key is required"


def test_chat_server_keys_are_fallbacks(client, monkeypatch):
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-server")
    monkeypatch.setattr(Config, "FINANCIAL_DATASETS_API_KEY", "fd-server")

    response = client.post("/chat", json=chat_body(model_api_key=None, financial_datasets_api_key=None))

    assert response.status_code == 200


def test_chat_without_user_message(client, memory_store):
    response = client.post("/chat", json=chat_body(messages=[{"role": "assistant", "content": "Hi!"}]))

    assert response.status_code == 400
    assert response.json()["detail"] == "No user message found"
    assert memory_store.messages == {}


@pytest.mark.asyncio
async def test_chat_in_someone_elses_conversation(client, memory_store):
    await memory_store.create_conversation("chat-1", "user-2")

    response = client.post("/chat", json=chat_body())

    assert response.status_code == 401
    assert memory_store.messages["chat-1"] == []


# ============================================================================
# Other chat routes
# ============================================================================

@pytest.mark.asyncio
async def test_delete_chat(client, memory_store):
    await memory_store.create_conversation("chat-1", "user-1")

    response = client.delete("/chat", params={"id": "chat-1"})

    assert response.status_code == 200
    assert response.text == "Chat deleted"
    assert "chat-1" not in memory_store.conversations


def test_delete_chat_without_id(client):
    response = client.delete("/chat")

    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_delete_chat_not_owner(client, memory_store):
    await memory_store.create_conversation("chat-1", "user-2")

    response = client.delete("/chat", params={"id": "chat-1"})

    assert response.status_code == 401
    assert "chat-1" in memory_store.conversations


@pytest.mark.asyncio
async def test_delete_chat_store_failure(client, memory_store):
    await memory_store.create_conversation("chat-1", "user-1")

    async def broken_delete(chat_id):
        raise RuntimeError("database unavailable")

    memory_store.delete_conversation = broken_delete

    response = client.delete("/chat", params={"id": "chat-1"})

    assert response.status_code == 500
    assert response.json()["detail"] == "An error occurred while processing your request"


def test_history_after_turn(client):
    client.post("/chat", json=chat_body())

    response = client.get("/chat/history/chat-1")

    assert response.status_code == 200
    assert [m["role"] for m in response.json()] == ["user", "assistant", "tool", "assistant"]


@pytest.mark.asyncio
async def test_visibility_update(client, memory_store):
    await memory_store.create_conversation("chat-1", "user-1")

    response = client.patch("/chat/chat-1/visibility", json={"visibility": "public"})

    assert response.status_code == 200
    assert response.json()["visibility"] == "public"


@pytest.mark.asyncio
async def test_stop_without_running_turn(client, memory_store):
    await memory_store.create_conversation("chat-1", "user-1")

    response = client.post("/chat/chat-1/stop")

    assert response.status_code == 200
    assert response.json() == {"stopped": False}


# ============================================================================
# Messages and catalog
# ============================================================================

def test_message_count(client):
    client.post("/chat", json=chat_body())

    response = client.get("/messages/count")

    assert response.status_code == 200
    assert response.json() == {"count": 1}


def test_message_count_failure(client, memory_store):
    async def broken_count(user_id):
        raise RuntimeError("database unavailable")

    memory_store.count_user_messages = broken_count

    response = client.get("/messages/count")

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to get message count"


def test_models_catalog(client):
    response = client.get("/models")

    assert response.status_code == 200
    body = response.json()
    assert body["default_model_id"] == "gpt-4o"
    assert [m["id"] for m in body["models"]] == ["gpt-4.1-nano", "gpt-4.1-mini", "gpt-4.1", "gpt-4o"]


# ============================================================================
# Client disconnect
# ============================================================================

@pytest.mark.asyncio
async def test_disconnect_stops_the_turn(memory_store, scripted_llm, stub_planner, fake_data_client):
    async def title_generator(first_message, api_key):
        return "AAPL price"

    service = ChatService(
        store=memory_store,
        data_client_factory=lambda api_key: fake_data_client(),
        planner_factory=lambda api_key, user_id, chat_id: stub_planner(),
        llm_streamer=scripted_llm([{"text": ["a", "b", "c", "d", "e", "f"]}], delay=0.1),
        title_generator=title_generator
    )
    channel = await service.start_turn(
        request=ChatRequest(**chat_body()),
        user_id="user-1",
        model=get_model("gpt-4o"),
        model_api_key="sk-test",
        financial_datasets_api_key="fd-test"
    )

    body = _stream_channel(channel, service, "chat-1")
    first = await body.__anext__()
    assert first.startswith("event: user-message-id")

    # The client goes away after the first frame
    await body.aclose()
    await service.wait_idle()

    assert channel.closed
    assert channel.events[-1].event == "finish"
    assert channel.events[-1].data["reason"] == "aborted"
    assert [m.role for m in memory_store.messages["chat-1"]] == ["user"]
    assert not service.is_active("chat-1")
