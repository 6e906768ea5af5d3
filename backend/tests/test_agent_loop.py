"""
Tests for the agent loop: planning, step budget, cancellation, ordering
"""
import asyncio
import json

import pytest

from modules.agent.agent_loop import AgentLoop, AgentState, ANALYZING_LABEL
from modules.agent.context import AgentContext
from modules.agent.llm_config import LLMConfig


def make_loop(llm, data_client, planner=None, **kwargs):
    context = AgentContext(user_id="user-1", chat_id="chat-1", data_client=data_client)
    return AgentLoop(
        context=context,
        llm_config=LLMConfig(model="gpt-4o", api_key="sk-test", stream=True),
        planner=planner,
        llm_streamer=llm,
        system_prompt="You are a test assistant.",
        **kwargs
    )


async def run(loop, text="What is the current price of AAPL?"):
    history = [{"role": "user", "content": text}]
    return [event async for event in loop.run(history, text)]


@pytest.mark.asyncio
async def test_aapl_price_scenario(scripted_llm, stub_planner, data_client, make_tool_call):
    """Price question: plan, one tool round, streamed answer, finish"""
    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "getStockPrices", '{"ticker": "AAPL"}')]},
        {"text": ["AAPL is trading ", "at $227.50."]},
    ])
    loop = make_loop(llm, data_client, planner=stub_planner(["Getting current price for AAPL"]))

    events = await run(loop)
    kinds = [e.event for e in events]

    assert events[0].data == {"is_loading": True, "task_names": [ANALYZING_LABEL]}
    assert events[1].data == {"is_loading": True, "task_names": ["Getting current price for AAPL"]}
    assert kinds.index("tool-call") < kinds.index("tool-result") < kinds.index("text-delta")
    assert kinds[-1] == "finish"
    assert events[-1].data["reason"] == "stop"

    # Loading is cleared right before the first text
    first_text = kinds.index("text-delta")
    assert events[first_text - 1].event == "query-loading"
    assert events[first_text - 1].data == {"is_loading": False, "task_names": []}

    assert loop.state == AgentState.FINISHED
    assert loop.steps == 2
    assert data_client.count("get_price_snapshot") == 1
    assert data_client.count("get_prices") == 1

    roles = [m["role"] for m in loop.response_messages]
    assert roles == ["assistant", "tool", "assistant"]
    assert loop.response_messages[-1]["content"] == "AAPL is trading at $227.50."

    # Second round saw the tool result
    assert llm.requests[1][-1]["role"] == "tool"
    assert llm.requests[1][-1]["tool_call_id"] == "call_1"


@pytest.mark.asyncio
async def test_duplicate_screening_runs_once(scripted_llm, data_client, make_tool_call):
    """The same screen requested in two rounds hits the gateway once"""
    screen = json.dumps({"filters": [{"field": "revenue", "operator": "gt", "value": 50000000000}]})
    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "searchStocksByFilters", screen)]},
        {"tool_calls": [make_tool_call("call_2", "searchStocksByFilters", screen)]},
        {"text": ["Here are the companies."]},
    ])
    loop = make_loop(llm, data_client)

    events = await run(loop, "Which stocks have revenue above 50B?")

    assert data_client.count("search_stocks") == 1
    results = {e.data["tool_call_id"]: e.data["status"] for e in events if e.event == "tool-result"}
    assert results == {"call_1": "completed", "call_2": "skipped"}

    tool_messages = [m for m in loop.response_messages if m["role"] == "tool"]
    assert tool_messages[1]["content"] == "null"
    assert loop.finish_reason == "stop"


@pytest.mark.asyncio
async def test_step_budget_terminates(scripted_llm, data_client, make_tool_call):
    """An LLM that keeps calling tools stops after max_steps rounds"""
    counter = {"n": 0}

    def next_call():
        counter["n"] += 1
        return make_tool_call(f"call_{counter['n']}", "getNews", json.dumps({"ticker": "AAPL", "limit": counter["n"]}))

    llm = scripted_llm([{"tool_calls": [next_call()]} for _ in range(10)])
    loop = make_loop(llm, data_client, max_steps=3)

    events = await run(loop)

    assert loop.steps == 3
    assert len(llm.requests) == 3
    assert loop.state == AgentState.FINISHED
    assert events[-1].event == "finish"
    assert events[-1].data["reason"] == "step_budget"
    assert [e.event for e in events].count("finish") == 1


@pytest.mark.asyncio
async def test_stop_before_streaming_aborts(scripted_llm, stub_planner, data_client):
    llm = scripted_llm([{"text": ["never sent"]}])
    stop_event = asyncio.Event()
    stop_event.set()
    loop = make_loop(llm, data_client, planner=stub_planner(["Getting price"]), stop_event=stop_event)

    events = await run(loop)

    assert loop.state == AgentState.ABORTED
    assert [e.event for e in events] == ["finish"]
    assert events[0].data["reason"] == "aborted"
    assert llm.requests == []


@pytest.mark.asyncio
async def test_stop_during_tools_issues_no_further_rounds(scripted_llm, fake_data_client, make_tool_call):
    """In-flight tools are abandoned; no new LLM round or tool call follows"""
    slow_client = fake_data_client(delay=0.5)
    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "getNews", '{"ticker": "AAPL"}')]},
        {"text": ["should not happen"]},
    ])
    stop_event = asyncio.Event()
    loop = make_loop(llm, slow_client, stop_event=stop_event)

    async def stop_soon():
        await asyncio.sleep(0.1)
        stop_event.set()

    stopper = asyncio.create_task(stop_soon())
    events = await run(loop)
    await stopper

    assert loop.state == AgentState.ABORTED
    assert events[-1].data["reason"] == "aborted"
    assert len(llm.requests) == 1
    assert "tool-result" not in [e.event for e in events]
    # The unanswered assistant message is never a candidate for saving
    assert loop.response_messages[-1]["tool_calls"][0]["id"] == "call_1"


@pytest.mark.asyncio
async def test_stop_during_text_stream(scripted_llm, data_client):
    llm = scripted_llm([{"text": ["a", "b", "c", "d", "e"]}], delay=0.05)
    stop_event = asyncio.Event()
    loop = make_loop(llm, data_client, stop_event=stop_event)

    async def stop_soon():
        await asyncio.sleep(0.12)
        stop_event.set()

    stopper = asyncio.create_task(stop_soon())
    events = await run(loop)
    await stopper

    deltas = [e for e in events if e.event == "text-delta"]
    assert 0 < len(deltas) < 5
    assert events[-1].data["reason"] == "aborted"


@pytest.mark.asyncio
async def test_stop_while_provider_stalls(scripted_llm, data_client):
    """A stop lands immediately even when no further chunk ever arrives"""
    llm = scripted_llm([{"text": ["never sent"]}], delay=30)
    stop_event = asyncio.Event()
    loop = make_loop(llm, data_client, stop_event=stop_event)

    async def stop_soon():
        await asyncio.sleep(0.1)
        stop_event.set()

    stopper = asyncio.create_task(stop_soon())
    events = await asyncio.wait_for(run(loop), timeout=2)
    await stopper

    assert loop.state == AgentState.ABORTED
    assert events[-1].data["reason"] == "aborted"
    assert "text-delta" not in [e.event for e in events]


@pytest.mark.asyncio
async def test_llm_failure_finishes_with_error(scripted_llm, data_client, make_tool_call):
    """Provider failure: error event, finish(error), earlier complete messages kept"""
    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "getNews", '{"ticker": "AAPL"}')]},
        {"error": RuntimeError("provider unavailable")},
    ])
    loop = make_loop(llm, data_client)

    events = await run(loop)
    kinds = [e.event for e in events]

    assert kinds[-2:] == ["error", "finish"]
    assert events[-1].data["reason"] == "error"
    assert loop.state == AgentState.FINISHED
    assert [m["role"] for m in loop.response_messages] == ["assistant", "tool"]


@pytest.mark.asyncio
async def test_malformed_arguments_are_repaired(scripted_llm, data_client, make_tool_call):
    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "getNews", '{"ticker": "AA')]},
        {"text": ["Sorry, which ticker?"]},
    ])
    loop = make_loop(llm, data_client)

    events = await run(loop)

    assert loop.response_messages[0]["tool_calls"][0]["function"]["arguments"] == "{}"
    result = [e for e in events if e.event == "tool-result"][0]
    assert result.data["status"] == "error"
    assert data_client.calls == []


@pytest.mark.asyncio
async def test_rewrite_replaces_last_user_message(scripted_llm, stub_planner, data_client):
    llm = scripted_llm([{"text": ["ok"]}])
    loop = make_loop(
        llm,
        data_client,
        planner=stub_planner(["Getting AAPL price", "Getting AAPL news"]),
        rewrite_with_tasks=True
    )

    await run(loop)

    sent = llm.requests[0]
    assert sent[0]["role"] == "system"
    assert sent[-1] == {"role": "user", "content": "Getting AAPL price\nGetting AAPL news"}


@pytest.mark.asyncio
async def test_deduplication_is_scoped_to_one_run(scripted_llm, data_client, make_tool_call):
    """Running the same loop twice executes the same call twice"""
    llm = scripted_llm([
        {"tool_calls": [make_tool_call("call_1", "getNews", '{"ticker": "AAPL"}')]},
        {"text": ["done"]},
    ])
    loop = make_loop(llm, data_client)
    await run(loop)

    llm.requests.clear()
    await run(loop)

    assert data_client.count("get_news") == 2
