"""
Tests for per-turn tool call deduplication
"""
import asyncio

import pytest

from modules.agent.call_deduplicator import ToolCallDeduplicator
from modules.agent.context import AgentContext
from modules.tools.runner import ToolRunner


def test_first_call_executes_repeat_does_not():
    """The same (tool, params) pair runs once"""
    dedup = ToolCallDeduplicator()

    assert dedup.should_execute("getStockPrices", {"ticker": "AAPL"}) is True
    assert dedup.should_execute("getStockPrices", {"ticker": "AAPL"}) is False
    assert dedup.should_execute("getStockPrices", {"ticker": "AAPL"}) is False
    assert dedup.seen_count == 1


def test_key_ignores_param_order():
    dedup = ToolCallDeduplicator()

    assert dedup.should_execute("getNews", {"ticker": "MSFT", "limit": 5}) is True
    assert dedup.should_execute("getNews", {"limit": 5, "ticker": "MSFT"}) is False
    assert ToolCallDeduplicator.make_key("getNews", {"a": 1, "b": 2}) == \
        ToolCallDeduplicator.make_key("getNews", {"b": 2, "a": 1})


def test_different_params_or_tools_are_distinct():
    dedup = ToolCallDeduplicator()

    assert dedup.should_execute("getIncomeStatements", {"ticker": "AAPL", "period": "ttm"}) is True
    assert dedup.should_execute("getIncomeStatements", {"ticker": "AAPL", "period": "annual"}) is True
    assert dedup.should_execute("getBalanceSheets", {"ticker": "AAPL", "period": "ttm"}) is True
    assert dedup.seen_count == 3


def test_fresh_instance_per_turn():
    """A new deduplicator knows nothing about earlier turns"""
    first_turn = ToolCallDeduplicator()
    first_turn.should_execute("getNews", {"ticker": "AAPL"})

    second_turn = ToolCallDeduplicator()
    assert second_turn.should_execute("getNews", {"ticker": "AAPL"}) is True


@pytest.mark.asyncio
async def test_runner_skips_duplicate_without_network(data_client):
    """A duplicate call returns None and never reaches the gateway"""
    runner = ToolRunner()
    context = AgentContext(user_id="user-1", chat_id="chat-1", data_client=data_client)

    first = await runner.execute("getNews", {"ticker": "aapl"}, context)
    second = await runner.execute("getNews", {"ticker": "AAPL", "limit": 5}, context)

    assert first is not None and first.success
    assert second is None
    assert data_client.count("get_news") == 1


@pytest.mark.asyncio
async def test_concurrent_identical_calls_run_once(data_client):
    """Calls racing in the same round are still deduplicated per call"""
    runner = ToolRunner()
    context = AgentContext(user_id="user-1", chat_id="chat-1", data_client=data_client)

    results = await asyncio.gather(*[
        runner.execute("getBalanceSheets", {"ticker": "TSLA"}, context)
        for _ in range(4)
    ])

    assert len([r for r in results if r is not None]) == 1
    assert data_client.count("get_balance_sheets") == 1
