"""
Tool Stream Handler - lets a tool emit progress events while it runs

Usage in a tool:
    @tool(name=ToolName.SEARCH_STOCKS_BY_FILTERS, params=StockSearchParams, description=...)
    async def search_stocks_by_filters(*, params, context):
        async with context.stream_handler.loading("Searching for stocks..."):
            data = await context.data_client.search_stocks(...)
"""
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from models.sse import SSEEvent, ToolLoadingEvent


class ToolStreamHandler:
    """
    Forwards a tool's progress events to the executor.

    Without a callback (e.g. a tool called directly in a test) events are
    kept in `events` instead.
    """

    def __init__(self, tool_name: str, callback: Optional[Callable[[SSEEvent], Awaitable[None]]] = None):
        self.tool_name = tool_name
        self.callback = callback
        self.events = []

    async def emit(self, event: SSEEvent):
        if self.callback:
            await self.callback(event)
        else:
            self.events.append(event)

    async def emit_loading(self, is_loading: bool, message: Optional[str] = None):
        await self.emit(SSEEvent(
            event="tool-loading",
            data=ToolLoadingEvent(tool=self.tool_name, is_loading=is_loading, message=message).model_dump()
        ))

    @asynccontextmanager
    async def loading(self, message: str):
        """Emit is_loading=True on entry and is_loading=False on exit, even on failure"""
        await self.emit_loading(True, message)
        try:
            yield
        finally:
            await self.emit_loading(False, None)
