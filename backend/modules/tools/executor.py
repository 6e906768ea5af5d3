"""
Tool Executor - runs the tool calls of one agent step

- Executes every call of a step concurrently (completion order is not fixed)
- Streams tool-emitted progress events in real time
- Applies a truncation policy to the content the LLM reads back
- Ends with a tools_end event whose tool messages follow the call order,
  each answering its call by tool_call_id
"""
from typing import List, Dict, Any, Optional, AsyncGenerator
import asyncio
import time

from pydantic import BaseModel, Field

from .runner import tool_runner
from .responses import ToolResponse
from .stream_handler import ToolStreamHandler
from modules.agent.context import AgentContext
from models.sse import SSEEvent, ToolResultEvent, ToolsEndEvent
from utils.logger import get_logger, log_tool_execution

logger = get_logger(__name__)

# Content of the tool message for a call skipped as a duplicate
DUPLICATE_CALL_CONTENT = "null"


class TruncationPolicy(BaseModel):
    """Policy for truncating tool results before sending to LLM"""
    max_chars: int = Field(default=50000, description="Maximum characters to keep")


class ToolCallRequest(BaseModel):
    """Request for executing a single tool"""
    id: str = Field(description="Unique tool call ID")
    name: str = Field(description="Tool name")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class ToolExecutionResult(BaseModel):
    """Result of a single tool execution"""
    tool_call_id: str
    tool_name: str
    arguments: Dict[str, Any]
    content: str = Field(description="Tool message content, truncated for the LLM")
    status: str  # completed | error | skipped
    error: Optional[str] = None
    duration_ms: float
    was_truncated: bool = False

    def to_tool_message(self) -> Dict[str, Any]:
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "name": self.tool_name,
            "content": self.content
        }


class ToolExecutor:
    """
    Executes a step's tool calls with streaming support.

    Usage:
        executor = ToolExecutor(truncation_policy=TruncationPolicy(max_chars=20000))

        async for event in executor.execute_batch_streaming(calls, context, stop_event):
            if event.event == "tools_end":
                tool_messages = event.data["tool_messages"]
    """

    def __init__(self, truncation_policy: Optional[TruncationPolicy] = None, runner=None):
        self.truncation_policy = truncation_policy or TruncationPolicy()
        self.runner = runner or tool_runner
        # Tasks still running after their step was abandoned (stop requested)
        self._orphaned_tasks = set()

    async def drain(self):
        """Wait for abandoned tool calls to settle; their outcomes are discarded"""
        if not self._orphaned_tasks:
            return
        logger.info(f"Waiting for {len(self._orphaned_tasks)} abandoned tool call(s) to settle")
        await asyncio.gather(*list(self._orphaned_tasks), return_exceptions=True)

    def _apply_truncation(self, content: str) -> tuple[str, bool]:
        """Safety truncation; tools should keep their own output reasonably small"""
        max_chars = self.truncation_policy.max_chars
        if len(content) <= max_chars:
            return content, False

        logger.warning(f"Tool content exceeded {max_chars} chars ({len(content)} chars), truncating")
        return content[:max_chars] + "... [TRUNCATED]", True

    def _build_result(
        self,
        call: ToolCallRequest,
        response: Optional[ToolResponse],
        duration_ms: float
    ) -> ToolExecutionResult:
        if response is None:
            return ToolExecutionResult(
                tool_call_id=call.id,
                tool_name=call.name,
                arguments=call.arguments,
                content=DUPLICATE_CALL_CONTENT,
                status="skipped",
                duration_ms=duration_ms
            )

        content, was_truncated = self._apply_truncation(response.to_llm_content())
        return ToolExecutionResult(
            tool_call_id=call.id,
            tool_name=call.name,
            arguments=call.arguments,
            content=content,
            status="completed" if response.success else "error",
            error=response.error,
            duration_ms=duration_ms,
            was_truncated=was_truncated
        )

    async def execute_batch_streaming(
        self,
        tool_calls: List[ToolCallRequest],
        context: AgentContext,
        stop_event: Optional[asyncio.Event] = None
    ) -> AsyncGenerator[SSEEvent, None]:
        """
        Execute all calls concurrently, yielding events as they happen.

        Yields tool-loading events emitted by tools, one tool-result event per
        settled call, then a final internal tools_end event. If stop_event is
        set before every call settles, the generator returns without tools_end;
        unfinished calls keep running in the background and their results are
        dropped.
        """
        logger.info(f"Executing {len(tool_calls)} tool(s) in parallel")
        event_queue: asyncio.Queue = asyncio.Queue()

        async def execute_and_stream(call: ToolCallRequest):
            start_time = time.time()

            async def forward(event: SSEEvent):
                await event_queue.put(("event", event))

            call_context = context.model_copy(update={
                "stream_handler": ToolStreamHandler(call.name, callback=forward),
                "current_tool_call_id": call.id
            })
            response = await self.runner.execute(
                tool_name=call.name,
                arguments=call.arguments,
                context=call_context
            )
            duration_ms = (time.time() - start_time) * 1000
            await event_queue.put(("result", call, response, duration_ms))

        tasks = [asyncio.create_task(execute_and_stream(call)) for call in tool_calls]
        results: Dict[str, ToolExecutionResult] = {}

        try:
            while len(results) < len(tool_calls):
                if stop_event is not None and stop_event.is_set():
                    logger.info(f"Stop requested with {len(tool_calls) - len(results)} tool call(s) in flight")
                    return
                try:
                    item = await asyncio.wait_for(event_queue.get(), timeout=0.1)
                except asyncio.TimeoutError:
                    continue

                if item[0] == "event":
                    yield item[1]
                    continue

                call, response, duration_ms = item[1], item[2], item[3]
                result = self._build_result(call, response, duration_ms)
                results[call.id] = result
                log_tool_execution(logger, call.name, result.status != "error", duration_ms, result.error)

                yield SSEEvent(
                    event="tool-result",
                    data=ToolResultEvent(
                        tool_call_id=call.id,
                        tool_name=call.name,
                        status=result.status,
                        error=result.error
                    ).model_dump()
                )
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                self._orphaned_tasks.add(task)
                task.add_done_callback(self._orphaned_tasks.discard)

        ordered = [results[call.id] for call in tool_calls]
        yield SSEEvent(
            event="tools_end",
            data=ToolsEndEvent(
                tool_messages=[r.to_tool_message() for r in ordered],
                execution_results=[r.model_dump() for r in ordered]
            ).model_dump()
        )


def create_default_executor(max_chars: Optional[int] = None) -> ToolExecutor:
    """Create executor with the configured truncation limit"""
    from config import Config
    return ToolExecutor(truncation_policy=TruncationPolicy(max_chars=max_chars or Config.TOOL_RESULT_MAX_CHARS))
