"""
Agent Loop - drives one turn through planning and a bounded tool-calling loop

States:
    IDLE -> PLANNING -> STREAMING -> FINISHED | ABORTED

Every round streams one LLM call. If the LLM asks for tools, the calls run
concurrently and their results are appended before the next round. A round
without tool calls finishes the turn; so does running out of steps.
"""
from enum import StrEnum
from typing import List, Dict, Any, Optional, AsyncGenerator, Callable
import asyncio
import json

from config import Config
from models.sse import SSEEvent, QueryLoadingEvent, ToolCallEvent, FinishEvent, ErrorEvent
from modules.tools import tool_registry, ToolExecutor, ToolCallRequest, create_default_executor
from .call_deduplicator import ToolCallDeduplicator
from .context import AgentContext
from .llm_config import LLMConfig
from .llm_stream import stream_llm_response
from .message_processor import validate_and_fix_tool_calls
from .planner import TaskPlanner, SubTask
from .prompts import get_system_prompt
from .tracing_utils import AgentTracer
from utils.logger import get_logger

logger = get_logger(__name__)

ANALYZING_LABEL = "Analyzing your query..."


class AgentState(StrEnum):
    IDLE = "idle"
    PLANNING = "planning"
    STREAMING = "streaming"
    FINISHED = "finished"
    ABORTED = "aborted"


class _Aborted(Exception):
    """Raised internally when the stop event is observed"""


class AgentLoop:
    """
    One agent loop invocation (one user turn).

    Usage:
        loop = AgentLoop(context=context, llm_config=llm_config, planner=planner, stop_event=stop_event)
        async for event in loop.run(history, user_text):
            channel.write(event)

        if loop.state == AgentState.FINISHED:
            await finalizer.finalize(chat_id, loop.response_messages)
    """

    def __init__(
        self,
        context: AgentContext,
        llm_config: LLMConfig,
        planner: Optional[TaskPlanner] = None,
        executor: Optional[ToolExecutor] = None,
        max_steps: Optional[int] = None,
        stop_event: Optional[asyncio.Event] = None,
        llm_streamer: Optional[Callable[..., AsyncGenerator[SSEEvent, None]]] = None,
        tool_names: Optional[List[str]] = None,
        system_prompt: Optional[str] = None,
        rewrite_with_tasks: Optional[bool] = None
    ):
        self.context = context
        self.llm_config = llm_config
        self.planner = planner
        self.executor = executor or create_default_executor()
        self.max_steps = max_steps or Config.AGENT_MAX_STEPS
        self.stop_event = stop_event or asyncio.Event()
        self.llm_streamer = llm_streamer or stream_llm_response
        self.tool_names = tool_names
        self.system_prompt = system_prompt
        self.rewrite_with_tasks = (
            Config.REWRITE_USER_MESSAGE_WITH_TASKS if rewrite_with_tasks is None else rewrite_with_tasks
        )

        self.state = AgentState.IDLE
        self.finish_reason: Optional[str] = None
        self.steps = 0
        self.tasks: List[SubTask] = []
        # Assistant and tool messages produced this turn (OpenAI format)
        self.response_messages: List[Dict[str, Any]] = []

        self._loading_cleared = False
        self._tracer = AgentTracer(
            user_id=context.user_id,
            chat_id=context.chat_id,
            model=llm_config.model
        )

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def _check_stop(self):
        if self.stopped:
            raise _Aborted()

    def _query_loading(self, is_loading: bool, task_names: List[str]) -> SSEEvent:
        return SSEEvent(
            event="query-loading",
            data=QueryLoadingEvent(is_loading=is_loading, task_names=task_names).model_dump()
        )

    def _clear_loading(self) -> Optional[SSEEvent]:
        if self._loading_cleared:
            return None
        self._loading_cleared = True
        return self._query_loading(False, [])

    def _finish(self, state: AgentState, reason: str) -> SSEEvent:
        self.state = state
        self.finish_reason = reason
        self._tracer.record_outcome(str(state), reason, self.steps)
        logger.info(f"Agent loop {state} ({reason}) after {self.steps} step(s)")
        return SSEEvent(
            event="finish",
            data=FinishEvent(reason=reason, steps=self.steps).model_dump()
        )

    def build_messages(self, history: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """System prompt plus history; optionally the last user message becomes the task list"""
        messages = [{"role": "system", "content": self.system_prompt or get_system_prompt()}]
        messages.extend(dict(msg) for msg in history)

        if self.rewrite_with_tasks and self.tasks and messages[-1].get("role") == "user":
            messages[-1] = {
                "role": "user",
                "content": "\n".join(task.task_name for task in self.tasks)
            }
        return messages

    async def _plan(self, user_text: str) -> AsyncGenerator[SSEEvent, None]:
        self.state = AgentState.PLANNING
        yield self._query_loading(True, [ANALYZING_LABEL])

        if self.planner is not None:
            self.tasks = await self.planner.plan(user_text)

        yield self._query_loading(True, [task.task_name for task in self.tasks])

    @staticmethod
    def _to_requests(tool_calls: List[Dict[str, Any]]) -> List[ToolCallRequest]:
        requests = []
        for tc in tool_calls:
            requests.append(ToolCallRequest(
                id=tc["id"],
                name=tc["function"]["name"],
                arguments=json.loads(tc["function"]["arguments"])
            ))
        return requests

    async def _stream_llm(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]], result: Dict[str, Any]):
        """Relay one LLM call's deltas; the accumulated llm_end payload lands in result"""
        stream = self.llm_streamer(
            messages=messages,
            tools=tools,
            llm_config=self.llm_config,
            user_id=self.context.user_id,
            chat_id=self.context.chat_id
        )
        stop_waiter = asyncio.ensure_future(self.stop_event.wait())
        try:
            while True:
                # A stalled provider must not hold up a stop request
                next_event = asyncio.ensure_future(stream.__anext__())
                done, _ = await asyncio.wait({next_event, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
                if next_event not in done:
                    next_event.cancel()
                    await asyncio.gather(next_event, return_exceptions=True)
                    raise _Aborted()
                try:
                    event = next_event.result()
                except StopAsyncIteration:
                    break

                self._check_stop()
                if event.event == "llm_end":
                    result.update(event.data)
                    continue
                if event.event == "text-delta":
                    cleared = self._clear_loading()
                    if cleared:
                        yield cleared
                yield event
        finally:
            stop_waiter.cancel()
            await stream.aclose()

    async def _run_step(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> AsyncGenerator[SSEEvent, None]:
        """One round. Sets self.state to FINISHED when no tools were requested."""
        llm_result: Dict[str, Any] = {}
        async for event in self._stream_llm(messages, tools, llm_result):
            yield event
        self._check_stop()

        content = llm_result.get("content") or ""
        tool_calls = validate_and_fix_tool_calls(
            [tc for tc in llm_result.get("tool_calls") or [] if tc.get("id") and tc["function"].get("name")]
        )

        assistant_msg: Dict[str, Any] = {"role": "assistant", "content": content}
        if tool_calls:
            assistant_msg["tool_calls"] = tool_calls
        messages.append(assistant_msg)
        self.response_messages.append(assistant_msg)

        if not tool_calls:
            self.state = AgentState.FINISHED
            return

        self._tracer.record_tool_calls_requested(tool_calls)
        requests = self._to_requests(tool_calls)
        for request in requests:
            yield SSEEvent(
                event="tool-call",
                data=ToolCallEvent(
                    tool_call_id=request.id,
                    tool_name=request.name,
                    arguments=request.arguments
                ).model_dump()
            )

        tool_messages = None
        async for event in self.executor.execute_batch_streaming(
            tool_calls=requests,
            context=self.context,
            stop_event=self.stop_event
        ):
            if event.event == "tools_end":
                tool_messages = event.data["tool_messages"]
                continue
            yield event

        # The executor returns early without tools_end only when stopped
        self._check_stop()
        messages.extend(tool_messages or [])
        self.response_messages.extend(tool_messages or [])

    async def run(self, history: List[Dict[str, Any]], user_text: str) -> AsyncGenerator[SSEEvent, None]:
        """
        Drive the turn and yield progress events, ending with exactly one finish event.

        Args:
            history: Conversation so far in OpenAI format, latest user message last
            user_text: Text of the latest user message (planner input)
        """
        # Deduplication is scoped to this invocation
        self.context = self.context.model_copy(update={"deduplicator": ToolCallDeduplicator()})
        self.response_messages = []
        self.steps = 0
        self.tasks = []
        self.finish_reason = None
        self._loading_cleared = False

        async with self._tracer.interaction(self.max_steps):
            try:
                self._check_stop()
                async for event in self._plan(user_text):
                    yield event
                self._check_stop()

                self.state = AgentState.STREAMING
                messages = self.build_messages(history)
                tools = tool_registry.get_openai_tools(tool_names=self.tool_names)

                while self.steps < self.max_steps:
                    self._check_stop()
                    self.steps += 1
                    async with self._tracer.step(self.steps, len(messages)):
                        async for event in self._run_step(messages, tools):
                            yield event

                    if self.state == AgentState.FINISHED:
                        cleared = self._clear_loading()
                        if cleared:
                            yield cleared
                        yield self._finish(AgentState.FINISHED, "stop")
                        return

                logger.warning(f"Step budget of {self.max_steps} exhausted")
                cleared = self._clear_loading()
                if cleared:
                    yield cleared
                yield self._finish(AgentState.FINISHED, "step_budget")

            except _Aborted:
                yield self._finish(AgentState.ABORTED, "aborted")

            except Exception as e:
                logger.error(f"Agent loop failed at step {self.steps}: {e}", exc_info=True)
                yield SSEEvent(
                    event="error",
                    data=ErrorEvent(error="The model request failed", details=str(e)).model_dump()
                )
                yield self._finish(AgentState.FINISHED, "error")
