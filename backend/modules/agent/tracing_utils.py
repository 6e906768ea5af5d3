"""
Agent-specific tracing utilities - keeps span bookkeeping out of the agent loop
"""
from typing import Dict, Any, Optional, List
from contextlib import asynccontextmanager, contextmanager
import time
from utils.tracing import get_tracer, add_span_attributes, add_span_event, record_exception, set_span_status

tracer = get_tracer(__name__)


class BaseTracer:
    """Common attributes for all tracers"""

    def __init__(self, user_id: str, chat_id: Optional[str] = None):
        self.user_id = user_id
        self.chat_id = chat_id

    def _get_base_attributes(self) -> Dict[str, Any]:
        return {
            "user.id": self.user_id,
            "chat.id": self.chat_id or "unknown"
        }


class AgentTracer(BaseTracer):
    """
    Tracing for one agent loop invocation.

    Usage:
        tracer = AgentTracer(user_id=user_id, chat_id=chat_id, model=model)

        async with tracer.interaction(max_steps=10):
            for step in range(1, max_steps + 1):
                async with tracer.step(step, message_count=len(messages)):
                    tracer.record_tool_calls_requested(tool_calls)
    """

    def __init__(self, user_id: str, chat_id: Optional[str] = None, model: str = "unknown"):
        super().__init__(user_id, chat_id)
        self.model = model
        self._step_start_time = None

    @asynccontextmanager
    async def interaction(self, max_steps: int):
        """Trace an entire turn (planning plus all steps)"""
        with tracer.start_as_current_span("agent.interaction"):
            attributes = self._get_base_attributes()
            attributes.update({
                "agent.model": self.model,
                "agent.max_steps": max_steps
            })
            add_span_attributes(attributes)
            try:
                yield
            except Exception as e:
                add_span_attributes({
                    "agent.error": True,
                    "agent.error_message": str(e)
                })
                record_exception(e)
                raise

    @asynccontextmanager
    async def step(self, step_number: int, message_count: int):
        """Trace a single step (one LLM call plus its tool executions)"""
        with tracer.start_as_current_span(f"agent.step.{step_number}"):
            self._step_start_time = time.time()
            add_span_attributes({
                "agent.step": step_number,
                "agent.message_count": message_count
            })
            try:
                yield
            finally:
                duration_ms = (time.time() - self._step_start_time) * 1000
                add_span_attributes({"agent.step_duration_ms": duration_ms})

    def record_tool_calls_requested(self, tool_calls: List[Dict[str, Any]]):
        add_span_attributes({"agent.tool_calls_requested": len(tool_calls)})
        add_span_event("Tool calls requested", {
            "tool_count": len(tool_calls),
            "tools": [tc["function"]["name"] for tc in tool_calls]
        })

    def record_outcome(self, state: str, finish_reason: Optional[str], steps: int):
        add_span_attributes({
            "agent.state": state,
            "agent.finish_reason": finish_reason or "none",
            "agent.total_steps": steps
        })


class ToolTracer(BaseTracer):
    """
    Tracing for a single tool execution.

    Usage:
        tool_tracer = ToolTracer(user_id=user_id, chat_id=chat_id)

        with tool_tracer.execution(tool_name="getNews", category="news", arguments=args):
            result = await tool.handler(params=params, context=context)
            tool_tracer.record_success(success=result.success)
    """

    def __init__(self, user_id: str, chat_id: Optional[str] = None):
        super().__init__(user_id, chat_id)
        self._start_time = None

    @contextmanager
    def execution(self, tool_name: str, category: Optional[str], arguments: Dict[str, Any]):
        with tracer.start_as_current_span(f"tool.{tool_name}"):
            self._start_time = time.time()

            attributes = self._get_base_attributes()
            attributes.update({
                "tool.name": tool_name,
                "tool.category": category or "general"
            })
            add_span_attributes(attributes)
            add_span_event("Tool invoked", {"arguments": str(arguments)[:500]})

            try:
                yield
            except Exception as e:
                record_exception(e)
                add_span_attributes({
                    "tool.success": False,
                    "error.type": type(e).__name__
                })
                raise

    def record_success(self, success: bool, error_message: Optional[str] = None):
        if not self._start_time:
            return

        duration_ms = (time.time() - self._start_time) * 1000
        add_span_attributes({
            "tool.duration_ms": duration_ms,
            "tool.success": success
        })
        set_span_status(success, error_message)
