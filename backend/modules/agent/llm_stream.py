"""
Standalone LLM streaming functions - clean separation from agent logic
"""
from typing import List, Dict, Any, Optional, AsyncGenerator
from models.sse import SSEEvent, LLMEndEvent, TextDeltaEvent
from .llm_handler import LLMHandler
from .llm_config import LLMConfig
from utils.logger import get_logger

logger = get_logger(__name__)


async def stream_llm_response(
    messages: List[Dict[str, Any]],
    tools: List[Dict[str, Any]],
    llm_config: LLMConfig,
    user_id: str,
    chat_id: Optional[str] = None
) -> AsyncGenerator[SSEEvent, None]:
    """
    Stream one LLM call and yield SSE events.

    Args:
        messages: Messages to send to LLM (system prompt first)
        tools: Tool catalog in OpenAI function format
        llm_config: LLM configuration
        user_id: User ID for tracing
        chat_id: Chat ID for tracing

    Yields:
        text-delta events as content arrives, then one internal llm_end event
        carrying the accumulated content, tool calls and finish reason
    """
    llm_handler = LLMHandler(user_id=user_id, chat_id=chat_id)

    llm_kwargs = llm_config.to_litellm_kwargs()
    llm_kwargs["messages"] = messages
    llm_kwargs["stream"] = True
    if tools:
        llm_kwargs["tools"] = tools
        llm_kwargs.setdefault("tool_choice", "auto")

    stream_response = await llm_handler.acompletion(**llm_kwargs)

    content = ""
    tool_calls = []
    finish_reason = None

    async for chunk in stream_response:
        if not hasattr(chunk, 'choices') or not chunk.choices:
            continue

        choice = chunk.choices[0]
        delta = choice.delta

        if getattr(choice, "finish_reason", None):
            finish_reason = choice.finish_reason

        if delta is None:
            continue

        if getattr(delta, 'content', None):
            content += delta.content
            yield SSEEvent(
                event="text-delta",
                data=TextDeltaEvent(delta=delta.content).model_dump()
            )

        # Tool call arguments arrive in fragments keyed by index
        if getattr(delta, 'tool_calls', None):
            for tc in delta.tool_calls:
                idx = tc.index
                while len(tool_calls) <= idx:
                    tool_calls.append({
                        "id": "",
                        "type": "function",
                        "function": {"name": "", "arguments": ""}
                    })
                if tc.id:
                    tool_calls[idx]["id"] = tc.id
                if getattr(tc, 'function', None):
                    if tc.function.name:
                        tool_calls[idx]["function"]["name"] = tc.function.name
                    if tc.function.arguments:
                        tool_calls[idx]["function"]["arguments"] += tc.function.arguments

    yield SSEEvent(
        event="llm_end",
        data=LLMEndEvent(
            content=content,
            tool_calls=tool_calls,
            finish_reason=finish_reason
        ).model_dump()
    )
