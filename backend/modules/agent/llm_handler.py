"""
LLM Handler - LLM API interaction with tracing

Wraps litellm's acompletion to add:
- OpenTelemetry tracing for performance monitoring
- Time-to-first-chunk measurement on streams
- Consistent call logging via log_llm_call
"""
from typing import Dict, Any, Optional, AsyncGenerator
from litellm import acompletion
import time

from utils.logger import get_logger, log_llm_call
from utils.tracing import get_tracer, add_span_attributes, add_span_event, record_exception

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class LLMHandler:
    """
    LLM API handler.

    Responsibilities:
    - LLM API calls (via litellm)
    - Streaming support
    - OpenTelemetry tracing
    """

    def __init__(self, user_id: Optional[str] = None, chat_id: Optional[str] = None):
        self.user_id = user_id or "unknown"
        self.chat_id = chat_id or "unknown"

    async def acompletion(self, **kwargs) -> Any:
        """
        Call LiteLLM's acompletion with tracing and logging.

        Args:
            **kwargs: All arguments passed to litellm.acompletion

        Returns:
            LiteLLM completion response (an async chunk iterator when streaming)
        """
        model = kwargs.get("model", "unknown")
        is_streaming = kwargs.get("stream", False)
        message_count = len(kwargs.get("messages", []))

        with tracer.start_as_current_span("llm.call"):
            add_span_attributes({
                "llm.model": model,
                "llm.streaming": is_streaming,
                "llm.message_count": message_count,
                "user.id": self.user_id,
                "chat.id": self.chat_id
            })

            start_time = time.time()
            try:
                response = await acompletion(**kwargs)
            except Exception as e:
                record_exception(e)
                logger.error(f"LLM call failed: {e}")
                raise

            if is_streaming:
                return self._handle_streaming(response, model, start_time)

            duration_ms = (time.time() - start_time) * 1000
            usage = getattr(response, "usage", None)
            log_llm_call(logger, model, getattr(usage, "total_tokens", None), duration_ms)
            return response

    async def _handle_streaming(self, stream: AsyncGenerator, model: str, start_time: float) -> AsyncGenerator:
        """Pass chunks through while measuring TTFB and duration"""
        first_chunk_time = None
        chunk_count = 0
        usage_info = None

        async for chunk in stream:
            chunk_count += 1

            if first_chunk_time is None:
                first_chunk_time = time.time()
                ttfb_ms = (first_chunk_time - start_time) * 1000
                add_span_event("First chunk received", {"ttfb_ms": ttfb_ms})
                logger.debug(f"TTFB: {ttfb_ms:.0f}ms")

            if getattr(chunk, "usage", None):
                usage_info = chunk.usage

            # Yield immediately for real-time streaming
            yield chunk

        duration_ms = (time.time() - start_time) * 1000
        add_span_attributes({
            "llm.duration_ms": duration_ms,
            "llm.chunk_count": chunk_count
        })

        total_tokens = getattr(usage_info, "total_tokens", None) if usage_info else None
        if usage_info:
            add_span_attributes({
                "llm.tokens.prompt": getattr(usage_info, "prompt_tokens", 0) or 0,
                "llm.tokens.completion": getattr(usage_info, "completion_tokens", 0) or 0,
            })
        log_llm_call(logger, model, total_tokens, duration_ms, stream=True)
