"""
Pydantic models for the Fincasts API
"""
from .chat import (
    ClientMessage,
    ChatRequest,
    VisibilityUpdate,
    PersistedMessage,
    ConversationSummary
)
from .sse import (
    SSEEvent,
    UserMessageIdEvent,
    QueryLoadingEvent,
    ToolLoadingEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
    MessageAnnotationEvent,
    FinishEvent,
    ErrorEvent,
    LLMEndEvent,
    ToolsEndEvent
)
from .chat_history import (
    ChatHistory,
    ChatMessage as HistoryChatMessage,
    ToolCall
)

__all__ = [
    "ClientMessage",
    "ChatRequest",
    "VisibilityUpdate",
    "PersistedMessage",
    "ConversationSummary",
    "SSEEvent",
    "UserMessageIdEvent",
    "QueryLoadingEvent",
    "ToolLoadingEvent",
    "TextDeltaEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "MessageAnnotationEvent",
    "FinishEvent",
    "ErrorEvent",
    "LLMEndEvent",
    "ToolsEndEvent",
    "ChatHistory",
    "HistoryChatMessage",
    "ToolCall"
]
