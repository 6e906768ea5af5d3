"""
Pydantic models for Server-Sent Events (SSE)

Every progress event a turn produces travels as an SSEEvent envelope. The
payload models below define the `data` of each event type.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal, List
from datetime import datetime
import json


class SSEEvent(BaseModel):
    """Base SSE event model"""
    event: str  # Event type
    data: Dict[str, Any]  # Event data

    def to_sse_format(self) -> str:
        """Convert to SSE format: event: <type>\ndata: <json>\n\n"""
        return f"event: {self.event}\ndata: {json.dumps(self.data, default=str)}\n\n"


# Client-facing progress events

class UserMessageIdEvent(BaseModel):
    """Identifier of the persisted user message, sent once at turn start"""
    message_id: str


class QueryLoadingEvent(BaseModel):
    """Planner progress: which sub-task labels to show while the agent works"""
    is_loading: bool
    task_names: List[str] = Field(default_factory=list)


class ToolLoadingEvent(BaseModel):
    """A tool with a visible "searching..." phase started or stopped"""
    tool: str
    is_loading: bool
    message: Optional[str] = None


class TextDeltaEvent(BaseModel):
    """Incremental assistant text"""
    delta: str


class ToolCallEvent(BaseModel):
    """The LLM requested a tool call"""
    tool_call_id: str
    tool_name: str
    arguments: Dict[str, Any]


class ToolResultEvent(BaseModel):
    """A requested tool call settled"""
    tool_call_id: str
    tool_name: str
    status: Literal["completed", "error", "skipped"]
    error: Optional[str] = None


class MessageAnnotationEvent(BaseModel):
    """Server-side id assigned to the persisted assistant message"""
    message_id_from_server: str


class FinishEvent(BaseModel):
    """The agent loop reached a terminal state"""
    reason: Literal["stop", "step_budget", "aborted", "error"]
    steps: int = 0
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


class ErrorEvent(BaseModel):
    """Event sent when an error occurs"""
    error: str
    details: Optional[str] = None
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


# Internal agent loop events (consumed by the loop, never written to the channel)

class LLMEndEvent(BaseModel):
    """Event when LLM call completes - includes accumulated results"""
    content: str
    tool_calls: List[Dict[str, Any]]
    finish_reason: Optional[str] = None


class ToolsEndEvent(BaseModel):
    """Event when all tool executions complete - includes tool messages for conversation"""
    tool_messages: List[Dict[str, Any]]
    execution_results: Optional[List[Dict[str, Any]]] = None
