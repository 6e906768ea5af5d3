"""
Agent Context - Pydantic model for agent execution context
"""
from typing import Any, Optional
from pydantic import BaseModel, Field

from .call_deduplicator import ToolCallDeduplicator


class AgentContext(BaseModel):
    """
    Context for agent and tool execution

    Contains all values that need to be passed to tools but are not generated
    by the LLM and instead come from code:
    - User identification
    - Chat ID
    - The data client tools fetch through
    - The turn's call deduplicator
    - A stream handler for tool-emitted progress events
    """
    user_id: str
    chat_id: str
    data_client: Any = None  # FinancialDatasetsClient (or a stand-in with the same methods)
    deduplicator: ToolCallDeduplicator = Field(default_factory=ToolCallDeduplicator)
    stream_handler: Any = None  # ToolStreamHandler, set per tool call by the executor
    current_tool_call_id: Optional[str] = None

    class Config:
        arbitrary_types_allowed = True
