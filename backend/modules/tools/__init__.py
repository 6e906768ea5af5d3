"""
Tool system for defining and managing LLM-callable tools
"""
from .decorator import tool
from .models import Tool, ToolName
from .registry import ToolRegistry, tool_registry
from .runner import ToolRunner, tool_runner
from .responses import (
    ToolResponse,
    ToolSuccess,
    ToolError,
)
from .executor import (
    ToolExecutor,
    ToolCallRequest,
    ToolExecutionResult,
    TruncationPolicy,
    create_default_executor,
)

__all__ = [
    "tool",
    "Tool",
    "ToolName",
    "ToolRegistry",
    "tool_registry",
    "ToolRunner",
    "tool_runner",
    "ToolResponse",
    "ToolSuccess",
    "ToolError",
    "ToolExecutor",
    "ToolCallRequest",
    "ToolExecutionResult",
    "TruncationPolicy",
    "create_default_executor",
]
