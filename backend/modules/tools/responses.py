"""
Standard tool response models

Every tool handler returns a ToolResponse. The executor turns it into the
content of the `tool` message the LLM reads.
"""
from typing import Any, Optional
from pydantic import BaseModel, Field
import json


class ToolResponse(BaseModel):
    """
    Standard response format for all tools.

    Example:
        return ToolSuccess(data={"ticker": "AAPL", "snapshot": {...}})
    """
    success: bool = Field(description="Whether the tool executed successfully")
    data: Any = Field(default=None, description="Tool result data")
    message: Optional[str] = Field(default=None, description="Human-readable message for LLM")
    error: Optional[str] = Field(default=None, description="Error message if success=False")

    class Config:
        arbitrary_types_allowed = True

    def to_llm_content(self) -> str:
        """Serialized form placed in the tool message"""
        return json.dumps(self.model_dump(exclude_none=True), default=str)


class ToolSuccess(ToolResponse):
    """Convenience class for successful tool responses"""
    success: bool = Field(default=True, frozen=True)

    def __init__(self, data: Any = None, message: Optional[str] = None, **kwargs):
        super().__init__(success=True, data=data, message=message, error=None, **kwargs)


class ToolError(ToolResponse):
    """Convenience class for error responses"""
    success: bool = Field(default=False, frozen=True)

    def __init__(self, error: str, message: Optional[str] = None, data: Any = None, **kwargs):
        super().__init__(success=False, error=error, message=message, data=data, **kwargs)
