"""
Chat-related Pydantic models (API requests and responses)
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal, List, Dict, Any
from datetime import datetime

from .llm_models import DEFAULT_MODEL_ID


class ClientMessage(BaseModel):
    """A message as the client sends it (only role and text matter here)"""
    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""


class ChatRequest(BaseModel):
    """Request model for one chat turn"""
    id: str = Field(description="Conversation id (created on first message)")
    messages: List[ClientMessage]
    model_id: str = DEFAULT_MODEL_ID
    model_api_key: Optional[str] = None  # Falls back to OPENAI_API_KEY
    financial_datasets_api_key: Optional[str] = None  # Falls back to FINANCIAL_DATASETS_API_KEY

    def latest_user_message(self) -> Optional[ClientMessage]:
        """Most recent user message with non-empty text, if any"""
        for message in reversed(self.messages):
            if message.role == "user" and message.content.strip():
                return message
        return None


class VisibilityUpdate(BaseModel):
    visibility: Literal["private", "public"]


class PersistedMessage(BaseModel):
    """A message as stored in (or about to be appended to) a conversation"""
    id: str
    chat_id: str
    role: Literal["user", "assistant", "tool"]
    content: Optional[str] = None
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    sequence: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationSummary(BaseModel):
    id: str
    user_id: str
    title: Optional[str] = None
    visibility: str = "private"
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
