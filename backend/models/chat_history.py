"""
Conversation history as the LLM reads it

Stored messages are rebuilt into OpenAI-format history for the next turn. A
turn cut off mid-stream can leave an assistant tool call whose arguments are
truncated JSON; such a call is dropped together with the tool message that
answers it, so the provider never sees an unpaired call.
"""
from typing import List, Optional, Dict, Any, Literal, Set
import json

from pydantic import BaseModel, Field

from .chat import PersistedMessage
from utils.logger import get_logger

logger = get_logger(__name__)


def _has_parsable_arguments(tool_call: Dict[str, Any]) -> bool:
    arguments = tool_call.get("function", {}).get("arguments")
    if not arguments or isinstance(arguments, dict):
        return True
    try:
        json.loads(arguments)
        return True
    except (TypeError, ValueError):
        return False


class ToolCall(BaseModel):
    """A function call requested by the assistant"""
    id: str
    type: Literal["function"] = "function"
    function: Dict[str, Any]  # {name, arguments (JSON string)}


class ChatMessage(BaseModel):
    """One history entry, OpenAI format"""
    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    def to_openai_format(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls.model_validate({key: data.get(key) for key in cls.model_fields})


class ChatHistory(BaseModel):
    """
    Ordered history of one chat.

    Tool messages follow the assistant message that requested them, and
    to_openai_format(limit) never starts the window between the two.
    """
    messages: List[ChatMessage] = Field(default_factory=list)

    def add_message(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def add_user_message(self, content: str) -> None:
        self.add_message(ChatMessage(role="user", content=content))

    def _is_safe_start(self, index: int) -> bool:
        message = self.messages[index]
        if message.role == "tool":
            return False
        if message.role == "assistant" and message.tool_calls:
            answered = {m.tool_call_id for m in self.messages[index + 1:] if m.role == "tool"}
            return {tc.id for tc in message.tool_calls} <= answered
        return True

    def to_openai_format(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        History in OpenAI format, optionally only the most recent `limit` messages.

        The window is moved forward past tool messages and unanswered tool
        calls, so it may hold fewer than `limit` messages.
        """
        start = 0
        if limit and limit < len(self.messages):
            start = len(self.messages) - limit
            while start < len(self.messages) and not self._is_safe_start(start):
                start += 1
        return [message.to_openai_format() for message in self.messages[start:]]

    @classmethod
    def from_persisted(cls, stored: List[PersistedMessage]) -> "ChatHistory":
        """Rebuild history from stored messages, in sequence order"""
        history = cls()
        dropped_ids: Set[str] = set()

        for message in stored:
            if message.role == "tool" and message.tool_call_id in dropped_ids:
                continue

            tool_calls = message.tool_calls
            if message.role == "assistant" and tool_calls:
                kept = [tc for tc in tool_calls if _has_parsable_arguments(tc)]
                for tc in tool_calls:
                    if tc not in kept:
                        logger.warning(f"Dropping stored tool call {tc.get('id')} of chat {message.chat_id}: truncated arguments")
                        dropped_ids.add(tc.get("id"))
                tool_calls = kept or None

            history.add_message(ChatMessage(
                role=message.role,
                content=message.content,
                tool_calls=tool_calls,
                tool_call_id=message.tool_call_id,
                name=message.name
            ))

        return history
