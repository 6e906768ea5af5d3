"""
Message history processing and validation utilities
"""
from typing import List, Dict, Any, Set
import json

from utils.logger import get_logger

logger = get_logger(__name__)


def validate_and_fix_tool_calls(tool_calls: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate tool call arguments JSON and fix malformed ones.

    The LLM sometimes streams truncated JSON arguments. Sending those back in
    the next round makes the provider reject the whole request, so they are
    replaced with an empty object (the tool then answers with a validation
    error the LLM can act on).

    Args:
        tool_calls: List of tool calls from LLM response

    Returns:
        List of tool calls with valid JSON object arguments
    """
    if not tool_calls:
        return tool_calls

    fixed_calls = []
    for tc in tool_calls:
        tc_copy = tc.copy()
        if "function" in tc_copy:
            func = tc_copy["function"].copy()
            args_str = func.get("arguments") or "{}"

            try:
                parsed = json.loads(args_str)
                if not isinstance(parsed, dict):
                    raise ValueError("arguments must be a JSON object")
                func["arguments"] = args_str
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(
                    f"Malformed tool call arguments for {func.get('name', 'unknown')}: "
                    f"{args_str[:200]} (error: {e})"
                )
                func["arguments"] = "{}"

            tc_copy["function"] = func
        fixed_calls.append(tc_copy)

    return fixed_calls


def track_pending_tool_calls(messages: List[Dict[str, Any]]) -> Set[str]:
    """
    Track which tool calls are pending responses

    Args:
        messages: List of API messages

    Returns:
        Set of tool call IDs that don't have responses yet
    """
    pending = set()

    for msg in messages:
        if msg.get("role") == "assistant" and msg.get("tool_calls"):
            for tc in msg["tool_calls"]:
                pending.add(tc["id"])

        if msg.get("role") == "tool" and "tool_call_id" in msg:
            pending.discard(msg["tool_call_id"])

    return pending


def sanitize_response_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Keep only messages that are safe to persist.

    Drops every assistant message with at least one tool call that no tool
    message answers, together with the tool messages answering its other
    calls. Tool messages with no matching assistant call are dropped too, as
    are empty assistant messages.
    """
    pending = track_pending_tool_calls(messages)

    dropped_call_ids: Set[str] = set()
    kept_call_ids: Set[str] = set()
    sanitized = []

    for msg in messages:
        role = msg.get("role")

        if role == "assistant":
            call_ids = [tc["id"] for tc in msg.get("tool_calls") or []]
            if any(call_id in pending for call_id in call_ids):
                logger.warning(f"Dropping assistant message with unresolved tool calls: {call_ids}")
                dropped_call_ids.update(call_ids)
                continue
            if not call_ids and not msg.get("content"):
                continue
            kept_call_ids.update(call_ids)
            sanitized.append(msg)

        elif role == "tool":
            call_id = msg.get("tool_call_id")
            if call_id in dropped_call_ids or call_id not in kept_call_ids:
                continue
            sanitized.append(msg)

        else:
            sanitized.append(msg)

    return sanitized
