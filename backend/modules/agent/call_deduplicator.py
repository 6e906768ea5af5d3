"""
Per-turn tool call deduplication

An LLM in a multi-step loop sometimes re-issues a call it already made in the
same turn. Re-running it costs another upstream request and can return a
different answer (price snapshots move), so identical calls run once per turn.

One ToolCallDeduplicator belongs to one agent loop invocation. It is never
shared between turns or conversations.
"""
import json
from typing import Any, Dict, Set

from utils.logger import get_logger

logger = get_logger(__name__)


class ToolCallDeduplicator:
    """Remembers which (tool, params) pairs already ran in this turn"""

    def __init__(self):
        self._seen: Set[str] = set()

    @staticmethod
    def make_key(tool_name: str, params: Dict[str, Any]) -> str:
        """Canonical key: key order and whitespace never matter"""
        return json.dumps(
            {"tool": tool_name, "params": params},
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )

    def should_execute(self, tool_name: str, params: Dict[str, Any]) -> bool:
        """
        True the first time a (tool, params) pair is seen, False afterwards.

        Check and record happen without yielding to the event loop, so calls
        racing within one round are still deduplicated individually.
        """
        key = self.make_key(tool_name, params)
        if key in self._seen:
            logger.info(f"Skipping duplicate {tool_name} call: {key}")
            return False
        self._seen.add(key)
        return True

    @property
    def seen_count(self) -> int:
        return len(self._seen)
