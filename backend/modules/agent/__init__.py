"""
Agent module for the financial research chat
"""
from .call_deduplicator import ToolCallDeduplicator
from .llm_config import LLMConfig
from .context import AgentContext

__all__ = ['ToolCallDeduplicator', 'LLMConfig', 'AgentContext']
