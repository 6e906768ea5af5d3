"""
Tool registry for looking up tools and publishing their schemas
"""
from typing import Dict, List, Optional, Any

from .models import Tool, ToolName
from utils.logger import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for all tools.
    Keyed by ToolName, so only cataloged tools can be registered.
    """

    def __init__(self):
        self._tools: Dict[ToolName, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool"""
        name = ToolName(tool.name)
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")

        self._tools[name] = tool
        logger.debug(f"Registered tool: {name} (category: {tool.category})")

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool by name; None for names outside the catalog"""
        try:
            return self._tools.get(ToolName(name))
        except ValueError:
            return None

    def list_tools(self, category: Optional[str] = None) -> List[Tool]:
        """List all tools, optionally filtered by category"""
        tools = list(self._tools.values())
        if category is not None:
            tools = [t for t in tools if t.category == category]
        return tools

    def tool_names(self) -> List[str]:
        return [str(name) for name in self._tools]

    def get_openai_tools(self, tool_names: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Get OpenAI tool schemas

        Args:
            tool_names: Specific tool names to include (all tools if None)
        """
        if tool_names is None:
            tools = self.list_tools()
        else:
            tools = []
            for name in tool_names:
                tool = self.get_tool(name)
                if tool:
                    tools.append(tool)
                else:
                    logger.warning(f"Tool '{name}' not found in registry")

        return [t.to_openai_schema() for t in tools]


# Global registry instance
tool_registry = ToolRegistry()
