"""
Tool Runner - executes a single tool call

Separates execution logic from the registry (storage) and the executor
(batching, streaming). Whatever goes wrong inside a tool comes back as a
ToolError so the LLM can read it and react; nothing raises out of execute().
"""
from typing import Dict, Any, Optional

from pydantic import ValidationError

from modules.agent.context import AgentContext
from modules.agent.tracing_utils import ToolTracer
from .clients.financial_datasets import FinancialDatasetsError
from .registry import tool_registry
from .responses import ToolResponse, ToolError
from utils.logger import get_logger

logger = get_logger(__name__)


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        problems.append(f"{location}: {item.get('msg')}")
    return "; ".join(problems)


class ToolRunner:
    """
    Executes tools from the registry with validation, deduplication and error handling.
    """

    def __init__(self, registry=None):
        self.registry = registry or tool_registry

    async def execute(
        self,
        tool_name: str,
        arguments: Dict[str, Any],
        context: AgentContext
    ) -> Optional[ToolResponse]:
        """
        Execute one tool call.

        Returns:
            ToolResponse, or None when the call duplicates one already run this turn
        """
        tool = self.registry.get_tool(tool_name)
        if not tool:
            return ToolError(
                error=f"Unknown tool: {tool_name}",
                message=f"Available tools: {', '.join(self.registry.tool_names())}"
            )

        try:
            params = tool.parse_arguments(arguments)
        except ValidationError as e:
            details = _format_validation_error(e)
            logger.warning(f"Invalid arguments for {tool_name}: {details}")
            return ToolError(
                error=f"Invalid parameters for {tool_name}: {details}",
                message="Fix the parameters and call the tool again."
            )

        # Key on the validated record so defaults and key order don't matter
        if not context.deduplicator.should_execute(str(tool.name), params.model_dump(mode="json")):
            return None

        tool_tracer = ToolTracer(user_id=context.user_id, chat_id=context.chat_id)
        with tool_tracer.execution(tool_name=str(tool.name), category=tool.category, arguments=arguments):
            try:
                logger.info(f"Executing tool: {tool_name}")
                result = await tool.handler(params=params, context=context)
            except FinancialDatasetsError as e:
                logger.warning(f"Tool {tool_name} upstream error: {e}")
                result = ToolError(
                    error=str(e),
                    message="The financial data provider rejected the request.",
                    data={"status_code": e.status_code}
                )
            except Exception as e:
                logger.error(f"Error executing tool {tool_name}: {e}", exc_info=True)
                result = ToolError(error=str(e), message=f"Tool {tool_name} failed")

            tool_tracer.record_success(success=result.success, error_message=result.error)

        return result


# Global runner instance
tool_runner = ToolRunner()
