"""
Tool decorator for converting functions into LLM-callable tools
"""
import inspect
from typing import Callable, Optional, Any, Dict, Type

from pydantic import BaseModel

from .models import Tool, ToolName
from utils.logger import get_logger

logger = get_logger(__name__)


def tool(
    name: ToolName,
    description: str,
    params: Type[BaseModel],
    category: Optional[str] = None,
    registry=None
):
    """
    Decorator to convert an async function into an LLM-callable tool.

    Usage:
        @tool(
            name=ToolName.GET_NEWS,
            description="Get recent news for a company",
            params=NewsParams,
            category="news"
        )
        async def get_news(*, params: NewsParams, context: AgentContext) -> ToolResponse:
            ...

    Requirements:
    - Function must be async and take keyword-only `params` and `context`
    - `params` is the validated pydantic model; its JSON schema is what the LLM sees
    - `context` is injected by the executor and never exposed to the LLM

    Args:
        name: Catalog name of the tool
        description: Description of what the tool does (for LLM documentation)
        params: Pydantic model the LLM's arguments are validated against
        category: Optional category for grouping tools
        registry: Registry to add the tool to (defaults to the global one)
    """
    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise ValueError(f"Tool function '{name}' must be async")

        sig = inspect.signature(func)
        for required in ("params", "context"):
            param = sig.parameters.get(required)
            if param is None or param.kind != inspect.Parameter.KEYWORD_ONLY:
                raise ValueError(
                    f"Tool function '{name}' must take keyword-only '{required}': "
                    "def func(*, params, context)"
                )

        tool_obj = Tool(
            name=name,
            description=description,
            handler=func,
            params_model=params,
            parameters_schema=build_parameters_schema(params),
            category=category
        )
        func._tool = tool_obj

        # Register immediately when the decorator is applied
        if registry is None:
            from .registry import tool_registry
            tool_registry.register(tool_obj)
        else:
            registry.register(tool_obj)

        return func

    return decorator


def build_parameters_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    OpenAI parameters schema for a pydantic model.

    Nested models are inlined (no $ref/$defs) and pydantic-only keys are removed,
    which keeps the schema acceptable to every provider LiteLLM routes to.
    """
    schema = model.model_json_schema()
    defs = schema.get("$defs", {})
    if defs:
        schema = _resolve_refs(schema, defs)
    cleaned = _clean_schema(schema)

    result = {
        "type": "object",
        "properties": cleaned.get("properties", {}),
        "required": cleaned.get("required", [])
    }
    if cleaned.get("description"):
        result["description"] = cleaned["description"]
    return result


def _clean_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove fields providers reject and collapse Optional[X] to X.

    Optional-ness is carried by the parent's `required` list instead.
    """
    if not isinstance(schema, dict):
        return schema

    fields_to_remove = ["$schema", "title", "additionalProperties", "$defs"]

    cleaned = {}
    for key, value in schema.items():
        if key in fields_to_remove:
            continue

        # Pydantic emits {"anyOf": [{"type": "X"}, {"type": "null"}]} for Optional[X]
        if key == "anyOf" and isinstance(value, list):
            non_null = [item for item in value if not (isinstance(item, dict) and item.get("type") == "null")]
            if len(non_null) == 1 and len(non_null) != len(value):
                merged = {k: v for k, v in schema.items() if k not in ("anyOf", "default", *fields_to_remove)}
                merged.update(_clean_schema(non_null[0]))
                return merged

        if isinstance(value, dict):
            cleaned[key] = _clean_schema(value)
        elif isinstance(value, list):
            cleaned[key] = [_clean_schema(item) if isinstance(item, dict) else item for item in value]
        else:
            cleaned[key] = value

    return cleaned


def _resolve_refs(schema: Any, defs: Dict[str, Any]) -> Any:
    """Recursively inline $ref references from $defs"""
    if isinstance(schema, dict):
        if "$ref" in schema:
            ref_path = schema["$ref"]
            if ref_path.startswith("#/$defs/"):
                def_name = ref_path.replace("#/$defs/", "")
                if def_name in defs:
                    resolved = _resolve_refs(defs[def_name].copy(), defs)
                    # Keep sibling keys such as a field description
                    siblings = {k: v for k, v in schema.items() if k != "$ref"}
                    return {**_clean_schema(resolved), **siblings}
            return schema

        return {key: _resolve_refs(value, defs) for key, value in schema.items()}

    elif isinstance(schema, list):
        return [_resolve_refs(item, defs) for item in schema]

    return schema
