"""
Models for tool system
"""
from enum import StrEnum
from typing import Any, Dict, Optional, Callable, Type

from pydantic import BaseModel


class ToolName(StrEnum):
    """The closed set of tools the agent can call"""
    GET_STOCK_PRICES = "getStockPrices"
    GET_INCOME_STATEMENTS = "getIncomeStatements"
    GET_BALANCE_SHEETS = "getBalanceSheets"
    GET_CASH_FLOW_STATEMENTS = "getCashFlowStatements"
    GET_FINANCIAL_METRICS = "getFinancialMetrics"
    SEARCH_STOCKS_BY_FILTERS = "searchStocksByFilters"
    GET_NEWS = "getNews"


class Tool:
    """
    A tool that can be called by the LLM.
    Wraps an async handler plus the pydantic model its arguments must satisfy.
    """

    def __init__(
        self,
        name: ToolName,
        description: str,
        handler: Callable,
        params_model: Type[BaseModel],
        parameters_schema: Dict[str, Any],
        category: Optional[str] = None
    ):
        self.name = name
        self.description = description
        self.handler = handler
        self.params_model = params_model
        self.parameters_schema = parameters_schema
        self.category = category

    def parse_arguments(self, arguments: Dict[str, Any]) -> BaseModel:
        """Validate LLM arguments; raises pydantic.ValidationError"""
        return self.params_model.model_validate(arguments)

    def to_openai_schema(self) -> Dict[str, Any]:
        """Convert to OpenAI tool calling schema"""
        return {
            "type": "function",
            "function": {
                "name": str(self.name),
                "description": self.description,
                "parameters": self.parameters_schema
            }
        }
