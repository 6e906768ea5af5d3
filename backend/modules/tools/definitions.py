"""
Central tool definitions file
All LLM-callable tools are defined here using the @tool decorator.
Importing this module registers them in the global tool registry.
"""
import asyncio

from modules.tools.decorator import tool
from modules.tools.models import ToolName
from modules.tools.responses import ToolResponse, ToolSuccess
from modules.agent.context import AgentContext
from models.financial import (
    StockPricesParams,
    FinancialStatementParams,
    StockSearchParams,
    NewsParams,
)
from modules.tools.descriptions import (
    GET_STOCK_PRICES_DESC,
    GET_INCOME_STATEMENTS_DESC,
    GET_BALANCE_SHEETS_DESC,
    GET_CASH_FLOW_STATEMENTS_DESC,
    GET_FINANCIAL_METRICS_DESC,
    SEARCH_STOCKS_BY_FILTERS_DESC,
    GET_NEWS_DESC,
)


def _statement_kwargs(params: FinancialStatementParams) -> dict:
    return {
        "limit": params.limit,
        "report_period_lte": params.report_period_lte,
        "report_period_gte": params.report_period_gte,
    }


# ============================================================================
# PRICES
# ============================================================================

@tool(
    name=ToolName.GET_STOCK_PRICES,
    description=GET_STOCK_PRICES_DESC,
    params=StockPricesParams,
    category="prices"
)
async def get_stock_prices(*, params: StockPricesParams, context: AgentContext) -> ToolResponse:
    """Current snapshot and historical bars, fetched concurrently"""
    snapshot, historical = await asyncio.gather(
        context.data_client.get_price_snapshot(params.ticker),
        context.data_client.get_prices(
            params.ticker,
            start_date=params.start_date,
            end_date=params.end_date,
            interval=params.interval.value,
            interval_multiplier=params.interval_multiplier,
        ),
    )
    return ToolSuccess(data={
        "ticker": params.ticker,
        "snapshot": snapshot,
        "historical": historical,
    })


# ============================================================================
# FINANCIAL STATEMENTS
# ============================================================================

@tool(
    name=ToolName.GET_INCOME_STATEMENTS,
    description=GET_INCOME_STATEMENTS_DESC,
    params=FinancialStatementParams,
    category="financials"
)
async def get_income_statements(*, params: FinancialStatementParams, context: AgentContext) -> ToolResponse:
    data = await context.data_client.get_income_statements(
        params.ticker, params.period.value, **_statement_kwargs(params)
    )
    return ToolSuccess(data=data)


@tool(
    name=ToolName.GET_BALANCE_SHEETS,
    description=GET_BALANCE_SHEETS_DESC,
    params=FinancialStatementParams,
    category="financials"
)
async def get_balance_sheets(*, params: FinancialStatementParams, context: AgentContext) -> ToolResponse:
    data = await context.data_client.get_balance_sheets(
        params.ticker, params.period.value, **_statement_kwargs(params)
    )
    return ToolSuccess(data=data)


@tool(
    name=ToolName.GET_CASH_FLOW_STATEMENTS,
    description=GET_CASH_FLOW_STATEMENTS_DESC,
    params=FinancialStatementParams,
    category="financials"
)
async def get_cash_flow_statements(*, params: FinancialStatementParams, context: AgentContext) -> ToolResponse:
    data = await context.data_client.get_cash_flow_statements(
        params.ticker, params.period.value, **_statement_kwargs(params)
    )
    return ToolSuccess(data=data)


@tool(
    name=ToolName.GET_FINANCIAL_METRICS,
    description=GET_FINANCIAL_METRICS_DESC,
    params=FinancialStatementParams,
    category="financials"
)
async def get_financial_metrics(*, params: FinancialStatementParams, context: AgentContext) -> ToolResponse:
    data = await context.data_client.get_financial_metrics(
        params.ticker, params.period.value, **_statement_kwargs(params)
    )
    return ToolSuccess(data=data)


# ============================================================================
# SCREENING
# ============================================================================

@tool(
    name=ToolName.SEARCH_STOCKS_BY_FILTERS,
    description=SEARCH_STOCKS_BY_FILTERS_DESC,
    params=StockSearchParams,
    category="screening"
)
async def search_stocks_by_filters(*, params: StockSearchParams, context: AgentContext) -> ToolResponse:
    """Screen stocks; the client shows a loading indicator while this runs"""
    filters = [f.model_dump(mode="json") for f in params.filters]
    async with context.stream_handler.loading("Searching for stocks matching your criteria..."):
        data = await context.data_client.search_stocks(
            filters,
            period=params.period.value,
            limit=params.limit,
            order_by=params.order_by,
        )
    return ToolSuccess(data=data)


# ============================================================================
# NEWS
# ============================================================================

@tool(
    name=ToolName.GET_NEWS,
    description=GET_NEWS_DESC,
    params=NewsParams,
    category="news"
)
async def get_news(*, params: NewsParams, context: AgentContext) -> ToolResponse:
    data = await context.data_client.get_news(params.ticker, limit=params.limit)
    return ToolSuccess(data=data)
