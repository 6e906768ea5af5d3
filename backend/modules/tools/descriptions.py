"""
Tool descriptions for all LLM-callable tools
Separated for better maintainability and readability
"""


# ============================================================================
# PRICES
# ============================================================================

GET_STOCK_PRICES_DESC = """Get stock prices and market cap for a company.

Returns a snapshot of the current price and market cap, plus historical prices
over the requested window. If no dates are given the last month of daily bars
is returned. Use a coarser interval (week, month) for long windows."""


# ============================================================================
# FINANCIAL STATEMENTS
# ============================================================================

GET_INCOME_STATEMENTS_DESC = """Get the income statements of a company (revenue, cost of revenue,
operating income, net income, EPS, ...).

Use period="ttm" for trailing twelve months, "quarterly" or "annual" for
reported periods. Narrow the window with report_period_gte / report_period_lte."""

GET_BALANCE_SHEETS_DESC = """Get the balance sheets of a company (assets, liabilities, debt,
cash, shareholders' equity, ...)."""

GET_CASH_FLOW_STATEMENTS_DESC = """Get the cash flow statements of a company (operating, investing
and financing cash flows, capital expenditure, free cash flow, ...)."""

GET_FINANCIAL_METRICS_DESC = """Get the financial metrics of a company.

These are derived metrics like P/E ratio, margins, returns and growth rates
that cannot be read directly off the income statement, balance sheet, or cash
flow statement."""


# ============================================================================
# SCREENING
# ============================================================================

SEARCH_STOCKS_BY_FILTERS_DESC = """Search for stocks based on financial criteria.

Use this tool when asked to find or screen stocks on financial line items, e.g.
"stocks with revenue > 50B", "companies with positive net income", "find stocks
with low debt". Every filter compares one field (revenue, net_income,
total_debt, total_assets, ...) with a number using gt, gte, lt, lte or eq; all
filters must match. Values are in plain units (50B = 50000000000)."""


# ============================================================================
# NEWS
# ============================================================================

GET_NEWS_DESC = """Get news and latest events for a company.

Returns a list of recent articles. When using this tool, include the article
dates in your answer."""
