"""
Parameter models for the financial data tools

Each tool validates the LLM's arguments against one of these models before
anything touches the network. Defaults are applied here, so the validated
record is also what the call deduplicator keys on.
"""
from datetime import date, timedelta
from enum import StrEnum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _one_month_before(day: date) -> date:
    month = day.month - 1 or 12
    year = day.year if day.month > 1 else day.year - 1
    # Clamp for months shorter than the source day (e.g. March 31 -> February 28)
    for candidate_day in (day.day, 30, 29, 28):
        try:
            return day.replace(year=year, month=month, day=candidate_day)
        except ValueError:
            continue
    return day - timedelta(days=30)


def default_start_date() -> str:
    """One month before today, YYYY-MM-DD"""
    return _one_month_before(date.today()).isoformat()


def default_end_date() -> str:
    """Today, YYYY-MM-DD"""
    return date.today().isoformat()


class PriceInterval(StrEnum):
    SECOND = "second"
    MINUTE = "minute"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ReportPeriod(StrEnum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    TTM = "ttm"


class StockSearchField(StrEnum):
    """Financial line items the screening endpoint can filter on"""
    # Income statement
    REVENUE = "revenue"
    COST_OF_REVENUE = "cost_of_revenue"
    GROSS_PROFIT = "gross_profit"
    OPERATING_EXPENSE = "operating_expense"
    OPERATING_INCOME = "operating_income"
    RESEARCH_AND_DEVELOPMENT = "research_and_development"
    INTEREST_EXPENSE = "interest_expense"
    EBIT = "ebit"
    INCOME_TAX_EXPENSE = "income_tax_expense"
    NET_INCOME = "net_income"
    NET_INCOME_COMMON_STOCK = "net_income_common_stock"
    EARNINGS_PER_SHARE = "earnings_per_share"
    EARNINGS_PER_SHARE_DILUTED = "earnings_per_share_diluted"
    DIVIDENDS_PER_COMMON_SHARE = "dividends_per_common_share"
    WEIGHTED_AVERAGE_SHARES = "weighted_average_shares"
    # Balance sheet
    TOTAL_ASSETS = "total_assets"
    CURRENT_ASSETS = "current_assets"
    CASH_AND_EQUIVALENTS = "cash_and_equivalents"
    INVENTORY = "inventory"
    TOTAL_LIABILITIES = "total_liabilities"
    CURRENT_LIABILITIES = "current_liabilities"
    TOTAL_DEBT = "total_debt"
    SHAREHOLDERS_EQUITY = "shareholders_equity"
    OUTSTANDING_SHARES = "outstanding_shares"
    # Cash flow statement
    NET_CASH_FLOW_FROM_OPERATIONS = "net_cash_flow_from_operations"
    CAPITAL_EXPENDITURE = "capital_expenditure"
    NET_CASH_FLOW_FROM_INVESTING = "net_cash_flow_from_investing"
    NET_CASH_FLOW_FROM_FINANCING = "net_cash_flow_from_financing"
    FREE_CASH_FLOW = "free_cash_flow"
    DIVIDENDS_AND_OTHER_CASH_DISTRIBUTIONS = "dividends_and_other_cash_distributions"


class TickerParams(BaseModel):
    ticker: str = Field(description="The stock ticker symbol, e.g. AAPL")

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("ticker must not be empty")
        return value


class StockPricesParams(TickerParams):
    start_date: str = Field(
        default_factory=default_start_date,
        description="Start date for price data (YYYY-MM-DD). Defaults to one month ago."
    )
    end_date: str = Field(
        default_factory=default_end_date,
        description="End date for price data (YYYY-MM-DD). Defaults to today."
    )
    interval: PriceInterval = Field(default=PriceInterval.DAY, description="Time interval for price data")
    interval_multiplier: int = Field(default=1, ge=1, description="Multiplier for the interval")

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return date.fromisoformat(value).isoformat()

    @model_validator(mode="after")
    def widen_empty_range(self) -> "StockPricesParams":
        # A zero-length range returns no bars; look back a month instead
        if self.start_date == self.end_date:
            self.start_date = _one_month_before(date.fromisoformat(self.end_date)).isoformat()
        return self


class FinancialStatementParams(TickerParams):
    period: ReportPeriod = Field(default=ReportPeriod.TTM, description="The time period of the report")
    limit: int = Field(default=5, ge=1, le=100, description="Maximum number of periods to return")
    report_period_lte: Optional[str] = Field(
        default=None,
        description="Only periods on or before this date (YYYY-MM-DD)"
    )
    report_period_gte: Optional[str] = Field(
        default=None,
        description="Only periods on or after this date (YYYY-MM-DD)"
    )


class SearchFilter(BaseModel):
    field: StockSearchField = Field(description="Financial line item to filter on")
    operator: Literal["gt", "gte", "lt", "lte", "eq"] = Field(description="Comparison operator")
    value: float = Field(description="Value to compare against")


class StockSearchParams(BaseModel):
    filters: List[SearchFilter] = Field(min_length=1, description="Filter conditions, all must match")
    period: ReportPeriod = Field(default=ReportPeriod.TTM, description="The time period of the financial data")
    limit: int = Field(default=5, ge=1, le=100, description="Maximum number of results to return")
    order_by: Literal["-report_period", "report_period"] = Field(
        default="-report_period",
        description="Sort order of the results"
    )


class NewsParams(TickerParams):
    limit: int = Field(default=5, ge=1, le=100, description="Number of news articles to return")
