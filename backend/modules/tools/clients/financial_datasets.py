"""
Financial Datasets API client

One method per data category. Every request carries the caller's API key in
the X-API-Key header, drops unset query parameters, and raises
FinancialDatasetsError for anything other than a 2xx JSON response. There is
no retry layer here: failures go back to the agent as tool errors.

USAGE:
    client = FinancialDatasetsClient(api_key="...")
    snapshot = await client.get_price_snapshot("AAPL")
    await client.aclose()
"""
import time
from typing import Any, Dict, List, Optional

import httpx

from config import Config
from utils.logger import get_logger, log_api_call

logger = get_logger(__name__)


class FinancialDatasetsError(Exception):
    """Upstream request failed or returned something other than JSON"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        return {"status_code": self.status_code, "body": self.body}


def compact_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Drop parameters that were not set instead of sending them empty"""
    return {key: value for key, value in params.items() if value is not None}


class FinancialDatasetsClient:
    """Async client for https://api.financialdatasets.ai"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            raise ValueError("A Financial Datasets API key is required")
        self.api_key = api_key
        self.base_url = (base_url or Config.FINANCIAL_DATASETS_BASE_URL).rstrip("/")
        self.timeout = timeout or Config.FINANCIAL_DATASETS_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client so it binds to the running event loop"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
                transport=self._transport
            )
        return self._client

    async def aclose(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Any:
        start_time = time.time()
        query = compact_params(params or {})
        try:
            response = await self.client.request(method, path, params=query, json=json_body)
        except httpx.HTTPError as e:
            log_api_call(logger, method, path, None, (time.time() - start_time) * 1000)
            raise FinancialDatasetsError(f"Request to {path} failed: {e}") from e

        log_api_call(logger, method, path, response.status_code, (time.time() - start_time) * 1000)

        if not response.is_success:
            raise FinancialDatasetsError(
                f"API error: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text
            )

        try:
            return response.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise FinancialDatasetsError(
                f"Malformed response from {path}",
                status_code=response.status_code,
                body=response.text
            ) from e

    # Prices

    async def get_price_snapshot(self, ticker: str) -> Any:
        return await self._request("GET", "/prices/snapshot", params={"ticker": ticker})

    async def get_prices(
        self,
        ticker: str,
        start_date: str,
        end_date: str,
        interval: str = "day",
        interval_multiplier: int = 1
    ) -> Any:
        return await self._request("GET", "/prices/", params={
            "ticker": ticker,
            "start_date": start_date,
            "end_date": end_date,
            "interval": interval,
            "interval_multiplier": interval_multiplier,
        })

    # Financial statements and metrics

    async def _get_statement(
        self,
        path: str,
        ticker: str,
        period: str,
        limit: Optional[int] = None,
        report_period_lte: Optional[str] = None,
        report_period_gte: Optional[str] = None
    ) -> Any:
        return await self._request("GET", path, params={
            "ticker": ticker,
            "period": period,
            "limit": limit,
            "report_period_lte": report_period_lte,
            "report_period_gte": report_period_gte,
        })

    async def get_income_statements(self, ticker: str, period: str, **kwargs) -> Any:
        return await self._get_statement("/financials/income-statements/", ticker, period, **kwargs)

    async def get_balance_sheets(self, ticker: str, period: str, **kwargs) -> Any:
        return await self._get_statement("/financials/balance-sheets/", ticker, period, **kwargs)

    async def get_cash_flow_statements(self, ticker: str, period: str, **kwargs) -> Any:
        return await self._get_statement("/financials/cash-flow-statements/", ticker, period, **kwargs)

    async def get_financial_metrics(self, ticker: str, period: str, **kwargs) -> Any:
        return await self._get_statement("/financial-metrics/", ticker, period, **kwargs)

    # Screening

    async def search_stocks(
        self,
        filters: List[Dict[str, Any]],
        period: str = "ttm",
        limit: int = 5,
        order_by: Optional[str] = None
    ) -> Any:
        body = compact_params({
            "filters": filters,
            "period": period,
            "limit": limit,
            "order_by": order_by,
        })
        return await self._request("POST", "/financials/search/", json_body=body)

    # News

    async def get_news(self, ticker: str, limit: Optional[int] = None) -> Any:
        return await self._request("GET", "/news/", params={"ticker": ticker, "limit": limit})
