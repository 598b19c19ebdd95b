import httpx
import asyncio
from typing import Dict, List, Optional, Sequence

from .adapters import normalize_price_payload
from .config import (
    STOCK_API_BASE_URL,
    STOCK_API_TOKEN,
    STOCK_CLIENT_TIMEOUT,
)
from .contracts import PricePoint, UpstreamEndpoints
from .logger import service_logger


class StockServiceUnavailable(Exception):
    """Custom exception raised when the upstream price service cannot serve a request."""
    pass


class StockPriceClient:
    """
    An async HTTP client for the upstream stock price service.
    Features:
    - One pooled httpx.AsyncClient per context, shared by concurrent fetches.
    - Request tracing with a correlation_id.
    - Every failure surfaces as StockServiceUnavailable; there are no retries.
    """

    def __init__(
        self,
        base_url: str = STOCK_API_BASE_URL,
        timeout: float = STOCK_CLIENT_TIMEOUT,
        token: Optional[str] = STOCK_API_TOKEN,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else None
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)
        self.base_url = base_url

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self._client.aclose()

    async def _get(self, url: str, correlation_id: str, **kwargs):
        headers = kwargs.pop("headers", {})
        headers["X-Correlation-ID"] = correlation_id

        try:
            service_logger.info(f"GET {self.base_url}{url}, correlation_id={correlation_id}")
            response = await self._client.get(url, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            service_logger.warning(
                f"Request timed out for {self.base_url}{url}: {e}, correlation_id={correlation_id}"
            )
            raise StockServiceUnavailable(f"Timed out calling {self.base_url}{url}") from e

        except httpx.HTTPStatusError as e:
            service_logger.warning(
                f"HTTP Status Error for {self.base_url}{url}: {e}, correlation_id={correlation_id}"
            )
            raise StockServiceUnavailable(
                f"Upstream returned {e.response.status_code} for {self.base_url}{url}"
            ) from e

        except httpx.RequestError as e:
            service_logger.warning(
                f"Request Error for {self.base_url}{url}: {e}, correlation_id={correlation_id}"
            )
            raise StockServiceUnavailable(f"Failed to connect to {self.base_url}{url}") from e

        except ValueError as e:
            # response.json() on a non-JSON body
            service_logger.warning(
                f"Invalid JSON from {self.base_url}{url}: {e}, correlation_id={correlation_id}"
            )
            raise StockServiceUnavailable(f"Invalid JSON body from {self.base_url}{url}") from e

    async def get_stock_prices(
        self, symbol: str, correlation_id: str, minutes: Optional[int] = None
    ) -> List[PricePoint]:
        """
        Fetches the price series for a ticker symbol.
        Args:
            symbol: The ticker symbol, used verbatim in the upstream path.
            correlation_id: Tracing id forwarded as X-Correlation-ID.
            minutes: When given, sent upstream as the ``minutes`` query parameter.
        """
        params = {"minutes": minutes} if minutes is not None else None
        raw_data = await self._get(
            UpstreamEndpoints.STOCK_PRICES.format(symbol=symbol), correlation_id, params=params
        )
        prices = normalize_price_payload(raw_data)
        service_logger.info(
            f"Fetched {len(prices)} price points for {symbol}, correlation_id={correlation_id}"
        )
        return prices

    async def get_many(
        self, symbols: Sequence[str], correlation_id: str, minutes: Optional[int] = None
    ) -> Dict[str, List[PricePoint]]:
        """
        Fetches several symbols concurrently. Any single failure fails the whole call,
        but only after every fetch has settled, so none outlives the shared client.
        """
        tasks = [self.get_stock_prices(symbol, correlation_id, minutes) for symbol in symbols]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return dict(zip(symbols, results))
