from fastapi import FastAPI, HTTPException, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
import uuid
import datetime
import re
from typing import Optional

import uvicorn

from .contracts import (
    StockAverageResponse, StockSummary, CorrelationResponse, ErrorResponse, ServiceEndpoints
)
from .adapters import InvalidPricePayload
from .analytics import filter_recent, average, pearson
from .stock_client import StockPriceClient, StockServiceUnavailable
from .config import FORWARD_MINUTES_UPSTREAM, HOST, PORT
from .logger import service_logger


app = FastAPI(title="Stock Aggregation Service")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Renders every HTTP error as ``{"error": <message>}``."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def parse_minutes(raw: Optional[str]) -> int:
    """
    Reads the leading integer of the ``minutes`` query value.
    Missing or non-numeric values yield 0.
    """
    if raw is None:
        return 0
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else 0


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@app.get(ServiceEndpoints.HEALTH)
def health():
    return {"status": "ok"}


@app.get(ServiceEndpoints.STOCK_AVERAGE, response_model=StockAverageResponse, responses=ERROR_RESPONSES)
async def get_stock_average(symbol: str, minutes: Optional[str] = None):
    """
    Average price of one ticker over the last ``minutes`` minutes,
    together with the price points that went into it.
    """
    correlation_id = str(uuid.uuid4())
    window = parse_minutes(minutes)

    try:
        async with StockPriceClient() as client:
            prices = await client.get_stock_prices(
                symbol, correlation_id, minutes=window if FORWARD_MINUTES_UPSTREAM else None
            )
    except (StockServiceUnavailable, InvalidPricePayload) as e:
        service_logger.error(f"Stock fetch failed for {symbol}: {e}, correlation_id={correlation_id}")
        raise HTTPException(status_code=500, detail="Unable to retrieve stock data")

    recent = filter_recent(prices, window, now=_utcnow())
    average_price = average(recent)

    service_logger.info({
        "endpoint": "stock_average", "symbol": symbol, "minutes": window,
        "points": len(recent), "average": average_price, "correlation_id": correlation_id
    })

    return StockAverageResponse(average_stock_price=average_price, price_history=recent)


@app.get(ServiceEndpoints.STOCK_CORRELATION, response_model=CorrelationResponse, responses=ERROR_RESPONSES)
async def get_stock_correlation(minutes: Optional[str] = None, ticker: Optional[str] = None):
    """
    Pearson correlation between two tickers over the last ``minutes`` minutes.
    Expects ``ticker=A,B``; anything after the second symbol is ignored.
    """
    correlation_id = str(uuid.uuid4())
    window = parse_minutes(minutes)

    if not ticker:
        raise HTTPException(status_code=400, detail="Ticker parameter is required")

    symbols = ticker.split(",")
    if len(symbols) < 2 or not symbols[0] or not symbols[1]:
        raise HTTPException(status_code=400, detail="Two tickers must be provided separated by a comma")
    symbol_a, symbol_b = symbols[0], symbols[1]

    try:
        async with StockPriceClient() as client:
            series = await client.get_many(
                [symbol_a, symbol_b], correlation_id,
                minutes=window if FORWARD_MINUTES_UPSTREAM else None
            )
    except (StockServiceUnavailable, InvalidPricePayload) as e:
        service_logger.error(
            f"Stock fetch failed for {symbol_a},{symbol_b}: {e}, correlation_id={correlation_id}"
        )
        raise HTTPException(status_code=500, detail="Failed to fetch or process stock information")

    # One clock reading for both series so they share the same window.
    now = _utcnow()
    recent_a = filter_recent(series[symbol_a], window, now=now)
    recent_b = filter_recent(series[symbol_b], window, now=now)

    correlation = pearson(recent_a, recent_b)

    service_logger.info({
        "endpoint": "stock_correlation", "tickers": [symbol_a, symbol_b], "minutes": window,
        "points": [len(recent_a), len(recent_b)], "correlation": correlation,
        "correlation_id": correlation_id
    })

    return CorrelationResponse(
        correlation=correlation,
        stocks={
            symbol_a: StockSummary(average_price=average(recent_a), price_history=recent_a),
            symbol_b: StockSummary(average_price=average(recent_b), price_history=recent_b),
        }
    )


if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT)
