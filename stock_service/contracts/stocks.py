from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List

from .price import PricePoint


class StockAverageResponse(BaseModel):
    """Body of GET /stocks/{symbol}."""
    average_stock_price: float = Field(..., alias="averageStockPrice")
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")

    model_config = ConfigDict(populate_by_name=True)


class StockSummary(BaseModel):
    average_price: float = Field(..., alias="averagePrice")
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")

    model_config = ConfigDict(populate_by_name=True)


class CorrelationResponse(BaseModel):
    """Body of GET /stockcorrelation, keyed by ticker symbol."""
    correlation: float
    stocks: Dict[str, StockSummary]


class ErrorResponse(BaseModel):
    error: str
