from .price import PricePoint
from .stocks import (
    StockAverageResponse,
    StockSummary,
    CorrelationResponse,
    ErrorResponse
)
from .endpoints import UpstreamEndpoints, ServiceEndpoints
