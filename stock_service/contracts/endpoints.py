class UpstreamEndpoints:
    STOCK_PRICES = "/stocks/{symbol}"

class ServiceEndpoints:
    HEALTH = "/health"
    STOCK_AVERAGE = "/stocks/{symbol}"
    STOCK_CORRELATION = "/stockcorrelation"
