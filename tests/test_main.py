from fastapi.testclient import TestClient
from unittest.mock import patch, AsyncMock, MagicMock
import datetime
import pytest
import respx
from httpx import Response

from stock_service.main import app, parse_minutes
from stock_service.config import STOCK_API_BASE_URL
from stock_service.contracts import PricePoint
from stock_service.stock_client import StockServiceUnavailable
from stock_service.adapters import InvalidPricePayload

client = TestClient(app)


def _iso(minutes_ago: float) -> str:
    moment = datetime.datetime.now(datetime.UTC) - datetime.timedelta(minutes=minutes_ago)
    return moment.isoformat().replace("+00:00", "Z")


# --- Mock Data ---
NVDA_PRICES = [
    {"price": 100.0, "lastUpdatedAt": _iso(1)},
    {"price": 110.0, "lastUpdatedAt": _iso(5)},
    {"price": 500.0, "lastUpdatedAt": _iso(120)},
    {"price": 999.0, "lastUpdatedAt": "not-a-date"},
]
PYPL_PRICES = [
    {"price": 50.0, "lastUpdatedAt": _iso(2)},
    {"price": 60.0, "lastUpdatedAt": _iso(3)},
    {"price": 10.0, "lastUpdatedAt": _iso(300)},
]


@pytest.fixture
def mock_stock_client():
    """Replaces the upstream client with an in-memory fake."""
    with patch("stock_service.main.StockPriceClient") as mock:
        instance = MagicMock()
        instance.get_stock_prices = AsyncMock()
        instance.get_many = AsyncMock()
        mock.return_value.__aenter__ = AsyncMock(return_value=instance)
        mock.return_value.__aexit__ = AsyncMock(return_value=False)
        yield instance


# --- /stocks/{symbol} ---

@respx.mock
def test_stock_average_filters_by_window():
    respx.get(f"{STOCK_API_BASE_URL}/stocks/NVDA").mock(return_value=Response(200, json=NVDA_PRICES))

    response = client.get("/stocks/NVDA", params={"minutes": "30"})

    assert response.status_code == 200
    data = response.json()
    assert data["averageStockPrice"] == pytest.approx(105.0)
    assert [p["price"] for p in data["priceHistory"]] == [100.0, 110.0]
    assert data["priceHistory"][0]["lastUpdatedAt"] == NVDA_PRICES[0]["lastUpdatedAt"]

@respx.mock
def test_stock_average_without_minutes_uses_zero_window():
    respx.get(f"{STOCK_API_BASE_URL}/stocks/NVDA").mock(return_value=Response(200, json=NVDA_PRICES))

    response = client.get("/stocks/NVDA")

    assert response.status_code == 200
    assert response.json() == {"averageStockPrice": 0, "priceHistory": []}

def test_stock_average_upstream_failure(mock_stock_client):
    mock_stock_client.get_stock_prices.side_effect = StockServiceUnavailable("down")

    response = client.get("/stocks/NVDA", params={"minutes": "10"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unable to retrieve stock data"}

def test_stock_average_invalid_payload(mock_stock_client):
    mock_stock_client.get_stock_prices.side_effect = InvalidPricePayload("bad")

    response = client.get("/stocks/NVDA", params={"minutes": "10"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unable to retrieve stock data"}

def test_stock_average_does_not_forward_minutes_by_default(mock_stock_client):
    mock_stock_client.get_stock_prices.return_value = []

    client.get("/stocks/NVDA", params={"minutes": "10"})

    args, kwargs = mock_stock_client.get_stock_prices.call_args
    assert args[0] == "NVDA"
    assert kwargs["minutes"] is None

def test_stock_average_forwards_minutes_when_enabled(mock_stock_client):
    mock_stock_client.get_stock_prices.return_value = []

    with patch("stock_service.main.FORWARD_MINUTES_UPSTREAM", True):
        client.get("/stocks/NVDA", params={"minutes": "10"})

    assert mock_stock_client.get_stock_prices.call_args.kwargs["minutes"] == 10


# --- /stockcorrelation ---

@respx.mock
def test_correlation_success():
    respx.get(f"{STOCK_API_BASE_URL}/stocks/NVDA").mock(return_value=Response(200, json=NVDA_PRICES))
    respx.get(f"{STOCK_API_BASE_URL}/stocks/PYPL").mock(return_value=Response(200, json=PYPL_PRICES))

    response = client.get("/stockcorrelation", params={"minutes": "60", "ticker": "NVDA,PYPL"})

    assert response.status_code == 200
    data = response.json()
    # NVDA [100, 110] vs PYPL [50, 60] move together
    assert data["correlation"] == pytest.approx(1.0)
    assert data["stocks"]["NVDA"]["averagePrice"] == pytest.approx(105.0)
    assert data["stocks"]["PYPL"]["averagePrice"] == pytest.approx(55.0)
    assert len(data["stocks"]["NVDA"]["priceHistory"]) == 2
    assert len(data["stocks"]["PYPL"]["priceHistory"]) == 2

def test_correlation_single_points_is_zero(mock_stock_client):
    mock_stock_client.get_many.return_value = {
        "AAA": [PricePoint(price=100, lastUpdatedAt=_iso(0))],
        "BBB": [PricePoint(price=200, lastUpdatedAt=_iso(0))],
    }

    response = client.get("/stockcorrelation", params={"minutes": "60", "ticker": "AAA,BBB"})

    assert response.status_code == 200
    data = response.json()
    assert data["correlation"] == 0
    assert data["stocks"]["AAA"]["averagePrice"] == 100
    assert data["stocks"]["BBB"]["averagePrice"] == 200

def test_correlation_fetches_both_symbols_together(mock_stock_client):
    mock_stock_client.get_many.return_value = {"AAA": [], "BBB": []}

    response = client.get("/stockcorrelation", params={"minutes": "5", "ticker": "AAA,BBB,CCC"})

    assert response.status_code == 200
    args, _ = mock_stock_client.get_many.call_args
    assert args[0] == ["AAA", "BBB"]
    assert set(response.json()["stocks"]) == {"AAA", "BBB"}

def test_correlation_missing_ticker():
    response = client.get("/stockcorrelation", params={"minutes": "5"})

    assert response.status_code == 400
    assert response.json() == {"error": "Ticker parameter is required"}

@pytest.mark.parametrize("ticker", ["NVDA", "NVDA,", ",PYPL", ","])
def test_correlation_needs_two_tickers(ticker):
    response = client.get("/stockcorrelation", params={"minutes": "5", "ticker": ticker})

    assert response.status_code == 400
    assert response.json() == {"error": "Two tickers must be provided separated by a comma"}

def test_correlation_upstream_failure(mock_stock_client):
    mock_stock_client.get_many.side_effect = StockServiceUnavailable("down")

    response = client.get("/stockcorrelation", params={"minutes": "5", "ticker": "NVDA,PYPL"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch or process stock information"}


# --- misc ---

def test_health():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

@pytest.mark.parametrize("raw, expected", [
    (None, 0),
    ("", 0),
    ("abc", 0),
    ("15", 15),
    ("15abc", 15),
    ("10.5", 10),
    (" 7", 7),
    ("-3", -3),
])
def test_parse_minutes(raw, expected):
    assert parse_minutes(raw) == expected

@respx.mock
def test_stock_average_non_finite_upstream_price():
    respx.get(f"{STOCK_API_BASE_URL}/stocks/NVDA").mock(
        return_value=Response(200, text='[{"price": NaN, "lastUpdatedAt": "2999-01-01T00:00:00Z"}]')
    )

    response = client.get("/stocks/NVDA", params={"minutes": "0"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unable to retrieve stock data"}

def test_unknown_route_uses_error_body():
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
