from fastapi import FastAPI, HTTPException
from typing import Optional
import datetime
import uvicorn

app = FastAPI()

# Price paths replayed at one-minute spacing, newest last.
MOCK_PRICES = {
    "NVDA": [231.95, 232.10, 233.40, 232.75, 234.05],
    "PYPL": [680.59, 679.20, 681.90, 683.15, 682.40],
    "AMD": [120.10, 120.10, 120.10, 120.10, 120.10],
}


def _price_history(symbol: str, minutes: Optional[int]):
    now = datetime.datetime.now(datetime.UTC)
    prices = MOCK_PRICES[symbol]
    history = []
    for age, price in enumerate(reversed(prices)):
        if minutes is not None and age > minutes:
            break
        updated_at = now - datetime.timedelta(minutes=age)
        history.append({"price": price, "lastUpdatedAt": updated_at.isoformat().replace("+00:00", "Z")})
    history.reverse()
    return history


@app.get("/stocks/{symbol}")
async def get_stock(symbol: str, minutes: Optional[int] = None):
    symbol = symbol.upper()
    if symbol not in MOCK_PRICES:
        raise HTTPException(status_code=404, detail="Ticker not found")

    history = _price_history(symbol, minutes)
    if minutes is None:
        # Without a window only the latest price is returned, wrapped in an envelope.
        return {"stock": history[-1]}
    return history


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8010)
