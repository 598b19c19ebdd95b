from typing import Any, List
from pydantic import ValidationError

from .contracts import PricePoint


class InvalidPricePayload(Exception):
    """Raised when an upstream payload cannot be turned into a price series."""
    pass


def _adapt_single_stock(raw_data: dict) -> List[PricePoint]:
    """Adapts the ``{"stock": {...}}`` envelope returned for the latest price only."""
    return [PricePoint.model_validate(raw_data["stock"])]


def _adapt_price_list(raw_data: list) -> List[PricePoint]:
    return [PricePoint.model_validate(entry) for entry in raw_data]


def normalize_price_payload(raw_data: Any) -> List[PricePoint]:
    """
    Factory function to adapt a raw upstream response to a price series.

    Inspects the payload shape and delegates to the matching adapter.
    """
    try:
        if isinstance(raw_data, list):
            return _adapt_price_list(raw_data)
        elif isinstance(raw_data, dict) and isinstance(raw_data.get("stock"), dict):
            return _adapt_single_stock(raw_data)
    except ValidationError as e:
        raise InvalidPricePayload(f"Malformed price entry: {e}") from e

    raise InvalidPricePayload(f"Unexpected price payload of type {type(raw_data).__name__}")
