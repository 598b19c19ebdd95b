import datetime
import math
import re
from typing import List, Optional, Sequence

from .contracts import PricePoint
from .logger import service_logger

# Python's ISO parser keeps at most microseconds; the upstream sends 100ns ticks.
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """
    Parses an upstream ``lastUpdatedAt`` string into an aware UTC datetime.
    Returns None when the value is missing or not a valid ISO-8601 timestamp.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = _EXTRA_FRACTION.sub(r"\1", value.strip()).replace("Z", "+00:00")
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def filter_recent(
    series: Sequence[PricePoint],
    window_minutes: float,
    now: Optional[datetime.datetime] = None,
) -> List[PricePoint]:
    """
    Returns the points updated no more than ``window_minutes`` before ``now``.

    ``now`` defaults to the current UTC time, read once for the whole series.
    Points whose timestamp cannot be parsed are dropped rather than reported.
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)

    recent = []
    for point in series:
        updated_at = parse_timestamp(point.last_updated_at)
        if updated_at is None:
            service_logger.debug(f"Skipping price point with unparseable timestamp {point.last_updated_at!r}")
            continue
        elapsed_minutes = (now - updated_at).total_seconds() / 60
        if elapsed_minutes <= window_minutes:
            recent.append(point)
    return recent


def average(series: Sequence[PricePoint]) -> float:
    """Arithmetic mean of the prices; 0 for an empty series."""
    if not series:
        return 0
    return sum(point.price for point in series) / len(series)


def pearson(series_a: Sequence[PricePoint], series_b: Sequence[PricePoint]) -> float:
    """
    Pearson correlation coefficient between the prices of two series.

    Points are paired by position, not by timestamp: both series are cut to
    the shorter length and the i-th points are compared. Returns 0 when fewer
    than two pairs remain or when either side has zero variance.
    """
    length = min(len(series_a), len(series_b))
    if length < 2:
        return 0

    prices_a = [point.price for point in series_a[:length]]
    prices_b = [point.price for point in series_b[:length]]

    mean_a = sum(prices_a) / length
    mean_b = sum(prices_b) / length

    numerator = 0.0
    sum_sq_a = 0.0
    sum_sq_b = 0.0
    for a, b in zip(prices_a, prices_b):
        diff_a = a - mean_a
        diff_b = b - mean_b
        numerator += diff_a * diff_b
        sum_sq_a += diff_a * diff_a
        sum_sq_b += diff_b * diff_b

    denominator = math.sqrt(sum_sq_a) * math.sqrt(sum_sq_b)
    if denominator == 0:
        return 0
    return numerator / denominator
