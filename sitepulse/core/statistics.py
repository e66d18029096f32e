"""
Closed-form statistics used by the predictive analytics engine.

Everything here is pure: ordinary least squares trend, population mean and
standard deviation, z-score anomaly flags and the seasonal baseline lookup.
Missing samples (None / NaN) are dropped before any computation.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

ANOMALY_SIGMA = 2.0

SEASONAL_FACTORS = {
    "summer": 1.2,
    "autumn": 1.0,
    "winter": 0.7,
    "spring": 1.1,
}


@dataclass(frozen=True)
class Trend:
    slope: float
    intercept: float
    correlation: float


@dataclass(frozen=True)
class AnomalySummary:
    count: int
    sample_count: int
    mean: float
    std: float
    average_impact: float


def _clean(values: Iterable[Optional[float]]) -> np.ndarray:
    arr = np.array([np.nan if v is None else v for v in values], dtype=float)
    return arr[np.isfinite(arr)]


def linear_trend(values: Iterable[Optional[float]]) -> Trend:
    """Fit y = slope * i + intercept over the sequence index i.

    The correlation is Pearson's r between index and value; it is 0.0 when
    either series has no variance.
    """
    y = _clean(values)
    n = len(y)
    if n < 2:
        raise ValueError("At least two points are required for a trend")
    x = np.arange(n, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()
    sum_yy = (y * y).sum()

    denom_x = n * sum_xx - sum_x ** 2
    denom_y = n * sum_yy - sum_y ** 2
    slope = (n * sum_xy - sum_x * sum_y) / denom_x
    intercept = (sum_y - slope * sum_x) / n
    if denom_y <= 0:
        correlation = 0.0
    else:
        correlation = (n * sum_xy - sum_x * sum_y) / np.sqrt(denom_x * denom_y)
    return Trend(slope=float(slope), intercept=float(intercept), correlation=float(correlation))


def mean_std(values: Iterable[Optional[float]]) -> Tuple[float, float]:
    """Population mean and standard deviation."""
    arr = _clean(values)
    if len(arr) == 0:
        return 0.0, 0.0
    return float(arr.mean()), float(arr.std(ddof=0))


def detect_anomalies(values: Iterable[Optional[float]], sigma: float = ANOMALY_SIGMA) -> AnomalySummary:
    """Flag samples further than `sigma` standard deviations from the mean."""
    arr = _clean(values)
    mean, std = mean_std(arr)
    deviations = np.abs(arr - mean)
    flagged = deviations[deviations > sigma * std]
    count = int(len(flagged))
    return AnomalySummary(
        count=count,
        sample_count=int(len(arr)),
        mean=mean,
        std=std,
        average_impact=float(flagged.mean()) if count else 0.0,
    )


def season_for(month: int, latitude: Optional[float] = None) -> str:
    """Season for a calendar month (1-12).

    Sites without coordinates, or south of the equator, use the southern
    hemisphere calendar.
    """
    if latitude is not None and latitude > 0:
        month = (month + 5) % 12 + 1
    if 3 <= month <= 5:
        return "autumn"
    if 6 <= month <= 8:
        return "winter"
    if 9 <= month <= 11:
        return "spring"
    return "summer"


def seasonal_factor(season: str) -> float:
    return SEASONAL_FACTORS.get(season, 1.0)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def daily_means(pairs: Iterable[Tuple[object, Optional[float]]]) -> List[float]:
    """Average values per day key, in first-seen order of the keys."""
    groups = {}
    for day, value in pairs:
        if value is None or not np.isfinite(value):
            continue
        groups.setdefault(day, []).append(value)
    return [float(np.mean(v)) for v in groups.values()]
