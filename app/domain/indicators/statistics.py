"""
Descriptive statistics over plain numeric series.
NO DB. NO NETWORK.

Series are oldest -> newest. Functions return None when the series is too
short to answer, never raise on short input.
"""

from typing import Optional, Sequence

import numpy as np


def _array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def mean(values: Sequence[float]) -> Optional[float]:
    arr = _array(values)
    if arr.size == 0:
        return None
    return float(arr.mean())


def median(values: Sequence[float]) -> Optional[float]:
    arr = _array(values)
    if arr.size == 0:
        return None
    return float(np.median(arr))


def stddev(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation"""
    arr = _array(values)
    if arr.size < 2:
        return None
    return float(arr.std())


def zscore(values: Sequence[float]) -> Optional[float]:
    """Z-score of the latest value against the whole series"""
    arr = _array(values)
    if arr.size < 2:
        return None
    std = arr.std()
    if std == 0:
        return None
    return float((arr[-1] - arr.mean()) / std)


def pct_change(values: Sequence[float], lookback: int) -> Optional[float]:
    """Percent change of the latest value versus `lookback` observations earlier"""
    arr = _array(values)
    if lookback < 1 or arr.size <= lookback:
        return None
    previous = arr[-1 - lookback]
    if previous == 0:
        return None
    return float((arr[-1] - previous) / abs(previous) * 100)


def change(values: Sequence[float], lookback: int) -> Optional[float]:
    """Absolute change of the latest value versus `lookback` observations earlier"""
    arr = _array(values)
    if lookback < 1 or arr.size <= lookback:
        return None
    return float(arr[-1] - arr[-1 - lookback])


def correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Pearson correlation over the first min(len(a), len(b)) points.

    Returns 0.0 when either side has no variance or fewer than two points.
    """
    n = min(len(a), len(b))
    if n < 2:
        return 0.0
    x = _array(a[:n])
    y = _array(b[:n])
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = np.sqrt((dx ** 2).sum() * (dy ** 2).sum())
    if denominator == 0:
        return 0.0
    r = float((dx * dy).sum() / denominator)
    # float noise can push |r| a hair past 1
    return max(-1.0, min(1.0, r))
