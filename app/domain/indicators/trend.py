"""
Pure price-trend indicators.
NO DB. NO NETWORK.
"""

import math
from typing import Optional, Sequence

import pandas as pd


def _series(prices: Sequence[float]) -> pd.Series:
    return pd.Series(list(prices), dtype="float64")


def moving_average(prices: Sequence[float], window: int) -> Optional[float]:
    series = _series(prices)
    if len(series) < window:
        return None
    return float(series.tail(window).mean())


def distance_from_ma(price: float, ma: Optional[float]) -> Optional[float]:
    """Percent distance of price above (+) or below (-) the average"""
    if ma is None or ma == 0:
        return None
    return (price - ma) / ma * 100


def realized_vol(prices: Sequence[float], window: int = 30, periods_per_year: int = 365) -> Optional[float]:
    """Annualized volatility of daily log returns, percent"""
    series = _series(prices)
    if len(series) < window + 1:
        return None
    window_prices = series.tail(window + 1)
    if (window_prices <= 0).any():
        return None
    returns = window_prices.apply(math.log).diff().dropna()
    return float(returns.std(ddof=0) * math.sqrt(periods_per_year) * 100)


def drawdown_from_high(prices: Sequence[float], window: int = 365) -> Optional[float]:
    """Percent below the highest price in the window (0 or negative)"""
    series = _series(prices)
    if series.empty:
        return None
    recent = series.tail(window)
    high = recent.max()
    if high <= 0:
        return None
    return float((recent.iloc[-1] - high) / high * 100)


def momentum(prices: Sequence[float], window: int = 90) -> Optional[float]:
    """Percent change over `window` observations"""
    series = _series(prices)
    if len(series) <= window:
        return None
    start = series.iloc[-1 - window]
    if start == 0:
        return None
    return float((series.iloc[-1] - start) / start * 100)
