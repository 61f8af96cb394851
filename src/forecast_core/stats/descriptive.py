"""Descriptive statistics and autocorrelation functions."""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np

from forecast_core.exceptions import InvalidArgumentError

ArrayLike = Union[Sequence[float], np.ndarray]


def _as_array(data: ArrayLike) -> np.ndarray:
    values = np.asarray(data, dtype=float)
    if values.ndim != 1:
        raise InvalidArgumentError(f"Expected a one-dimensional series, got shape {values.shape}")
    if values.size == 0:
        raise InvalidArgumentError("Cannot compute statistics of an empty series")
    return values


def mean(data: ArrayLike) -> float:
    return float(np.mean(_as_array(data)))


def variance(data: ArrayLike, ddof: int = 1) -> float:
    """Sample variance (ddof=1) or population variance (ddof=0).

    Raises:
        InvalidArgumentError: If the series has no more than ddof observations.
    """
    values = _as_array(data)
    if values.size <= ddof:
        raise InvalidArgumentError(
            f"Need more than {ddof} observations for variance, got {values.size}"
        )
    return float(np.var(values, ddof=ddof))


def standard_deviation(data: ArrayLike, ddof: int = 1) -> float:
    return float(np.sqrt(variance(data, ddof=ddof)))


def skewness(data: ArrayLike) -> float | None:
    """Moment-based skewness; None for a constant series."""
    values = _as_array(data)
    centered = values - values.mean()
    m2 = np.mean(centered**2)
    if m2 == 0:
        return None
    return float(np.mean(centered**3) / m2**1.5)


def kurtosis(data: ArrayLike, excess: bool = True) -> float | None:
    """Moment-based kurtosis; excess kurtosis (normal = 0) by default."""
    values = _as_array(data)
    centered = values - values.mean()
    m2 = np.mean(centered**2)
    if m2 == 0:
        return None
    result = float(np.mean(centered**4) / m2**2)
    return result - 3.0 if excess else result


def covariance(x: ArrayLike, y: ArrayLike, ddof: int = 1) -> float:
    a, b = _as_array(x), _as_array(y)
    if a.size != b.size:
        raise InvalidArgumentError(f"Series lengths differ: {a.size} vs {b.size}")
    if a.size <= ddof:
        raise InvalidArgumentError(f"Need more than {ddof} observations for covariance")
    return float(np.sum((a - a.mean()) * (b - b.mean())) / (a.size - ddof))


def correlation(x: ArrayLike, y: ArrayLike) -> float | None:
    """Pearson correlation; None when either series is constant."""
    a, b = _as_array(x), _as_array(y)
    if a.size != b.size:
        raise InvalidArgumentError(f"Series lengths differ: {a.size} vs {b.size}")
    sa = np.sqrt(np.sum((a - a.mean()) ** 2))
    sb = np.sqrt(np.sum((b - b.mean()) ** 2))
    if sa == 0 or sb == 0:
        return None
    return float(np.sum((a - a.mean()) * (b - b.mean())) / (sa * sb))


def quantile(data: ArrayLike, q: float) -> float:
    """Linearly interpolated quantile, q in [0, 1]."""
    if not 0.0 <= q <= 1.0:
        raise InvalidArgumentError(f"Quantile must be in [0, 1], got {q}")
    return float(np.quantile(_as_array(data), q))


def histogram(data: ArrayLike, bins: int = 10) -> Tuple[np.ndarray, np.ndarray]:
    """Counts and bin edges over equally spaced bins."""
    if bins <= 0:
        raise InvalidArgumentError(f"bins must be positive, got {bins}")
    counts, edges = np.histogram(_as_array(data), bins=bins)
    return counts, edges


def autocovariance(data: ArrayLike, lag: int) -> float:
    """Biased (divide by n) autocovariance at the given lag."""
    values = _as_array(data)
    n = values.size
    if lag < 0:
        raise InvalidArgumentError(f"Lag must be non-negative, got {lag}")
    if lag >= n:
        return 0.0
    centered = values - values.mean()
    return float(np.dot(centered[: n - lag], centered[lag:]) / n)


def acf(data: ArrayLike, max_lag: int) -> np.ndarray:
    """Sample autocorrelation function.

    Args:
        data: Input series.
        max_lag: Largest lag to compute.

    Returns:
        Array of length max_lag + 1 with acf[0] == 1. A constant series yields
        zeros beyond lag 0.
    """
    values = _as_array(data)
    if max_lag < 0:
        raise InvalidArgumentError(f"max_lag must be non-negative, got {max_lag}")
    n = values.size
    centered = values - values.mean()
    denominator = np.dot(centered, centered)
    result = np.zeros(max_lag + 1)
    result[0] = 1.0
    if denominator == 0:
        return result
    for lag in range(1, min(max_lag, n - 1) + 1):
        result[lag] = np.dot(centered[: n - lag], centered[lag:]) / denominator
    return result


def pacf(data: ArrayLike, max_lag: int) -> np.ndarray:
    """Sample partial autocorrelation via the Durbin-Levinson recursion.

    Returns:
        Array of length max_lag + 1 with pacf[0] == 1.
    """
    rho = acf(data, max_lag)
    result = np.zeros(max_lag + 1)
    result[0] = 1.0
    if max_lag == 0:
        return result

    phi = np.zeros(max_lag + 1)
    previous = np.zeros(max_lag + 1)
    error = 1.0
    for k in range(1, max_lag + 1):
        if error <= 0:
            break
        numerator = rho[k] - np.dot(previous[1:k], rho[k - 1 : 0 : -1])
        reflection = numerator / error
        phi[:] = previous
        phi[k] = reflection
        phi[1:k] = previous[1:k] - reflection * previous[k - 1 : 0 : -1]
        error *= 1.0 - reflection**2
        result[k] = reflection
        previous[:] = phi
    return result
