"""Periodogram-based seasonality detection and classical decomposition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from forecast_core.exceptions import InsufficientDataError, InvalidArgumentError
from forecast_core.stats.descriptive import ArrayLike, _as_array


@dataclass(frozen=True)
class SeasonalDecomposition:
    """Additive decomposition data = trend + seasonal + residual.

    trend and residual are NaN where the centered moving average is undefined
    (the first and last window // 2 positions).
    """

    trend: np.ndarray
    seasonal: np.ndarray
    residual: np.ndarray
    period: int


def periodogram(data: ArrayLike, method: str = "fft") -> np.ndarray:
    """Power of the demeaned series at Fourier frequencies k/n, k = 0..n//2.

    Args:
        data: Input series.
        method: "fft" (O(n log n)) or "direct" summation (O(n^2)). Both
            return |sum_t x_t exp(-2 pi i k t / n)|^2 / n.

    Returns:
        Array of length n // 2 + 1; index k corresponds to period n / k.
    """
    values = _as_array(data)
    n = values.size
    centered = values - values.mean()

    if method == "fft":
        return np.abs(np.fft.rfft(centered)) ** 2 / n
    if method == "direct":
        t = np.arange(n)
        power = np.empty(n // 2 + 1)
        for k in range(n // 2 + 1):
            angle = 2.0 * np.pi * k * t / n
            real = np.dot(centered, np.cos(angle))
            imag = np.dot(centered, np.sin(angle))
            power[k] = (real * real + imag * imag) / n
        return power
    raise InvalidArgumentError(f"Unknown periodogram method: {method!r}")


def find_seasonal_peaks(
    data: ArrayLike,
    max_peaks: Optional[int] = None,
    min_period: int = 2,
    method: str = "fft",
) -> List[int]:
    """Candidate seasonal periods from local maxima of the periodogram.

    Frequencies are converted to integer periods round(n / k); periods outside
    [min_period, n // 2] are ignored. Results are ordered by decreasing power
    and de-duplicated.
    """
    values = _as_array(data)
    n = values.size
    if n < 4:
        return []
    power = periodogram(values, method=method)

    peaks = []
    for k in range(1, power.size):
        left = power[k - 1] if k > 1 else -np.inf
        right = power[k + 1] if k + 1 < power.size else -np.inf
        if power[k] > 0 and power[k] >= left and power[k] >= right:
            peaks.append((power[k], k))
    peaks.sort(key=lambda item: -item[0])

    periods: List[int] = []
    for _, k in peaks:
        period = int(round(n / k))
        if period < min_period or period > n // 2 or period in periods:
            continue
        periods.append(period)
        if max_peaks is not None and len(periods) >= max_peaks:
            break
    return periods


def dominant_period(data: ArrayLike, method: str = "fft") -> Optional[int]:
    """Period of the strongest periodogram peak, or None if there is none."""
    peaks = find_seasonal_peaks(data, max_peaks=1, method=method)
    return peaks[0] if peaks else None


def _centered_moving_average(values: np.ndarray, window: int) -> np.ndarray:
    n = values.size
    trend = np.full(n, np.nan)
    if window % 2 == 0:
        # 2 x window moving average keeps the window centered
        weights = np.concatenate(([0.5], np.ones(window - 1), [0.5])) / window
    else:
        weights = np.ones(window) / window
    half = weights.size // 2
    smoothed = np.convolve(values, weights, mode="valid")
    trend[half : half + smoothed.size] = smoothed
    return trend


def seasonal_decompose(data: ArrayLike, period: Optional[int] = None) -> SeasonalDecomposition:
    """Classical additive decomposition.

    Trend is a centered moving average with window min(12, n // 4); the
    seasonal component is the detrended series averaged by phase and centered
    to zero mean.

    Args:
        data: Input series.
        period: Seasonal period. Detected from the periodogram when omitted.

    Raises:
        InsufficientDataError: If the series is shorter than 8 observations or
            no period can be detected.
    """
    values = _as_array(data)
    n = values.size
    if n < 8:
        raise InsufficientDataError(f"Need at least 8 observations to decompose, got {n}")
    if period is None:
        period = dominant_period(values)
        if period is None:
            raise InsufficientDataError("No seasonal period detected in the periodogram")
    if period < 1:
        raise InvalidArgumentError(f"Period must be positive, got {period}")

    window = max(2, min(12, n // 4))
    trend = _centered_moving_average(values, window)
    detrended = values - trend

    phase_means = np.zeros(period)
    for phase in range(period):
        phase_values = detrended[phase::period]
        phase_values = phase_values[~np.isnan(phase_values)]
        phase_means[phase] = phase_values.mean() if phase_values.size else 0.0
    phase_means -= phase_means.mean()

    seasonal = np.resize(phase_means, n)
    residual = values - trend - seasonal
    return SeasonalDecomposition(trend=trend, seasonal=seasonal, residual=residual, period=period)


def seasonal_strength(data: ArrayLike, period: Optional[int] = None) -> float:
    """Strength of seasonality max(0, 1 - Var(residual) / Var(seasonal + residual))."""
    decomposition = seasonal_decompose(data, period)
    mask = ~np.isnan(decomposition.residual)
    residual = decomposition.residual[mask]
    combined = residual + decomposition.seasonal[mask]
    total = np.var(combined)
    if total == 0:
        return 0.0
    return float(max(0.0, 1.0 - np.var(residual) / total))
