"""Regular and seasonal differencing and their inverses."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from forecast_core.exceptions import InsufficientDataError, InvalidArgumentError


def difference(values, order: int = 1, period: int = 1) -> np.ndarray:
    """Apply ``order`` passes of x[t] - x[t - period].

    The result is ``order * period`` observations shorter than the input.

    Raises:
        InsufficientDataError: If the series is too short.
    """
    if order < 0 or period < 1:
        raise InvalidArgumentError(f"Invalid differencing order={order}, period={period}")
    result = np.asarray(values, dtype=float)
    for _ in range(order):
        if result.shape[0] <= period:
            raise InsufficientDataError(
                f"Cannot difference {result.shape[0]} observations at lag {period}"
            )
        result = result[period:] - result[:-period]
    return result


def integrate(values, order: int, period: int = 1, initial: Optional[Sequence[float]] = None) -> np.ndarray:
    """Invert ``difference`` given the leading raw observations.

    Args:
        values: Differenced series.
        order: Number of differencing passes to undo.
        period: Differencing lag.
        initial: The first ``order * period`` observations of the original
            series; zeros when omitted.

    Returns:
        Series of length len(values) + order * period such that
        difference(result, order, period) == values.
    """
    result = np.asarray(values, dtype=float)
    if order == 0:
        return result.copy()
    head = np.zeros(order * period) if initial is None else np.asarray(initial, dtype=float)
    if head.shape[0] != order * period:
        raise InvalidArgumentError(
            f"Need {order * period} initial values to integrate, got {head.shape[0]}"
        )

    # seeds for each pass: the leading `period` values of every intermediate difference
    seeds = [head[:period]]
    current = head
    for _ in range(1, order):
        current = difference(current, 1, period)
        seeds.append(current[:period])

    for level in reversed(range(order)):
        seed = seeds[level]
        restored = np.empty(result.shape[0] + period)
        restored[:period] = seed
        for t in range(result.shape[0]):
            restored[t + period] = restored[t] + result[t]
        result = restored
    return result


def differencing_polynomial(d: int, seasonal: Iterable[Tuple[int, int]] = ()) -> np.ndarray:
    """Coefficients of (1 - B)^d * prod_s (1 - B^m_s)^D_s in increasing powers of B.

    Args:
        d: Regular differencing order.
        seasonal: Pairs of (D, m).
    """
    polynomial = np.array([1.0])
    for _ in range(d):
        polynomial = np.convolve(polynomial, [1.0, -1.0])
    for order, period in seasonal:
        factor = np.zeros(period + 1)
        factor[0], factor[period] = 1.0, -1.0
        for _ in range(order):
            polynomial = np.convolve(polynomial, factor)
    return polynomial


def undifference(forecasts, history, polynomial) -> np.ndarray:
    """Map forecasts of the differenced series back to the original scale.

    Solves delta(B) y_t = w_t for future y, with delta given by ``polynomial``
    and the tail of ``history`` supplying the lagged raw values.

    Args:
        forecasts: Forecasts of the differenced series w.
        history: Raw series observed so far.
        polynomial: Output of differencing_polynomial.
    """
    delta = np.asarray(polynomial, dtype=float)
    w = np.asarray(forecasts, dtype=float)
    degree = delta.shape[0] - 1
    if degree == 0:
        return w.copy()
    raw = list(np.asarray(history, dtype=float))
    if len(raw) < degree:
        raise InsufficientDataError(f"Need {degree} historical values to undifference, got {len(raw)}")
    for value in w:
        raw.append(value - sum(delta[k] * raw[-k] for k in range(1, degree + 1)))
    return np.asarray(raw[-w.shape[0] :]) if w.shape[0] else np.empty(0)
