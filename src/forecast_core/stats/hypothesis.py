"""Hypothesis tests used by model fitting, validation and selection.

Every test returns a StatTestResult. Degenerate inputs (constant series,
too few observations, singular regressions) produce a result whose fields
are None instead of raising, so diagnostics can always be assembled.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy import stats as scipy_stats

from forecast_core.config import LJUNG_BOX_MAX_LAG
from forecast_core.exceptions import InvalidArgumentError
from forecast_core.stats.descriptive import ArrayLike, _as_array, acf, kurtosis, skewness
from forecast_core.stats.distributions import chi_square_sf, normal_cdf
from forecast_core.stats.linalg import fit_ols, inverse
from forecast_core.types import StatTestResult

logger = logging.getLogger(__name__)

UNDEFINED = StatTestResult(statistic=None, p_value=None)

# MacKinnon (1994/2010) approximate p-value surface, constant-only regression, one series
_ADF_TAU_MAX = 2.74
_ADF_TAU_MIN = -18.83
_ADF_TAU_STAR = -1.61
_ADF_SMALL_P = (2.1659, 1.4412, 0.038269)
_ADF_LARGE_P = (1.7339, 0.93202, -0.12745, -0.010368)


def default_ljung_box_lags(n: int) -> int:
    """min(20, n // 5), at least 1."""
    return max(1, min(LJUNG_BOX_MAX_LAG, n // 5))


def durbin_watson(residuals: ArrayLike) -> Optional[float]:
    """Durbin-Watson statistic sum((e_t - e_{t-1})^2) / sum(e_t^2); None if all residuals are zero."""
    e = _as_array(residuals)
    denominator = np.dot(e, e)
    if denominator == 0:
        return None
    return float(np.sum(np.diff(e) ** 2) / denominator)


def _portmanteau(
    residuals: ArrayLike, max_lag: Optional[int], n_params: int, ljung: bool
) -> StatTestResult:
    e = _as_array(residuals)
    n = e.size
    lags = default_ljung_box_lags(n) if max_lag is None else int(max_lag)
    if lags < 1:
        raise InvalidArgumentError(f"max_lag must be at least 1, got {lags}")
    if n <= lags + 1 or np.all(e == e[0]):
        return UNDEFINED

    rho = acf(e, lags)[1:]
    k = np.arange(1, lags + 1)
    if ljung:
        statistic = n * (n + 2) * np.sum(rho**2 / (n - k))
    else:
        statistic = n * np.sum(rho**2)
    df = max(lags - n_params, 1)
    return StatTestResult(statistic=float(statistic), p_value=chi_square_sf(float(statistic), df))


def ljung_box(
    residuals: ArrayLike, max_lag: Optional[int] = None, n_params: int = 0
) -> StatTestResult:
    """Ljung-Box portmanteau test of residual autocorrelation.

    Args:
        residuals: Model residuals.
        max_lag: Number of autocorrelations pooled; defaults to min(20, n // 5).
        n_params: Estimated ARMA coefficients, subtracted from the degrees of
            freedom (floored at 1).

    Returns:
        Q statistic and chi-square p-value.
    """
    return _portmanteau(residuals, max_lag, n_params, ljung=True)


def box_pierce(
    residuals: ArrayLike, max_lag: Optional[int] = None, n_params: int = 0
) -> StatTestResult:
    """Box-Pierce portmanteau test (unweighted Ljung-Box)."""
    return _portmanteau(residuals, max_lag, n_params, ljung=False)


def jarque_bera(residuals: ArrayLike) -> StatTestResult:
    """Jarque-Bera normality test, JB = n/6 (S^2 + K^2/4) with excess kurtosis K, df = 2."""
    e = _as_array(residuals)
    s = skewness(e)
    k = kurtosis(e, excess=True)
    if s is None or k is None:
        return UNDEFINED
    statistic = e.size / 6.0 * (s**2 + k**2 / 4.0)
    return StatTestResult(statistic=float(statistic), p_value=chi_square_sf(statistic, 2))


def _lagrange_multiplier(squared: np.ndarray, design: np.ndarray) -> StatTestResult:
    try:
        result = fit_ols(design, squared)
    except InvalidArgumentError:
        logger.debug("Auxiliary regression is singular; heteroskedasticity test undefined")
        return UNDEFINED
    if result.r2 is None:
        return UNDEFINED
    statistic = squared.size * result.r2
    df = design.shape[1] - 1
    return StatTestResult(statistic=float(statistic), p_value=chi_square_sf(statistic, df))


def breusch_pagan(residuals: ArrayLike, regressors: ArrayLike) -> StatTestResult:
    """Breusch-Pagan test: n * R^2 of e^2 regressed on [1, regressors].

    Args:
        residuals: Model residuals.
        regressors: One column (1-D) or several columns (2-D, n x k).
    """
    e = _as_array(residuals)
    x = np.asarray(regressors, dtype=float)
    if x.ndim == 1:
        x = x[:, None]
    if x.shape[0] != e.size:
        raise InvalidArgumentError(f"Regressors have {x.shape[0]} rows, expected {e.size}")
    design = np.column_stack([np.ones(e.size), x])
    return _lagrange_multiplier(e**2, design)


def white_test(residuals: ArrayLike, predictions: ArrayLike) -> StatTestResult:
    """White test: n * R^2 of e^2 regressed on [1, yhat, yhat^2], df = 2."""
    e = _as_array(residuals)
    p = _as_array(predictions)
    if p.size != e.size:
        raise InvalidArgumentError(f"Predictions have {p.size} values, expected {e.size}")
    design = np.column_stack([np.ones(e.size), p, p**2])
    return _lagrange_multiplier(e**2, design)


def goldfeld_quandt(residuals: ArrayLike, drop_fraction: float = 1.0 / 3.0) -> StatTestResult:
    """Goldfeld-Quandt test comparing the variance of the last and first segments.

    The middle drop_fraction of observations is discarded; the statistic is the
    ratio of the later to the earlier segment's variance with an F p-value
    (alternative: variance increases over time).
    """
    e = _as_array(residuals)
    if not 0.0 <= drop_fraction < 1.0:
        raise InvalidArgumentError(f"drop_fraction must be in [0, 1), got {drop_fraction}")
    segment = int((e.size - int(e.size * drop_fraction)) // 2)
    if segment < 2:
        return UNDEFINED
    first, last = e[:segment], e[-segment:]
    denominator = np.var(first, ddof=1)
    if denominator == 0:
        return UNDEFINED
    statistic = float(np.var(last, ddof=1) / denominator)
    p_value = float(scipy_stats.f.sf(statistic, segment - 1, segment - 1))
    return StatTestResult(statistic=statistic, p_value=p_value)


def _average_ranks(values: np.ndarray) -> np.ndarray:
    order = np.argsort(values, kind="mergesort")
    ranks = np.empty(values.size)
    sorted_values = values[order]
    i = 0
    while i < values.size:
        j = i
        while j + 1 < values.size and sorted_values[j + 1] == sorted_values[i]:
            j += 1
        ranks[order[i : j + 1]] = (i + j) / 2.0 + 1.0
        i = j + 1
    return ranks


def kruskal_wallis(values: ArrayLike, period: int) -> StatTestResult:
    """Kruskal-Wallis H test for seasonality, grouping observations by phase t mod period.

    Ties receive average ranks and the statistic is tie-corrected. Degrees of
    freedom are the number of non-empty groups minus one.
    """
    x = _as_array(values)
    if period < 2:
        raise InvalidArgumentError(f"Seasonality test needs a period of at least 2, got {period}")
    n = x.size
    if n < period + 1:
        return UNDEFINED

    ranks = _average_ranks(x)
    phases = np.arange(n) % period
    h = 0.0
    groups = 0
    for phase in range(period):
        group = ranks[phases == phase]
        if group.size == 0:
            continue
        groups += 1
        h += group.sum() ** 2 / group.size
    h = 12.0 / (n * (n + 1)) * h - 3.0 * (n + 1)

    _, tie_counts = np.unique(x, return_counts=True)
    correction = 1.0 - np.sum(tie_counts**3 - tie_counts) / (n**3 - n)
    if correction <= 0 or groups < 2:
        return UNDEFINED
    h /= correction
    return StatTestResult(statistic=float(h), p_value=chi_square_sf(h, groups - 1))


def _mackinnon_p_value(tau: float) -> float:
    if tau > _ADF_TAU_MAX:
        return 1.0
    if tau < _ADF_TAU_MIN:
        return 0.0
    coefficients = _ADF_SMALL_P if tau <= _ADF_TAU_STAR else _ADF_LARGE_P
    return normal_cdf(float(np.polyval(coefficients[::-1], tau)))


def adf_test(values: ArrayLike, lags: int = 1) -> StatTestResult:
    """Augmented Dickey-Fuller unit-root test with a constant.

    Regresses dy_t on [1, y_{t-1}, dy_{t-1}, ..., dy_{t-lags}] and reports the
    t-statistic of the y_{t-1} coefficient with a MacKinnon approximate
    p-value. A small p-value rejects the unit root (series is stationary).
    """
    y = _as_array(values)
    if lags < 0:
        raise InvalidArgumentError(f"lags must be non-negative, got {lags}")
    dy = np.diff(y)
    rows = dy.size - lags
    n_regressors = 2 + lags
    if rows <= n_regressors:
        return UNDEFINED

    response = dy[lags:]
    columns = [np.ones(rows), y[lags:-1]]
    for lag in range(1, lags + 1):
        columns.append(dy[lags - lag : dy.size - lag])
    design = np.column_stack(columns)

    try:
        result = fit_ols(design, response)
        xtx_inv = inverse(design.T @ design)
    except InvalidArgumentError:
        return UNDEFINED
    sigma2 = np.dot(result.residuals, result.residuals) / (rows - n_regressors)
    se = np.sqrt(sigma2 * xtx_inv[1, 1])
    if not np.isfinite(se) or se == 0:
        return UNDEFINED
    tau = float(result.coefficients[1] / se)
    return StatTestResult(statistic=tau, p_value=_mackinnon_p_value(tau))
