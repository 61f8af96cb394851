"""Tests for descriptive statistics and autocorrelation functions."""

import numpy as np
import pytest
from scipy import stats as scipy_stats
from statsmodels.tsa.stattools import acf as sm_acf
from statsmodels.tsa.stattools import pacf as sm_pacf

from forecast_core.exceptions import InvalidArgumentError
from forecast_core.stats.descriptive import (
    acf,
    autocovariance,
    correlation,
    covariance,
    histogram,
    kurtosis,
    mean,
    pacf,
    quantile,
    skewness,
    standard_deviation,
    variance,
)


def _ar1(n: int, phi: float, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    noise = rng.normal(size=n)
    values = np.zeros(n)
    for t in range(1, n):
        values[t] = phi * values[t - 1] + noise[t]
    return values


def test_moments_match_numpy_and_scipy() -> None:
    """Test mean, variance, skewness and kurtosis on a skewed sample."""
    data = np.random.default_rng(0).gamma(2.0, size=500)

    assert mean(data) == pytest.approx(np.mean(data))
    assert variance(data) == pytest.approx(np.var(data, ddof=1))
    assert variance(data, ddof=0) == pytest.approx(np.var(data))
    assert standard_deviation(data) == pytest.approx(np.std(data, ddof=1))
    assert skewness(data) == pytest.approx(scipy_stats.skew(data))
    assert kurtosis(data) == pytest.approx(scipy_stats.kurtosis(data))
    assert kurtosis(data, excess=False) == pytest.approx(scipy_stats.kurtosis(data, fisher=False))


def test_constant_series_has_undefined_shape_statistics() -> None:
    """Test that skewness, kurtosis and correlation of a constant series are None."""
    constant = [3.0] * 10
    assert skewness(constant) is None
    assert kurtosis(constant) is None
    assert correlation(constant, list(range(10))) is None
    assert variance(constant) == 0.0


def test_covariance_and_correlation() -> None:
    """Test covariance and Pearson correlation against numpy."""
    rng = np.random.default_rng(1)
    x = rng.normal(size=200)
    y = 0.5 * x + rng.normal(size=200)

    assert covariance(x, y) == pytest.approx(np.cov(x, y)[0, 1])
    assert correlation(x, y) == pytest.approx(np.corrcoef(x, y)[0, 1])
    with pytest.raises(InvalidArgumentError, match="lengths differ"):
        covariance(x, y[:-1])


def test_quantile_and_histogram() -> None:
    """Test interpolated quantiles and histogram counts."""
    data = np.arange(1.0, 11.0)
    assert quantile(data, 0.5) == pytest.approx(5.5)
    assert quantile(data, 0.0) == 1.0
    assert quantile(data, 1.0) == 10.0
    with pytest.raises(InvalidArgumentError):
        quantile(data, 1.5)

    counts, edges = histogram(data, bins=5)
    assert counts.sum() == 10
    assert len(edges) == 6


def test_empty_and_multidimensional_input_rejected() -> None:
    """Test input validation of the descriptive functions."""
    with pytest.raises(InvalidArgumentError, match="empty"):
        mean([])
    with pytest.raises(InvalidArgumentError, match="one-dimensional"):
        mean(np.ones((3, 3)))
    with pytest.raises(InvalidArgumentError):
        variance([1.0])


def test_autocovariance_uses_biased_estimator() -> None:
    """Test autocovariance at lag 0 and beyond the series length."""
    data = np.array([1.0, 3.0, 2.0, 5.0, 4.0])
    assert autocovariance(data, 0) == pytest.approx(np.var(data))
    assert autocovariance(data, 10) == 0.0
    with pytest.raises(InvalidArgumentError):
        autocovariance(data, -1)


def test_acf_matches_statsmodels() -> None:
    """Test the sample ACF against statsmodels."""
    data = _ar1(300, 0.7, seed=2)
    result = acf(data, 15)

    assert result.shape == (16,)
    assert result[0] == 1.0
    np.testing.assert_allclose(result, sm_acf(data, nlags=15, fft=False), atol=1e-10)


def test_acf_of_constant_series_is_zero_beyond_lag_zero() -> None:
    """Test the degenerate ACF of a constant series."""
    result = acf([2.0] * 12, 4)
    np.testing.assert_array_equal(result, [1.0, 0.0, 0.0, 0.0, 0.0])


def test_pacf_matches_statsmodels_durbin_levinson() -> None:
    """Test the Durbin-Levinson PACF against statsmodels' biased Levinson-Durbin."""
    data = _ar1(400, 0.6, seed=3)
    result = pacf(data, 10)

    assert result.shape == (11,)
    np.testing.assert_allclose(result, sm_pacf(data, nlags=10, method="ldb"), atol=1e-8)
    # AR(1): partial autocorrelation cuts off after lag 1
    assert result[1] == pytest.approx(0.6, abs=0.1)
    assert np.all(np.abs(result[2:]) < 0.2)
