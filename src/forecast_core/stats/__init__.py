"""Statistical primitives: distributions, descriptive statistics, spectra, linear algebra, tests."""

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
from forecast_core.stats.distributions import (
    chi_square_cdf,
    chi_square_inverse_cdf,
    erf,
    gamma,
    log_gamma,
    normal_cdf,
    normal_inverse_cdf,
    normal_pdf,
)
from forecast_core.stats.hypothesis import (
    adf_test,
    box_pierce,
    breusch_pagan,
    durbin_watson,
    goldfeld_quandt,
    jarque_bera,
    kruskal_wallis,
    ljung_box,
    white_test,
)
from forecast_core.stats.linalg import (
    OLSResult,
    cholesky,
    cholesky_solve,
    fit_ols,
    inverse,
    matmul,
    ols_estimate,
    solve,
    transpose,
)
from forecast_core.stats.spectral import (
    SeasonalDecomposition,
    dominant_period,
    find_seasonal_peaks,
    periodogram,
    seasonal_decompose,
    seasonal_strength,
)

__all__ = [
    "OLSResult",
    "SeasonalDecomposition",
    "acf",
    "adf_test",
    "autocovariance",
    "box_pierce",
    "breusch_pagan",
    "chi_square_cdf",
    "chi_square_inverse_cdf",
    "cholesky",
    "cholesky_solve",
    "correlation",
    "covariance",
    "dominant_period",
    "durbin_watson",
    "erf",
    "find_seasonal_peaks",
    "fit_ols",
    "gamma",
    "goldfeld_quandt",
    "histogram",
    "inverse",
    "jarque_bera",
    "kruskal_wallis",
    "kurtosis",
    "ljung_box",
    "log_gamma",
    "matmul",
    "mean",
    "normal_cdf",
    "normal_inverse_cdf",
    "normal_pdf",
    "ols_estimate",
    "pacf",
    "periodogram",
    "quantile",
    "seasonal_decompose",
    "seasonal_strength",
    "skewness",
    "solve",
    "standard_deviation",
    "transpose",
    "variance",
    "white_test",
]
