"""Probability distributions and special functions.

Normal and chi-square CDFs with their inverses, plus Lanczos gamma functions.
All functions are pure and operate on Python floats.
"""

from __future__ import annotations

import math

from forecast_core.exceptions import InvalidArgumentError

_SQRT_2 = math.sqrt(2.0)
_SQRT_2PI = math.sqrt(2.0 * math.pi)

_INVERSE_CDF_MAX_ITERATIONS = 100
_INVERSE_CDF_TOLERANCE = 1e-10

# Lanczos approximation coefficients (g = 7, n = 9)
_LANCZOS_G = 7
_LANCZOS_COEFFICIENTS = (
    0.99999999999980993,
    676.5203681218851,
    -1259.1392167224028,
    771.32342877765313,
    -176.61502916214059,
    12.507343278686905,
    -0.13857109526572012,
    9.9843695780195716e-6,
    1.5056327351493116e-7,
)

# Acklam's rational approximation of the normal quantile, used as the Newton seed
_ACKLAM_A = (
    -3.969683028665376e01,
    2.209460984245205e02,
    -2.759285104469687e02,
    1.383577518672690e02,
    -3.066479806614716e01,
    2.506628277459239e00,
)
_ACKLAM_B = (
    -5.447609879822406e01,
    1.615858368580409e02,
    -1.556989798598866e02,
    6.680131188771972e01,
    -1.328068155288572e01,
)
_ACKLAM_C = (
    -7.784894002430293e-03,
    -3.223964580411365e-01,
    -2.400758277161838e00,
    -2.549732539343734e00,
    4.374664141464968e00,
    2.938163982698783e00,
)
_ACKLAM_D = (
    7.784695709041462e-03,
    3.224671290700398e-01,
    2.445134137142996e00,
    3.754408661907416e00,
)
_ACKLAM_P_LOW = 0.02425


def _check_probability(p: float) -> None:
    if not 0.0 < p < 1.0:
        raise InvalidArgumentError(f"Probability must be in the open interval (0, 1), got {p}")


def _check_scale(std_dev: float) -> None:
    if not std_dev > 0:
        raise InvalidArgumentError(f"Standard deviation must be positive, got {std_dev}")


def erf(x: float) -> float:
    """Error function."""
    return math.erf(x)


def normal_pdf(x: float, mean: float = 0.0, std_dev: float = 1.0) -> float:
    """Density of N(mean, std_dev^2) at x."""
    _check_scale(std_dev)
    z = (x - mean) / std_dev
    return math.exp(-0.5 * z * z) / (std_dev * _SQRT_2PI)


def normal_cdf(x: float, mean: float = 0.0, std_dev: float = 1.0) -> float:
    """Cumulative distribution function of N(mean, std_dev^2)."""
    _check_scale(std_dev)
    z = (x - mean) / (std_dev * _SQRT_2)
    return 0.5 * (1.0 + erf(z))


def _standard_normal_quantile_seed(p: float) -> float:
    if p < _ACKLAM_P_LOW:
        q = math.sqrt(-2.0 * math.log(p))
        c, d = _ACKLAM_C, _ACKLAM_D
        return (((((c[0] * q + c[1]) * q + c[2]) * q + c[3]) * q + c[4]) * q + c[5]) / (
            (((d[0] * q + d[1]) * q + d[2]) * q + d[3]) * q + 1.0
        )
    if p > 1.0 - _ACKLAM_P_LOW:
        return -_standard_normal_quantile_seed(1.0 - p)
    q = p - 0.5
    r = q * q
    a, b = _ACKLAM_A, _ACKLAM_B
    return (((((a[0] * r + a[1]) * r + a[2]) * r + a[3]) * r + a[4]) * r + a[5]) * q / (
        ((((b[0] * r + b[1]) * r + b[2]) * r + b[3]) * r + b[4]) * r + 1.0
    )


def normal_inverse_cdf(p: float, mean: float = 0.0, std_dev: float = 1.0) -> float:
    """Quantile function of N(mean, std_dev^2).

    Starts from a rational approximation and refines it with Newton-Raphson
    (at most 100 iterations, tolerance 1e-10).

    Raises:
        InvalidArgumentError: If p is not in (0, 1).
    """
    _check_probability(p)
    _check_scale(std_dev)

    z = _standard_normal_quantile_seed(p)
    for _ in range(_INVERSE_CDF_MAX_ITERATIONS):
        density = normal_pdf(z)
        if density == 0.0:
            break
        delta = (normal_cdf(z) - p) / density
        z -= delta
        if abs(delta) < _INVERSE_CDF_TOLERANCE:
            break
    return mean + std_dev * z


def _wilson_hilferty_z(x: float, df: float) -> float:
    scale = 2.0 / (9.0 * df)
    return ((x / df) ** (1.0 / 3.0) - (1.0 - scale)) / math.sqrt(scale)


def chi_square_cdf(x: float, df: float) -> float:
    """Chi-square CDF via the Wilson-Hilferty normal approximation."""
    if not df > 0:
        raise InvalidArgumentError(f"Degrees of freedom must be positive, got {df}")
    if x <= 0:
        return 0.0
    return normal_cdf(_wilson_hilferty_z(x, df))


def chi_square_sf(x: float, df: float) -> float:
    """Survival function 1 - CDF, clipped to [0, 1]."""
    return min(1.0, max(0.0, 1.0 - chi_square_cdf(x, df)))


def chi_square_pdf(x: float, df: float) -> float:
    """Exact chi-square density."""
    if not df > 0:
        raise InvalidArgumentError(f"Degrees of freedom must be positive, got {df}")
    if x <= 0:
        return 0.0
    half = df / 2.0
    return math.exp((half - 1.0) * math.log(x) - x / 2.0 - log_gamma(half) - half * math.log(2.0))


def chi_square_inverse_cdf(p: float, df: float) -> float:
    """Inverse of chi_square_cdf, refined with Newton-Raphson.

    The seed is the closed-form inverse of the Wilson-Hilferty transform; the
    derivative used by Newton is that of the same approximation, so the result
    inverts chi_square_cdf exactly.

    Raises:
        InvalidArgumentError: If p is not in (0, 1) or df is not positive.
    """
    _check_probability(p)
    if not df > 0:
        raise InvalidArgumentError(f"Degrees of freedom must be positive, got {df}")

    scale = 2.0 / (9.0 * df)
    z = normal_inverse_cdf(p)
    x = df * max(1.0 - scale + z * math.sqrt(scale), 1e-6) ** 3

    for _ in range(_INVERSE_CDF_MAX_ITERATIONS):
        wh = _wilson_hilferty_z(x, df)
        derivative = normal_pdf(wh) * (x / df) ** (-2.0 / 3.0) / (3.0 * df * math.sqrt(scale))
        if derivative == 0.0:
            break
        delta = (normal_cdf(wh) - p) / derivative
        x = max(x - delta, x / 10.0)
        if abs(delta) < _INVERSE_CDF_TOLERANCE:
            break
    return x


def gamma(z: float) -> float:
    """Gamma function via the Lanczos approximation.

    Uses the reflection formula for z < 0.5.

    Raises:
        InvalidArgumentError: At the poles (zero and negative integers).
    """
    if z <= 0 and float(z).is_integer():
        raise InvalidArgumentError(f"Gamma function has a pole at {z}")
    if z < 0.5:
        return math.pi / (math.sin(math.pi * z) * gamma(1.0 - z))

    z -= 1.0
    x = _LANCZOS_COEFFICIENTS[0]
    for i in range(1, _LANCZOS_G + 2):
        x += _LANCZOS_COEFFICIENTS[i] / (z + i)
    t = z + _LANCZOS_G + 0.5
    return _SQRT_2PI * t ** (z + 0.5) * math.exp(-t) * x


def log_gamma(z: float) -> float:
    """Natural log of |Gamma(z)|, computed in log space to avoid overflow."""
    if z <= 0 and float(z).is_integer():
        raise InvalidArgumentError(f"Gamma function has a pole at {z}")
    if z < 0.5:
        return math.log(math.pi / abs(math.sin(math.pi * z))) - log_gamma(1.0 - z)

    z -= 1.0
    x = _LANCZOS_COEFFICIENTS[0]
    for i in range(1, _LANCZOS_G + 2):
        x += _LANCZOS_COEFFICIENTS[i] / (z + i)
    t = z + _LANCZOS_G + 0.5
    return 0.5 * math.log(2.0 * math.pi) + (z + 0.5) * math.log(t) - t + math.log(x)
