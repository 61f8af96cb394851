"""Tests for the linear-algebra helpers."""

import numpy as np
import pytest

from forecast_core.exceptions import InvalidArgumentError
from forecast_core.stats.linalg import (
    cholesky,
    cholesky_inverse,
    cholesky_solve,
    fit_ols,
    inverse,
    matmul,
    ols_estimate,
    solve,
    transpose,
)


def _spd_matrix(size: int, seed: int = 0) -> np.ndarray:
    a = np.random.default_rng(seed).normal(size=(size, size))
    return a @ a.T + size * np.eye(size)


def test_transpose_and_matmul() -> None:
    """Test the basic matrix helpers and their shape checks."""
    a = np.arange(6.0).reshape(2, 3)
    np.testing.assert_array_equal(transpose(a), a.T)
    np.testing.assert_allclose(matmul(a, transpose(a)), a @ a.T)
    with pytest.raises(InvalidArgumentError, match="Cannot multiply"):
        matmul(a, a)


def test_inverse_with_partial_pivoting() -> None:
    """Test Gauss-Jordan inversion, including a matrix with a zero leading pivot."""
    matrix = np.array([[0.0, 2.0, 1.0], [1.0, 1.0, 0.0], [3.0, 0.0, 1.0]])
    result = inverse(matrix)
    np.testing.assert_allclose(result @ matrix, np.eye(3), atol=1e-12)

    spd = _spd_matrix(5)
    np.testing.assert_allclose(inverse(spd), np.linalg.inv(spd), rtol=1e-10)


def test_inverse_singular_matrix_raises() -> None:
    """Test that a singular matrix raises InvalidArgumentError."""
    singular = np.array([[1.0, 2.0], [2.0, 4.0]])
    with pytest.raises(InvalidArgumentError, match="singular"):
        inverse(singular)
    with pytest.raises(InvalidArgumentError, match="square"):
        inverse(np.ones((2, 3)))


def test_solve() -> None:
    """Test solving a linear system."""
    matrix = _spd_matrix(4, seed=1)
    rhs = np.array([1.0, -2.0, 0.5, 3.0])
    np.testing.assert_allclose(matrix @ solve(matrix, rhs), rhs, atol=1e-10)


def test_cholesky_factor_and_rejection() -> None:
    """Test the Cholesky factor and the error on an indefinite matrix."""
    spd = _spd_matrix(4, seed=2)
    factor = cholesky(spd)
    np.testing.assert_allclose(factor @ factor.T, spd, atol=1e-10)
    assert np.allclose(factor, np.tril(factor))

    with pytest.raises(InvalidArgumentError, match="positive definite"):
        cholesky(np.array([[1.0, 0.0], [0.0, -1.0]]))


def test_cholesky_solve_applies_ridge() -> None:
    """Test that the solve regularizes the diagonal with the ridge."""
    spd = _spd_matrix(3, seed=3)
    rhs = np.array([1.0, 2.0, 3.0])
    np.testing.assert_allclose(cholesky_solve(spd, rhs, ridge=0.0), np.linalg.solve(spd, rhs))
    np.testing.assert_allclose(
        cholesky_solve(spd, rhs, ridge=0.5), np.linalg.solve(spd + 0.5 * np.eye(3), rhs)
    )


def test_cholesky_solve_grows_ridge_for_indefinite_matrix() -> None:
    """Test that an indefinite matrix is regularized until it is positive definite."""
    indefinite = np.array([[2.0, 0.0], [0.0, -0.5]])
    result = cholesky_solve(indefinite, np.array([1.0, 1.0]))
    assert np.all(np.isfinite(result))


def test_cholesky_inverse() -> None:
    """Test the inverse via Cholesky and the None result for non-PD input."""
    spd = _spd_matrix(4, seed=4)
    np.testing.assert_allclose(cholesky_inverse(spd), np.linalg.inv(spd), rtol=1e-10)
    assert cholesky_inverse(np.zeros((2, 2))) is None


def test_ols_recovers_coefficients() -> None:
    """Test least squares on a noiseless and a noisy design."""
    rng = np.random.default_rng(5)
    x = np.column_stack([np.ones(100), rng.normal(size=100), rng.normal(size=100)])
    beta = np.array([1.0, -2.0, 0.5])

    np.testing.assert_allclose(ols_estimate(x, x @ beta), beta, atol=1e-10)

    y = x @ beta + rng.normal(scale=0.1, size=100)
    result = fit_ols(x, y)
    np.testing.assert_allclose(result.coefficients, np.linalg.lstsq(x, y, rcond=None)[0], atol=1e-10)
    np.testing.assert_allclose(result.fitted + result.residuals, y)
    assert 0.95 < result.r2 <= 1.0


def test_fit_ols_constant_response_has_undefined_r2() -> None:
    """Test that R-squared is None when the response is constant."""
    x = np.column_stack([np.ones(10), np.arange(10.0)])
    result = fit_ols(x, np.full(10, 4.0))
    assert result.r2 is None
    np.testing.assert_allclose(result.coefficients, [4.0, 0.0], atol=1e-10)


def test_ols_shape_mismatch() -> None:
    """Test that mismatched rows raise InvalidArgumentError."""
    with pytest.raises(InvalidArgumentError, match="rows"):
        ols_estimate(np.ones((5, 2)), np.ones(4))
