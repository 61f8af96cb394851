"""Dense linear-algebra helpers: inverse, Cholesky solves and least squares."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.linalg import solve_triangular

from forecast_core.config import HESSIAN_RIDGE, MAX_RIDGE, RIDGE_GROWTH
from forecast_core.exceptions import InvalidArgumentError

SINGULAR_PIVOT = 1e-12


@dataclass(frozen=True)
class OLSResult:
    """Ordinary least squares fit.

    Attributes:
        coefficients: Estimated coefficients, one per design column.
        fitted: X @ coefficients.
        residuals: y - fitted.
        r2: Coefficient of determination, None when y is constant.
    """

    coefficients: np.ndarray
    fitted: np.ndarray
    residuals: np.ndarray
    r2: Optional[float]


def _as_matrix(matrix) -> np.ndarray:
    values = np.asarray(matrix, dtype=float)
    if values.ndim != 2:
        raise InvalidArgumentError(f"Expected a two-dimensional matrix, got shape {values.shape}")
    return values


def _as_square(matrix) -> np.ndarray:
    values = _as_matrix(matrix)
    if values.shape[0] != values.shape[1]:
        raise InvalidArgumentError(f"Expected a square matrix, got shape {values.shape}")
    return values


def transpose(matrix) -> np.ndarray:
    return _as_matrix(matrix).T.copy()


def matmul(a, b) -> np.ndarray:
    left, right = _as_matrix(a), _as_matrix(b)
    if left.shape[1] != right.shape[0]:
        raise InvalidArgumentError(f"Cannot multiply shapes {left.shape} and {right.shape}")
    return left @ right


def inverse(matrix, tolerance: float = SINGULAR_PIVOT) -> np.ndarray:
    """Gauss-Jordan inverse with partial pivoting.

    Raises:
        InvalidArgumentError: If a pivot falls below tolerance (singular matrix).
    """
    a = _as_square(matrix).copy()
    n = a.shape[0]
    augmented = np.hstack([a, np.eye(n)])

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(augmented[col:, col])))
        if abs(augmented[pivot_row, col]) < tolerance:
            raise InvalidArgumentError("Matrix is singular and cannot be inverted")
        if pivot_row != col:
            augmented[[col, pivot_row]] = augmented[[pivot_row, col]]
        augmented[col] /= augmented[col, col]
        for row in range(n):
            if row != col:
                augmented[row] -= augmented[row, col] * augmented[col]
    return augmented[:, n:]


def solve(matrix, rhs) -> np.ndarray:
    """Solve matrix @ x = rhs using the pivoted inverse."""
    a = _as_square(matrix)
    b = np.asarray(rhs, dtype=float)
    if b.shape[0] != a.shape[0]:
        raise InvalidArgumentError(f"Right-hand side has {b.shape[0]} rows, expected {a.shape[0]}")
    return inverse(a) @ b


def cholesky(matrix) -> np.ndarray:
    """Lower-triangular Cholesky factor.

    Raises:
        InvalidArgumentError: If the matrix is not symmetric positive definite.
    """
    a = _as_square(matrix)
    try:
        return np.linalg.cholesky(a)
    except np.linalg.LinAlgError as e:
        raise InvalidArgumentError("Matrix is not positive definite") from e


def cholesky_solve(matrix, rhs, ridge: float = HESSIAN_RIDGE) -> np.ndarray:
    """Solve (matrix + ridge * I) x = rhs via Cholesky.

    The ridge is multiplied by RIDGE_GROWTH until the regularized matrix is
    positive definite.

    Raises:
        InvalidArgumentError: If the matrix stays indefinite up to MAX_RIDGE.
    """
    a = _as_square(matrix)
    b = np.asarray(rhs, dtype=float)
    identity = np.eye(a.shape[0])
    current = ridge
    while current <= MAX_RIDGE:
        try:
            factor = np.linalg.cholesky(a + current * identity)
        except np.linalg.LinAlgError:
            current = current * RIDGE_GROWTH if current > 0 else HESSIAN_RIDGE
            continue
        forward = solve_triangular(factor, b, lower=True)
        return solve_triangular(factor.T, forward, lower=False)
    raise InvalidArgumentError(f"Matrix is not positive definite even with ridge {MAX_RIDGE:g}")


def cholesky_inverse(matrix) -> Optional[np.ndarray]:
    """Inverse of a positive definite matrix by solving against identity columns.

    Returns:
        The inverse, or None when the matrix is not positive definite.
    """
    a = _as_square(matrix)
    try:
        factor = np.linalg.cholesky(a)
    except np.linalg.LinAlgError:
        return None
    identity = np.eye(a.shape[0])
    forward = solve_triangular(factor, identity, lower=True)
    return solve_triangular(factor.T, forward, lower=False)


def ols_estimate(design, response) -> np.ndarray:
    """Coefficients from the normal equations (X'X)^-1 X'y.

    Raises:
        InvalidArgumentError: If X'X is singular or shapes do not match.
    """
    x = _as_matrix(design)
    y = np.asarray(response, dtype=float)
    if x.shape[0] != y.shape[0]:
        raise InvalidArgumentError(f"Design has {x.shape[0]} rows but response has {y.shape[0]}")
    return inverse(x.T @ x) @ (x.T @ y)


def fit_ols(design, response) -> OLSResult:
    x = _as_matrix(design)
    y = np.asarray(response, dtype=float)
    coefficients = ols_estimate(x, y)
    fitted = x @ coefficients
    residuals = y - fitted
    total = np.sum((y - y.mean()) ** 2)
    r2 = None if total == 0 else float(1.0 - np.sum(residuals**2) / total)
    return OLSResult(coefficients=coefficients, fitted=fitted, residuals=residuals, r2=r2)
