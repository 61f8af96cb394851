"""Newton-Raphson maximization of a log-likelihood with numerical derivatives."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from forecast_core.config import (
    GRADIENT_STEP,
    HESSIAN_RIDGE,
    HESSIAN_STEP,
    INITIAL_STEP_SIZE,
    MAX_STEP_SIZE,
    STEP_GROWTH,
    STEP_SHRINK,
)
from forecast_core.exceptions import DidNotConvergeError, InvalidArgumentError
from forecast_core.stats.linalg import cholesky_inverse, cholesky_solve

logger = logging.getLogger(__name__)

Objective = Callable[[np.ndarray], float]


@dataclass(frozen=True)
class OptimizationResult:
    """Outcome of newton_raphson.

    Attributes:
        parameters: Maximizing parameter vector.
        log_likelihood: Objective value at parameters.
        covariance: Inverse of the negated Hessian at the optimum, or None when
            it is not positive definite.
        iterations: Iterations performed.
        converged: Always True; failure raises DidNotConvergeError.
    """

    parameters: np.ndarray
    log_likelihood: float
    covariance: Optional[np.ndarray]
    iterations: int
    converged: bool = True


def numerical_gradient(fn: Objective, x: np.ndarray, step: float = GRADIENT_STEP) -> np.ndarray:
    """Central-difference gradient."""
    gradient = np.zeros(x.size)
    for i in range(x.size):
        shift = np.zeros(x.size)
        shift[i] = step
        gradient[i] = (fn(x + shift) - fn(x - shift)) / (2.0 * step)
    return gradient


def numerical_hessian(fn: Objective, x: np.ndarray, step: float = HESSIAN_STEP) -> np.ndarray:
    """Central-difference Hessian, symmetrized."""
    n = x.size
    hessian = np.zeros((n, n))
    f0 = fn(x)
    for i in range(n):
        ei = np.zeros(n)
        ei[i] = step
        hessian[i, i] = (fn(x + ei) - 2.0 * f0 + fn(x - ei)) / (step * step)
        for j in range(i + 1, n):
            ej = np.zeros(n)
            ej[j] = step
            value = (
                fn(x + ei + ej) - fn(x + ei - ej) - fn(x - ei + ej) + fn(x - ei - ej)
            ) / (4.0 * step * step)
            hessian[i, j] = hessian[j, i] = value
    return hessian


def _covariance(hessian: np.ndarray) -> Optional[np.ndarray]:
    if not np.all(np.isfinite(hessian)):
        return None
    return cholesky_inverse(-hessian)


def newton_raphson(
    fn: Objective,
    initial,
    tolerance: float,
    max_iterations: int,
) -> OptimizationResult:
    """Maximize ``fn`` with damped Newton-Raphson steps.

    Each iteration solves (-H + ridge * I) delta = g via Cholesky, growing the
    ridge while the system is indefinite, and moves ``step_size * delta``. The
    step size grows by STEP_GROWTH after an improving move and shrinks by
    STEP_SHRINK otherwise. Iteration stops once the objective changes by less
    than ``tolerance`` between the current and candidate points.

    Args:
        fn: Objective to maximize. Must return a float; -inf marks infeasible points.
        initial: Starting parameter vector.
        tolerance: Convergence threshold on the absolute objective change.
        max_iterations: Iteration budget.

    Returns:
        OptimizationResult at the last accepted point.

    Raises:
        InvalidArgumentError: If the objective is not finite at the start.
        DidNotConvergeError: If max_iterations is exhausted.
    """
    current = np.asarray(initial, dtype=float).copy()
    current_ll = float(fn(current))
    if not np.isfinite(current_ll):
        raise InvalidArgumentError("Objective is not finite at the initial parameters")

    if current.size == 0:
        return OptimizationResult(current, current_ll, np.zeros((0, 0)), 0, True)

    step_size = INITIAL_STEP_SIZE
    for iteration in range(1, max_iterations + 1):
        gradient = numerical_gradient(fn, current)
        hessian = numerical_hessian(fn, current)
        if not (np.all(np.isfinite(gradient)) and np.all(np.isfinite(hessian))):
            raise DidNotConvergeError(
                f"Non-finite derivatives at iteration {iteration}",
                iterations=iteration,
                log_likelihood=current_ll,
            )
        try:
            direction = cholesky_solve(-hessian, gradient, ridge=HESSIAN_RIDGE)
        except InvalidArgumentError as e:
            raise DidNotConvergeError(
                f"Newton system could not be regularized at iteration {iteration}",
                iterations=iteration,
                log_likelihood=current_ll,
            ) from e

        candidate = current + step_size * direction
        candidate_ll = float(fn(candidate))
        change = abs(candidate_ll - current_ll) if np.isfinite(candidate_ll) else np.inf

        if np.isfinite(candidate_ll) and candidate_ll > current_ll:
            current, current_ll = candidate, candidate_ll
            step_size = min(step_size * STEP_GROWTH, MAX_STEP_SIZE)
        else:
            step_size *= STEP_SHRINK

        logger.debug(
            f"Iteration {iteration}: loglik={current_ll:.6f} change={change:.3g} step={step_size:.4g}"
        )

        if change < tolerance:
            return OptimizationResult(
                parameters=current,
                log_likelihood=current_ll,
                covariance=_covariance(numerical_hessian(fn, current)),
                iterations=iteration,
                converged=True,
            )

    raise DidNotConvergeError(
        f"Newton-Raphson did not converge within {max_iterations} iterations",
        iterations=max_iterations,
        log_likelihood=current_ll,
    )
