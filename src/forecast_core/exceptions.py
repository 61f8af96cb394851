"""Domain-specific exceptions for the forecasting engine.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from ForecastCoreError for easy catching.
"""

from __future__ import annotations


class ForecastCoreError(Exception):
    """Base exception for all forecasting engine errors.

    Users can catch this exception to handle any error raised by a fit,
    prediction, validation or selection call.
    """

    pass


class InvalidConfigError(ForecastCoreError):
    """Raised when a model configuration or option combination is invalid.

    This exception is raised when:
    - An order component (p, d, q, P, D, Q) is negative
    - A seasonal period is not positive
    - Tolerance or iteration limits are not positive
    - Option combinations contradict each other
    """

    pass


class ModelNotFittedError(ForecastCoreError):
    """Raised when predictions or diagnostics are requested before a successful fit."""

    pass


class DidNotConvergeError(ForecastCoreError):
    """Raised when Newton-Raphson exhausts max_iterations without meeting tolerance.

    Attributes:
        iterations: Number of iterations performed.
        log_likelihood: Log-likelihood reached when the optimizer gave up.
    """

    def __init__(self, message: str, iterations: int = 0, log_likelihood: float | None = None):
        super().__init__(message)
        self.iterations = iterations
        self.log_likelihood = log_likelihood


class InsufficientDataError(ForecastCoreError):
    """Raised when a series is too short for the requested orders and seasonal periods."""

    pass


class InvalidArgumentError(ForecastCoreError):
    """Raised for invalid numeric arguments.

    This exception is raised when:
    - A probability passed to an (inverse) CDF lies outside (0, 1)
    - A matrix passed to an inverse, solve or OLS routine is singular
    - Array shapes do not line up
    """

    pass


class NoViableModelError(ForecastCoreError):
    """Raised when every candidate of a model search failed.

    Attributes:
        failures: Mapping of candidate description to the failure message.
    """

    def __init__(self, message: str, failures: dict[str, str] | None = None):
        super().__init__(message)
        self.failures = failures or {}


class ModelNotFoundError(ForecastCoreError):
    """Raised when a model id is unknown to the model store."""

    pass


class DataQualityError(ForecastCoreError):
    """Raised when input data fails basic quality checks.

    This exception is raised when:
    - Required columns are missing from input data
    - The input series is empty or entirely missing
    """

    pass
