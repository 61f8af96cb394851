"""Model validation: accuracy metrics, cross-validation and residual checks."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from forecast_core.config import DEFAULT_CV_FOLDS, OUTLIER_ZSCORE
from forecast_core.exceptions import InsufficientDataError, InvalidArgumentError, InvalidConfigError
from forecast_core.models.sarimax import SeasonalModel, exog_to_matrix, series_to_array
from forecast_core.stats.hypothesis import (
    breusch_pagan,
    durbin_watson,
    jarque_bera,
    ljung_box,
    white_test,
)
from forecast_core.types import (
    CrossValidationResult,
    DiagnosticResult,
    ExogLike,
    ModelConfig,
    SeriesLike,
    StatTestResult,
    ValidationMetrics,
)

logger = logging.getLogger(__name__)

_METRIC_FIELDS = ("rmse", "mae", "mape", "r2", "adjusted_r2", "theil_u", "durbin_watson", "mase")
_STANDARD_ERROR_FIELDS = ("rmse", "mae", "mape")


@dataclass(frozen=True)
class CrossValidationOptions:
    """Cross-validation policy.

    Attributes:
        folds: Number of folds (k-fold blocks or window positions).
        horizon: Points scored after each training window (window policies only).
        rolling_window: Train on a fixed-size window that slides forward.
        expanding_window: Train on all data up to the window end.
    """

    folds: int = DEFAULT_CV_FOLDS
    horizon: int = 1
    rolling_window: bool = False
    expanding_window: bool = False

    def __post_init__(self) -> None:
        if self.folds < 2:
            raise InvalidConfigError(f"folds must be at least 2, got {self.folds}")
        if self.horizon < 1:
            raise InvalidConfigError(f"horizon must be at least 1, got {self.horizon}")
        if self.rolling_window and self.expanding_window:
            raise InvalidConfigError("rolling_window and expanding_window are mutually exclusive")


@dataclass(frozen=True)
class Outlier:
    index: int
    value: float
    zscore: float


@dataclass(frozen=True)
class ResidualValidation:
    """Result of validate_residuals."""

    normality: StatTestResult
    heteroskedasticity: StatTestResult
    breusch_pagan: StatTestResult
    autocorrelation: StatTestResult
    outliers: List[Outlier] = field(default_factory=list)


@dataclass(frozen=True)
class RollingWindowResult:
    """One-step-ahead evaluation of one window.

    Attributes:
        start: Index of the first observation of the window.
        end: Index of the scored observation (last of the window).
        actual: Observed value at end.
        predicted: Forecast of that value from a model fit on the rest of the window.
        metrics: Single-point metrics (r2 and Theil's U may be None).
        parameters: Fitted parameters of the window's model.
    """

    start: int
    end: int
    actual: float
    predicted: float
    metrics: ValidationMetrics
    parameters: Dict[str, float]


def calculate_metrics(
    actual: Sequence[float],
    predicted: Sequence[float],
    train_data: Optional[Sequence[float]] = None,
    n_params: int = 0,
) -> ValidationMetrics:
    """Accuracy metrics of predictions against actuals.

    Args:
        actual: Observed values.
        predicted: Predictions aligned with actual.
        train_data: Training series; enables MASE (scaled by the mean absolute
            one-step naive error of the training data).
        n_params: Number of model parameters for adjusted R-squared.

    Returns:
        ValidationMetrics. MAPE is None when any actual is zero, R-squared
        when the actuals are constant, adjusted R-squared when n - p - 1 <= 0.

    Raises:
        InvalidArgumentError: If inputs are empty or lengths differ.
    """
    a = np.asarray(actual, dtype=float)
    p = np.asarray(predicted, dtype=float)
    if a.shape != p.shape or a.ndim != 1:
        raise InvalidArgumentError(f"actual {a.shape} and predicted {p.shape} must be equal-length 1-D")
    n = a.size
    if n == 0:
        raise InvalidArgumentError("Cannot compute metrics of empty series")

    errors = a - p
    mse = float(np.mean(errors**2))
    rmse = math.sqrt(mse)
    mae = float(np.mean(np.abs(errors)))

    if np.any(a == 0):
        logger.warning("MAPE undefined: actual values contain zeros")
        mape = None
    else:
        mape = float(np.mean(np.abs(errors / a)) * 100.0)

    total = float(np.sum((a - a.mean()) ** 2))
    r2 = None if total == 0 else 1.0 - float(np.sum(errors**2)) / total
    adjusted_r2 = None
    if r2 is not None and n - n_params - 1 > 0:
        adjusted_r2 = 1.0 - (1.0 - r2) * (n - 1) / (n - n_params - 1)

    denominator = math.sqrt(float(np.mean(a**2))) + math.sqrt(float(np.mean(p**2)))
    theil_u = rmse / denominator if denominator > 0 else None

    mase = None
    if train_data is not None:
        train = np.asarray(train_data, dtype=float)
        if train.size >= 2:
            scale = float(np.mean(np.abs(np.diff(train))))
            mase = mae / scale if scale > 0 else None

    return ValidationMetrics(
        rmse=rmse,
        mae=mae,
        mape=mape,
        r2=r2,
        adjusted_r2=adjusted_r2,
        theil_u=theil_u,
        durbin_watson=durbin_watson(errors),
        mase=mase,
    )


def _average_metrics(results: Sequence[ValidationMetrics]) -> ValidationMetrics:
    averaged = {}
    for name in _METRIC_FIELDS:
        values = [getattr(r, name) for r in results if getattr(r, name) is not None]
        averaged[name] = float(np.mean(values)) if values else None
    return ValidationMetrics(**averaged)


def _standard_errors(results: Sequence[ValidationMetrics]) -> Dict[str, Optional[float]]:
    errors: Dict[str, Optional[float]] = {}
    for name in _STANDARD_ERROR_FIELDS:
        values = np.array([getattr(r, name) for r in results if getattr(r, name) is not None])
        k = values.size
        if k < 2:
            errors[name] = None
            continue
        errors[name] = float(math.sqrt(np.sum((values - values.mean()) ** 2) / (k * (k - 1))))
    return errors


def _config_of(model_or_config: Union[SeasonalModel, ModelConfig]) -> ModelConfig:
    if isinstance(model_or_config, SeasonalModel):
        return model_or_config.config
    if isinstance(model_or_config, ModelConfig):
        return model_or_config
    raise InvalidArgumentError(
        f"Expected a SeasonalModel or ModelConfig, got {type(model_or_config).__name__}"
    )


def split_series_and_exog(config: ModelConfig, data: SeriesLike, exog: Optional[ExogLike]):
    """Values as an array plus the configured regressors as a matrix (or None).

    Regressors come from ``exog`` when given, otherwise from the points'
    exogenous mappings or the DataFrame's columns.
    """
    values, point_exog = series_to_array(data)
    matrix = None
    if config.exogenous:
        source = exog if exog is not None else point_exog
        if source is None and isinstance(data, pd.DataFrame):
            source = data
        if source is None:
            raise InvalidArgumentError(
                f"Exogenous regressors {list(config.exogenous)} are configured but no data was given"
            )
        matrix = exog_to_matrix(source, config.exogenous, values.shape[0])
    return values, matrix


def cross_validate(
    model_or_config: Union[SeasonalModel, ModelConfig],
    data: SeriesLike,
    options: Optional[CrossValidationOptions] = None,
    exog: Optional[ExogLike] = None,
) -> CrossValidationResult:
    """Cross-validate a model configuration.

    Every fold fits a new SeasonalModel built from the configuration, so the
    model passed in is never modified.

    Policies (fold_size = n // folds, fold i = 0..folds-1):
        k-fold: test block [i*fold_size, (i+1)*fold_size), trained on the
            remaining observations concatenated; the whole block is scored.
        rolling window: trained on [i*fold_size, (i+1)*fold_size), the next
            ``horizon`` points are scored.
        expanding window: trained on [0, (i+1)*fold_size), the next
            ``horizon`` points are scored.
    Folds without test data are skipped.

    Raises:
        InsufficientDataError: If no fold has test data.
        InvalidArgumentError: On malformed input.
        Any error raised by fitting a fold propagates.
    """
    options = options or CrossValidationOptions()
    config = _config_of(model_or_config)
    values, matrix = split_series_and_exog(config, data, exog)
    n = values.shape[0]
    fold_size = n // options.folds
    if fold_size == 0:
        raise InsufficientDataError(f"{n} observations cannot be split into {options.folds} folds")

    fold_results: List[ValidationMetrics] = []
    for i in range(options.folds):
        if options.rolling_window:
            train_idx = np.arange(i * fold_size, (i + 1) * fold_size)
            test_idx = np.arange((i + 1) * fold_size, min((i + 1) * fold_size + options.horizon, n))
        elif options.expanding_window:
            train_idx = np.arange(0, (i + 1) * fold_size)
            test_idx = np.arange((i + 1) * fold_size, min((i + 1) * fold_size + options.horizon, n))
        else:
            test_idx = np.arange(i * fold_size, (i + 1) * fold_size)
            train_idx = np.concatenate([np.arange(0, i * fold_size), np.arange((i + 1) * fold_size, n)])

        if test_idx.size == 0:
            logger.debug(f"Fold {i + 1}/{options.folds} has no test data; skipped")
            continue

        model = SeasonalModel(config)
        train_exog = matrix[train_idx] if matrix is not None else None
        test_exog = matrix[test_idx] if matrix is not None else None
        model.fit(values[train_idx], exog=train_exog)
        predictions = model.predict(test_idx.size, exog=test_exog)

        metrics = calculate_metrics(
            values[test_idx], predictions, train_data=values[train_idx], n_params=config.n_params
        )
        logger.debug(f"Fold {i + 1}/{options.folds}: rmse={metrics.rmse:.4f}")
        fold_results.append(metrics)

    if not fold_results:
        raise InsufficientDataError("No cross-validation fold produced test data")

    return CrossValidationResult(
        metrics=_average_metrics(fold_results),
        fold_results=tuple(fold_results),
        standard_errors=_standard_errors(fold_results),
    )


def detect_outliers(residuals: Sequence[float], threshold: float = OUTLIER_ZSCORE) -> List[Outlier]:
    """Residuals whose |z-score| exceeds threshold, largest first."""
    e = np.asarray(residuals, dtype=float)
    if e.size < 2:
        return []
    std = float(np.std(e, ddof=1))
    if std == 0:
        return []
    scores = np.abs((e - e.mean()) / std)
    outliers = [
        Outlier(index=int(i), value=float(e[i]), zscore=float(scores[i]))
        for i in np.flatnonzero(scores > threshold)
    ]
    return sorted(outliers, key=lambda o: -o.zscore)


def validate_residuals(
    residuals: Sequence[float],
    predictions: Sequence[float],
    data: Sequence[float],
) -> ResidualValidation:
    """Normality, heteroskedasticity and autocorrelation checks of residuals.

    Args:
        residuals: Model residuals.
        predictions: Fitted values aligned with residuals (White test).
        data: Observed values aligned with residuals (Breusch-Pagan test).
    """
    e = np.asarray(residuals, dtype=float)
    return ResidualValidation(
        normality=jarque_bera(e),
        heteroskedasticity=white_test(e, predictions),
        breusch_pagan=breusch_pagan(e, data),
        autocorrelation=ljung_box(e),
        outliers=detect_outliers(e),
    )


def rolling_window_analysis(
    config: ModelConfig,
    data: SeriesLike,
    window_size: int,
    step: int = 1,
    exog: Optional[ExogLike] = None,
) -> List[RollingWindowResult]:
    """Slide a window over the data and score a one-step-ahead forecast in each.

    Within each window the model is fit on all but the last observation and
    predicts that last observation.
    """
    if window_size < 2 or step < 1:
        raise InvalidArgumentError(f"Invalid window_size={window_size} or step={step}")
    values, matrix = split_series_and_exog(config, data, exog)
    n = values.shape[0]
    if n < window_size:
        raise InsufficientDataError(f"Window of {window_size} exceeds {n} observations")

    results = []
    for start in range(0, n - window_size + 1, step):
        end = start + window_size - 1
        model = SeasonalModel(config)
        model.fit(values[start:end], exog=matrix[start:end] if matrix is not None else None)
        predicted = float(model.predict(1, exog=matrix[end : end + 1] if matrix is not None else None)[0])
        results.append(
            RollingWindowResult(
                start=start,
                end=end,
                actual=float(values[end]),
                predicted=predicted,
                metrics=calculate_metrics([values[end]], [predicted]),
                parameters=model.get_parameters(),
            )
        )
    return results


def parameter_stability(results: Sequence[RollingWindowResult]) -> Dict[str, Optional[float]]:
    """Coefficient of variation (std / mean) of each parameter across windows.

    None marks a parameter whose mean is zero.
    """
    if not results:
        return {}
    stability: Dict[str, Optional[float]] = {}
    for name in results[0].parameters:
        values = np.array([r.parameters.get(name, 0.0) for r in results])
        mean = float(values.mean())
        stability[name] = None if mean == 0 else float(values.std() / mean)
    return stability


def build_diagnostic_result(
    model: SeasonalModel,
    actual: Optional[Sequence[float]] = None,
    predicted: Optional[Sequence[float]] = None,
) -> DiagnosticResult:
    """Residual tests, information criteria and accuracy of a fitted model.

    Accuracy is computed on ``actual`` vs ``predicted`` when both are given,
    otherwise in-sample on the one-step-ahead fitted values.
    """
    diagnostics = model.get_diagnostics()
    residuals = model.residuals
    fitted = model.fitted_values()

    if actual is not None and predicted is not None:
        metrics = calculate_metrics(actual, predicted)
    else:
        metrics = calculate_metrics(model.actual_values(), fitted, n_params=diagnostics.n_params)

    return DiagnosticResult(
        residual_tests={
            "normality": jarque_bera(residuals),
            "autocorrelation": diagnostics.residual_stats.ljung_box,
            "heteroskedasticity": white_test(residuals, fitted),
        },
        information_criteria={
            "aic": diagnostics.aic,
            "bic": diagnostics.bic,
            "hqic": diagnostics.hqic,
        },
        forecast_accuracy={
            "mape": metrics.mape,
            "rmse": metrics.rmse,
            "mae": metrics.mae,
            "r2": metrics.r2,
            "theil_u": metrics.theil_u,
        },
    )
