"""Shared value types for the forecasting engine.

Configuration objects validate themselves on construction; result objects
handed to persistence or presentation code are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from forecast_core.config import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE
from forecast_core.exceptions import InvalidConfigError

Timestamp = Union[datetime, pd.Timestamp]


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One observation of a time series.

    Attributes:
        timestamp: Observation time. Points are expected in strictly increasing order.
        value: Observed value. NaN (or None) marks a missing observation.
        exogenous: Optional mapping of exogenous regressor name to value.
    """

    timestamp: Timestamp
    value: Optional[float]
    exogenous: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class ModelOrder:
    """Non-seasonal (p, d, q) order."""

    p: int = 0
    d: int = 0
    q: int = 0

    def __post_init__(self) -> None:
        for name in ("p", "d", "q"):
            value = getattr(self, name)
            if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
                raise InvalidConfigError(f"Order component {name} must be an integer, got {value!r}")
            if value < 0:
                raise InvalidConfigError(f"Order component {name} must be non-negative, got {value}")

    def as_tuple(self) -> Tuple[int, int, int]:
        return (int(self.p), int(self.d), int(self.q))


@dataclass(frozen=True)
class SeasonalOrder:
    """Seasonal (P, D, Q) order attached to one seasonal period."""

    order: Tuple[int, int, int] = (0, 0, 0)
    period: int = 1

    def __post_init__(self) -> None:
        order = tuple(self.order)
        if len(order) != 3:
            raise InvalidConfigError(f"Seasonal order must have three components, got {order}")
        for name, value in zip(("P", "D", "Q"), order):
            if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
                raise InvalidConfigError(f"Seasonal component {name} must be an integer, got {value!r}")
            if value < 0:
                raise InvalidConfigError(
                    f"Seasonal component {name} must be non-negative, got {value}"
                )
        if not isinstance(self.period, (int, np.integer)) or self.period <= 0:
            raise InvalidConfigError(f"Seasonal period must be a positive integer, got {self.period!r}")
        object.__setattr__(self, "order", tuple(int(v) for v in order))
        object.__setattr__(self, "period", int(self.period))

    @property
    def is_trivial(self) -> bool:
        """True when all seasonal orders are zero (equivalent to no seasonal term)."""
        return not any(self.order)


def _coerce_seasonal(item: Any) -> SeasonalOrder:
    if isinstance(item, SeasonalOrder):
        return item
    if isinstance(item, Mapping):
        return SeasonalOrder(order=tuple(item["order"]), period=item["period"])
    values = tuple(item)
    if len(values) == 4:
        return SeasonalOrder(order=values[:3], period=values[3])
    if len(values) == 2:
        return SeasonalOrder(order=tuple(values[0]), period=values[1])
    raise InvalidConfigError(f"Cannot interpret seasonal order {item!r}")


@dataclass(frozen=True)
class ModelConfig:
    """Configuration of a seasonal ARIMA(X) model.

    Plain tuples are accepted for convenience and converted on construction:

        >>> ModelConfig(order=(1, 1, 0), seasonal_orders=[(1, 0, 0, 7)])

    Attributes:
        order: Non-seasonal (p, d, q) order.
        seasonal_orders: Zero or more seasonal orders, one per seasonality.
        tolerance: Log-likelihood change below which the optimizer stops.
        max_iterations: Newton-Raphson iteration budget.
        exogenous: Names of exogenous regressors (SARIMAX); empty for SARIMA.

    Raises:
        InvalidConfigError: On negative orders, non-positive periods or limits.
    """

    order: ModelOrder = field(default_factory=ModelOrder)
    seasonal_orders: Tuple[SeasonalOrder, ...] = ()
    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    exogenous: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        order = self.order
        if not isinstance(order, ModelOrder):
            values = tuple(order)
            if len(values) != 3:
                raise InvalidConfigError(f"Order must have three components, got {values}")
            order = ModelOrder(*values)
        seasonal = tuple(_coerce_seasonal(s) for s in self.seasonal_orders)

        if not self.tolerance > 0:
            raise InvalidConfigError(f"tolerance must be positive, got {self.tolerance}")
        if int(self.max_iterations) <= 0:
            raise InvalidConfigError(f"max_iterations must be positive, got {self.max_iterations}")
        exogenous = tuple(str(name) for name in self.exogenous)
        if len(set(exogenous)) != len(exogenous):
            raise InvalidConfigError(f"Duplicated exogenous names: {exogenous}")

        object.__setattr__(self, "order", order)
        object.__setattr__(self, "seasonal_orders", seasonal)
        object.__setattr__(self, "max_iterations", int(self.max_iterations))
        object.__setattr__(self, "tolerance", float(self.tolerance))
        object.__setattr__(self, "exogenous", exogenous)

    @classmethod
    def create(
        cls,
        order: Sequence[int] = (0, 0, 0),
        seasonal_orders: Sequence[Any] = (),
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        exogenous: Sequence[str] = (),
    ) -> ModelConfig:
        """Build a config from plain tuples.

        Args:
            order: (p, d, q).
            seasonal_orders: Items of the form (P, D, Q, m), ((P, D, Q), m),
                {"order": (P, D, Q), "period": m} or SeasonalOrder.
            tolerance: Optimizer tolerance.
            max_iterations: Optimizer iteration budget.
            exogenous: Names of exogenous regressors.

        Returns:
            Validated ModelConfig.

        Raises:
            InvalidConfigError: If any component is invalid.
        """
        return cls(
            order=tuple(order),
            seasonal_orders=tuple(seasonal_orders),
            tolerance=tolerance,
            max_iterations=max_iterations,
            exogenous=tuple(exogenous),
        )

    @property
    def n_params(self) -> int:
        """Number of estimated coefficients (AR, MA, seasonal AR/MA, exogenous)."""
        p, _, q = self.order.as_tuple()
        seasonal = sum(s.order[0] + s.order[2] for s in self.seasonal_orders)
        return p + q + seasonal + len(self.exogenous)

    @property
    def differencing_lag(self) -> int:
        """Number of raw observations consumed by regular and seasonal differencing."""
        return self.order.d + sum(s.order[1] * s.period for s in self.seasonal_orders)

    def describe(self) -> str:
        p, d, q = self.order.as_tuple()
        name = "SARIMAX" if self.exogenous else "SARIMA" if self.seasonal_orders else "ARIMA"
        text = f"{name}({p},{d},{q})"
        for s in self.seasonal_orders:
            P, D, Q = s.order
            text += f"x({P},{D},{Q},{s.period})"
        return text

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation (inverse of from_dict)."""
        return {
            "order": list(self.order.as_tuple()),
            "seasonal_orders": [
                {"order": list(s.order), "period": s.period} for s in self.seasonal_orders
            ],
            "tolerance": self.tolerance,
            "max_iterations": self.max_iterations,
            "exogenous": list(self.exogenous),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModelConfig:
        return cls(
            order=tuple(data["order"]),
            seasonal_orders=tuple(data.get("seasonal_orders", ())),
            tolerance=data.get("tolerance", DEFAULT_TOLERANCE),
            max_iterations=data.get("max_iterations", DEFAULT_MAX_ITERATIONS),
            exogenous=tuple(data.get("exogenous", ())),
        )


@dataclass(frozen=True, eq=False)
class FittedState:
    """Estimated state of a fitted SeasonalModel.

    Attributes:
        parameters: Coefficients in standardized units.
        parameter_names: Names matching parameters (e.g. "ar.L1", "ma.S7.L7").
        residuals: In-sample one-step-ahead errors in differenced-series units.
        means: Means of each seasonal-component differenced series, followed by
            the mean of the combined working series.
        stds: Standard deviations in the same layout as means.
        parameter_covariance: Inverse observed information, or None when the
            negated Hessian is not positive definite.
        log_likelihood: Maximized conditional log-likelihood.
        sigma2: Innovation variance in standardized units.
        exog_means: Means of the differenced exogenous columns.
        exog_stds: Standard deviations of the differenced exogenous columns.
        iterations: Newton-Raphson iterations used.
        converged: Whether the tolerance was met.
    """

    parameters: np.ndarray
    parameter_names: Tuple[str, ...]
    residuals: np.ndarray
    means: Tuple[float, ...]
    stds: Tuple[float, ...]
    parameter_covariance: Optional[np.ndarray]
    log_likelihood: float
    sigma2: float
    exog_means: Tuple[float, ...] = ()
    exog_stds: Tuple[float, ...] = ()
    iterations: int = 0
    converged: bool = True


@dataclass(frozen=True)
class ForecastPoint:
    """One forecast value with its confidence interval."""

    timestamp: Optional[Timestamp]
    value: float
    lower_bound: float
    upper_bound: float
    confidence: float


@dataclass(frozen=True)
class ForecastResult:
    """Forecast produced for a stored model.

    Attributes:
        model_id: Identifier of the model in the model store.
        points: Forecast points in chronological order.
        metadata: Additional information (config, horizon, scaling, etc.).
    """

    model_id: str
    points: Tuple[ForecastPoint, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        """Convert points to a DataFrame with columns: timestamp, value, lower, upper, confidence."""
        columns = ["timestamp", "value", "lower_bound", "upper_bound", "confidence"]
        if not self.points:
            return pd.DataFrame(columns=columns)
        rows = [
            {
                "timestamp": point.timestamp,
                "value": point.value,
                "lower_bound": point.lower_bound,
                "upper_bound": point.upper_bound,
                "confidence": point.confidence,
            }
            for point in self.points
        ]
        return pd.DataFrame(rows, columns=columns)


@dataclass(frozen=True)
class StatTestResult:
    """Statistic and p-value of a hypothesis test; None marks an undefined value."""

    statistic: Optional[float]
    p_value: Optional[float]


@dataclass(frozen=True)
class ParameterStat:
    name: str
    value: float
    standard_error: Optional[float]
    t_statistic: Optional[float]
    p_value: Optional[float]


@dataclass(frozen=True)
class ResidualStats:
    mean: float
    variance: float
    skewness: Optional[float]
    kurtosis: Optional[float]
    ljung_box: StatTestResult
    jarque_bera: StatTestResult


@dataclass(frozen=True)
class ModelDiagnostics:
    """Diagnostics reported by SeasonalModel.get_diagnostics()."""

    aic: float
    bic: float
    aicc: Optional[float]
    hqic: Optional[float]
    fpe: Optional[float]
    log_likelihood: float
    n_obs: int
    n_params: int
    residual_stats: ResidualStats
    parameter_stats: Tuple[ParameterStat, ...]


@dataclass(frozen=True)
class ValidationMetrics:
    """Accuracy metrics of predictions against actuals.

    Undefined values (e.g. MAPE with a zero actual, R-squared of a constant
    series) are None rather than inf or NaN.
    """

    rmse: Optional[float]
    mae: Optional[float]
    mape: Optional[float]
    r2: Optional[float]
    adjusted_r2: Optional[float]
    theil_u: Optional[float]
    durbin_watson: Optional[float]
    mase: Optional[float] = None


@dataclass(frozen=True)
class CrossValidationResult:
    """Cross-validation summary.

    Attributes:
        metrics: Mean metrics across folds.
        fold_results: Metrics of each fold, in fold order.
        standard_errors: Standard error of RMSE, MAE and MAPE across folds.
    """

    metrics: ValidationMetrics
    fold_results: Tuple[ValidationMetrics, ...]
    standard_errors: Dict[str, Optional[float]]


@dataclass(frozen=True)
class ModelEvaluation:
    """Evaluation of one candidate configuration explored by model selection."""

    config: ModelConfig
    aic: Optional[float]
    bic: Optional[float]
    aicc: Optional[float]
    hqic: Optional[float]
    fpe: Optional[float]
    rmse: Optional[float]
    mae: Optional[float]
    mape: Optional[float]
    seasonality_test: StatTestResult
    stationarity_test: StatTestResult
    cross_validation: Optional[CrossValidationResult] = None
    n_obs: Optional[int] = None

    def criterion(self, name: str) -> Optional[float]:
        """Value used for ranking; "cv" ranks by cross-validated RMSE."""
        if name == "cv":
            return self.rmse
        return getattr(self, name)


@dataclass(frozen=True)
class DiagnosticResult:
    """Residual tests, information criteria and in-sample accuracy of a fitted model."""

    residual_tests: Dict[str, StatTestResult]
    information_criteria: Dict[str, Optional[float]]
    forecast_accuracy: Dict[str, Optional[float]]


@dataclass(frozen=True)
class ModelDebugInfo:
    """Generic container for model-specific debug information.

    Attributes:
        model_name: Short identifier for the model, e.g. "sarimax".
        version: Optional version string if model behavior changes over time.
        data: Arbitrary model-specific payload (dict of JSON-like values).
    """

    model_name: str
    version: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


SeriesLike = Union[Sequence[float], np.ndarray, pd.Series, Sequence[TimeSeriesPoint]]
ExogLike = Union[np.ndarray, pd.DataFrame, Sequence[Mapping[str, float]], List[List[float]]]
