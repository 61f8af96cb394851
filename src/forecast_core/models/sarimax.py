"""Seasonal ARIMA model with optional exogenous regressors (SARIMAX).

The model works on the standardized, differenced series z:

    z_t = sum_i phi_i z_{t-i} + sum_{s,j} Phi_{s,j} z_{t-j*m_s}
          + sum_i theta_i e_{t-i} + sum_{s,j} Theta_{s,j} e_{t-j*m_s}
          + beta' x_t + e_t

Seasonal lags enter additively. Parameters are estimated by maximizing the
conditional Gaussian log-likelihood (variance concentrated out) with
Newton-Raphson, see models/optimizer.py.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.signal import lfilter

from forecast_core.config import DEFAULT_CONFIDENCE
from forecast_core.exceptions import (
    InsufficientDataError,
    InvalidArgumentError,
    InvalidConfigError,
    ModelNotFittedError,
)
from forecast_core.models.base import ForecastModel
from forecast_core.models.differencing import difference, differencing_polynomial, undifference
from forecast_core.models.optimizer import newton_raphson
from forecast_core.stats.descriptive import kurtosis, pacf, skewness
from forecast_core.stats.distributions import normal_cdf, normal_inverse_cdf
from forecast_core.stats.hypothesis import jarque_bera, ljung_box
from forecast_core.stats.linalg import ols_estimate
from forecast_core.types import (
    ExogLike,
    FittedState,
    ForecastPoint,
    ModelConfig,
    ModelDebugInfo,
    ModelDiagnostics,
    ParameterStat,
    ResidualStats,
    SeriesLike,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

MIN_VARIANCE = 1e-12
# Initial AR coefficients are clipped into the stationary region
MAX_INITIAL_AR = 0.9

STATUS_UNFIT = "unfit"
STATUS_FITTING = "fitting"
STATUS_FITTED = "fitted"


@dataclass
class _Working:
    """Differenced and standardized data a fit or forecast operates on."""

    raw: np.ndarray
    raw_exog: Optional[np.ndarray]
    components: List[np.ndarray]
    z: np.ndarray
    x: Optional[np.ndarray]
    means: Tuple[float, ...]
    stds: Tuple[float, ...]
    exog_means: Tuple[float, ...]
    exog_stds: Tuple[float, ...]


def _standardize(values: np.ndarray) -> Tuple[float, float]:
    mean = float(np.mean(values))
    std = float(np.std(values))
    return mean, (std if std > 0 else 1.0)


def series_to_array(series: SeriesLike) -> Tuple[np.ndarray, Optional[List[Mapping[str, float]]]]:
    """Extract numeric values (and point-level exogenous rows) from supported inputs.

    Returns:
        Tuple of (values, exogenous rows or None).

    Raises:
        InvalidArgumentError: If the series contains missing values.
    """
    exog_rows = None
    if isinstance(series, pd.DataFrame):
        if "value" not in series.columns:
            raise InvalidArgumentError("DataFrame input requires a 'value' column")
        values = series["value"].to_numpy(dtype=float)
    elif isinstance(series, pd.Series):
        values = series.to_numpy(dtype=float)
    elif len(series) and isinstance(series[0], TimeSeriesPoint):
        values = np.array(
            [np.nan if point.value is None else point.value for point in series], dtype=float
        )
        if any(point.exogenous for point in series):
            exog_rows = [point.exogenous or {} for point in series]
    else:
        values = np.asarray(series, dtype=float)

    if values.ndim != 1:
        raise InvalidArgumentError(f"Series must be one-dimensional, got shape {values.shape}")
    if np.isnan(values).any():
        raise InvalidArgumentError("Series contains missing values; interpolate them before fitting")
    return values, exog_rows


def exog_to_matrix(exog: Any, names: Sequence[str], n_rows: int) -> np.ndarray:
    """Convert exogenous input to an (n_rows x len(names)) float matrix.

    Raises:
        InvalidArgumentError: If columns are missing or the shape does not match.
    """
    if isinstance(exog, pd.DataFrame):
        missing = [name for name in names if name not in exog.columns]
        if missing:
            raise InvalidArgumentError(f"Exogenous data is missing columns: {missing}")
        matrix = exog[list(names)].to_numpy(dtype=float)
    elif len(exog) and isinstance(exog[0], Mapping):
        try:
            matrix = np.array([[row[name] for name in names] for row in exog], dtype=float)
        except KeyError as e:
            raise InvalidArgumentError(f"Exogenous row is missing regressor {e}") from e
    else:
        matrix = np.asarray(exog, dtype=float)
        if matrix.ndim == 1:
            matrix = matrix[:, None]

    if matrix.shape != (n_rows, len(names)):
        raise InvalidArgumentError(
            f"Exogenous data has shape {matrix.shape}, expected {(n_rows, len(names))}"
        )
    if np.isnan(matrix).any():
        raise InvalidArgumentError("Exogenous data contains missing values")
    return matrix


class SeasonalModel(ForecastModel):
    """SARIMA/SARIMAX model fitted by conditional maximum likelihood.

    Lifecycle: unfit -> fitting -> fitted. A failed fit leaves the model in
    the state it had before the call.

    Example:
        >>> model = SeasonalModel(ModelConfig.create((1, 1, 0), [(1, 0, 0, 7)]))
        >>> model.fit(values)
        >>> model.predict(14)
    """

    def __init__(self, config: Union[ModelConfig, Mapping[str, Any], None] = None) -> None:
        if config is None:
            config = ModelConfig()
        elif isinstance(config, Mapping):
            config = ModelConfig.from_dict(config)
        elif not isinstance(config, ModelConfig):
            raise InvalidConfigError(f"Expected a ModelConfig, got {type(config).__name__}")
        self.config = config
        self.state: Optional[FittedState] = None
        self.status = STATUS_UNFIT
        self.debug_: Optional[ModelDebugInfo] = None
        self._working: Optional[_Working] = None
        self._innovations_full: Optional[np.ndarray] = None

        self._build_layout()

    # ------------------------------------------------------------------
    # Parameter layout
    # ------------------------------------------------------------------

    def _build_layout(self) -> None:
        p, _, q = self.config.order.as_tuple()
        names: List[str] = []
        ar_index: List[int] = []
        ar_lags: List[int] = []
        ma_index: List[int] = []
        ma_lags: List[int] = []

        for lag in range(1, p + 1):
            ar_index.append(len(names))
            ar_lags.append(lag)
            names.append(f"ar.L{lag}")
        for lag in range(1, q + 1):
            ma_index.append(len(names))
            ma_lags.append(lag)
            names.append(f"ma.L{lag}")
        for seasonal in self.config.seasonal_orders:
            P, _, Q = seasonal.order
            m = seasonal.period
            for j in range(1, P + 1):
                ar_index.append(len(names))
                ar_lags.append(j * m)
                names.append(f"ar.S{m}.L{j * m}")
            for j in range(1, Q + 1):
                ma_index.append(len(names))
                ma_lags.append(j * m)
                names.append(f"ma.S{m}.L{j * m}")
        exog_start = len(names)
        names.extend(self.config.exogenous)

        self.parameter_names: Tuple[str, ...] = tuple(names)
        self._ar_index = np.array(ar_index, dtype=int)
        self._ar_lags = np.array(ar_lags, dtype=int)
        self._ma_index = np.array(ma_index, dtype=int)
        self._ma_lags = np.array(ma_lags, dtype=int)
        self._exog_index = np.arange(exog_start, len(names))
        self._burn_in = int(self._ar_lags.max()) if self._ar_lags.size else 0
        self._ma_order = int(self._ma_lags.max()) if self._ma_lags.size else 0

    @property
    def n_params(self) -> int:
        return len(self.parameter_names)

    @property
    def is_fitted(self) -> bool:
        return self.state is not None

    def _require_fitted(self) -> FittedState:
        if self.state is None:
            raise ModelNotFittedError(f"{self.config.describe()} has not been fitted")
        return self.state

    # ------------------------------------------------------------------
    # Data preparation
    # ------------------------------------------------------------------

    def _prepare(
        self,
        series: SeriesLike,
        exog: Optional[ExogLike],
        scaling: Optional[FittedState] = None,
    ) -> _Working:
        raw, point_exog = series_to_array(series)
        names = self.config.exogenous
        if names:
            if exog is None:
                if point_exog is None and isinstance(series, pd.DataFrame):
                    exog = series
                else:
                    exog = point_exog
            if exog is None:
                raise InvalidArgumentError(
                    f"Exogenous regressors {list(names)} are configured but no data was given"
                )
            raw_exog = exog_to_matrix(exog, names, raw.shape[0])
        else:
            raw_exog = None

        components = [difference(raw, s.order[1], s.period) for s in self.config.seasonal_orders]
        working = raw
        x = raw_exog
        for s in self.config.seasonal_orders:
            working = difference(working, s.order[1], s.period)
            if x is not None:
                x = difference(x, s.order[1], s.period)
        working = difference(working, self.config.order.d, 1)
        if x is not None:
            x = difference(x, self.config.order.d, 1)

        min_length = max(self._burn_in, self._ma_order) + 1
        if working.shape[0] < min_length:
            raise InsufficientDataError(
                f"{self.config.describe()} needs at least {min_length} observations after "
                f"differencing, got {working.shape[0]} from {raw.shape[0]} raw values"
            )

        if scaling is None:
            stats = [_standardize(c) for c in components] + [_standardize(working)]
            means = tuple(m for m, _ in stats)
            stds = tuple(s for _, s in stats)
            if x is not None:
                exog_stats = [_standardize(x[:, i]) for i in range(x.shape[1])]
                exog_means = tuple(m for m, _ in exog_stats)
                exog_stds = tuple(s for _, s in exog_stats)
            else:
                exog_means, exog_stds = (), ()
        else:
            means, stds = tuple(scaling.means), tuple(scaling.stds)
            exog_means, exog_stds = tuple(scaling.exog_means), tuple(scaling.exog_stds)

        z = (working - means[-1]) / stds[-1]
        if x is not None:
            x = (x - np.asarray(exog_means)) / np.asarray(exog_stds)

        return _Working(
            raw=raw,
            raw_exog=raw_exog,
            components=components,
            z=z,
            x=x,
            means=means,
            stds=stds,
            exog_means=exog_means,
            exog_stds=exog_stds,
        )

    def _ar_design(self, z: np.ndarray) -> np.ndarray:
        design = np.zeros((z.shape[0], self._ar_lags.size))
        for column, lag in enumerate(self._ar_lags):
            design[lag:, column] = z[:-lag]
        return design

    # ------------------------------------------------------------------
    # Likelihood
    # ------------------------------------------------------------------

    def _innovations(
        self, params: np.ndarray, z: np.ndarray, x: Optional[np.ndarray], ar_design: np.ndarray
    ) -> np.ndarray:
        u = z.copy()
        if self._ar_lags.size:
            u -= ar_design @ params[self._ar_index]
        if x is not None and self._exog_index.size:
            u -= x @ params[self._exog_index]
        u[: self._burn_in] = 0.0
        if not self._ma_lags.size:
            return u
        denominator = np.zeros(self._ma_order + 1)
        denominator[0] = 1.0
        for index, lag in zip(self._ma_index, self._ma_lags):
            denominator[lag] += params[index]
        return lfilter([1.0], denominator, u)

    def _log_likelihood(
        self,
        params: np.ndarray,
        z: np.ndarray,
        x: Optional[np.ndarray],
        ar_design: np.ndarray,
        start: int,
    ) -> float:
        with np.errstate(all="ignore"):
            e = self._innovations(params, z, x, ar_design)[start:]
            sigma2 = max(float(np.mean(e * e)), MIN_VARIANCE)
            value = -0.5 * e.shape[0] * (math.log(2.0 * math.pi) + math.log(sigma2) + 1.0)
        if not np.isfinite(value) or not np.isfinite(sigma2):
            return -np.inf
        return value

    def _initial_parameters(self, working: _Working) -> np.ndarray:
        params = np.zeros(self.n_params)
        p = self.config.order.p
        if p:
            params[:p] = pacf(working.z, p)[1 : p + 1]

        position = p + self.config.order.q
        for component, seasonal, mean, std in zip(
            working.components, self.config.seasonal_orders, working.means, working.stds
        ):
            P, _, Q = seasonal.order
            m = seasonal.period
            if P:
                standardized = (component - mean) / std
                if P * m < standardized.shape[0]:
                    correlations = pacf(standardized, P * m)
                    params[position : position + P] = [correlations[j * m] for j in range(1, P + 1)]
            position += P + Q

        if self._ar_index.size:
            params[self._ar_index] = np.clip(params[self._ar_index], -MAX_INITIAL_AR, MAX_INITIAL_AR)

        if working.x is not None and self._exog_index.size:
            try:
                params[self._exog_index] = ols_estimate(working.x, working.z)
            except InvalidArgumentError:
                logger.debug("Exogenous design is singular; starting regressors at zero")
        return params

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    @property
    def conditioning_length(self) -> int:
        """Raw observations consumed by differencing and the longest AR lag."""
        return self.config.differencing_lag + self._burn_in

    def fit(
        self,
        series: SeriesLike,
        exog: Optional[ExogLike] = None,
        conditioning: int = 0,
    ) -> SeasonalModel:
        """Estimate parameters by conditional maximum likelihood.

        The likelihood is summed over the raw observations from index
        ``max(conditioning, conditioning_length)`` on and reported in the units
        of the differenced series, so models fitted with the same
        ``conditioning`` are scored on the same observations and scale.

        Args:
            series: Historical values (list/array, pandas Series, DataFrame with
                a "value" column, or TimeSeriesPoints).
            exog: Exogenous regressors aligned with series. Required when the
                config names regressors, unless they ride on the points/frame.
            conditioning: Leading raw observations held out of the likelihood.

        Returns:
            self

        Raises:
            InsufficientDataError: If the series is too short for the orders.
            DidNotConvergeError: If max_iterations is exhausted.
            InvalidArgumentError: On malformed input or a negative conditioning.
        """
        if conditioning < 0:
            raise InvalidArgumentError(f"conditioning must be non-negative, got {conditioning}")
        previous_status = self.status
        self.status = STATUS_FITTING
        try:
            working = self._prepare(series, exog)
            ar_design = self._ar_design(working.z)
            # working index i holds raw observation i + differencing_lag
            start = max(self._burn_in, conditioning - self.config.differencing_lag)
            n_effective = working.z.shape[0] - start
            if n_effective < self.n_params + 1:
                raise InsufficientDataError(
                    f"{self.config.describe()} leaves {n_effective} residuals for "
                    f"{self.n_params} parameters"
                )

            def objective(params: np.ndarray) -> float:
                return self._log_likelihood(params, working.z, working.x, ar_design, start)

            initial = self._initial_parameters(working)
            result = newton_raphson(
                objective,
                initial,
                tolerance=self.config.tolerance,
                max_iterations=self.config.max_iterations,
            )
        except Exception:
            self.status = previous_status
            raise

        innovations = self._innovations(result.parameters, working.z, working.x, ar_design)
        effective = innovations[start:]
        sigma2 = max(float(np.mean(effective**2)), MIN_VARIANCE)
        # Jacobian of z = (w - mean) / std
        log_likelihood = result.log_likelihood - n_effective * math.log(working.stds[-1])

        self.state = FittedState(
            parameters=result.parameters,
            parameter_names=self.parameter_names,
            residuals=effective * working.stds[-1],
            means=working.means,
            stds=working.stds,
            parameter_covariance=result.covariance,
            log_likelihood=log_likelihood,
            sigma2=sigma2,
            exog_means=working.exog_means,
            exog_stds=working.exog_stds,
            iterations=result.iterations,
            converged=result.converged,
        )
        self._working = working
        self._innovations_full = innovations
        self.status = STATUS_FITTED
        self.debug_ = self._debug_info()

        logger.info(
            f"Fitted {self.config.describe()} on {working.raw.shape[0]} observations: "
            f"loglik={log_likelihood:.4f}, iterations={result.iterations}"
        )
        return self

    @classmethod
    def restore(
        cls,
        config: Union[ModelConfig, Mapping[str, Any]],
        state: FittedState,
        series: SeriesLike,
        exog: Optional[ExogLike] = None,
    ) -> SeasonalModel:
        """Rebuild a fitted model from persisted state without re-optimizing.

        Args:
            config: Configuration the state was fitted with.
            state: Persisted FittedState.
            series: The historical series the model was trained on.
            exog: Historical exogenous regressors, if configured.

        Raises:
            InvalidArgumentError: If the state does not match the config.
        """
        model = cls(config)
        if tuple(state.parameter_names) != model.parameter_names:
            raise InvalidArgumentError(
                f"Stored parameters {list(state.parameter_names)} do not match "
                f"{model.config.describe()}"
            )
        working = model._prepare(series, exog, scaling=state)
        ar_design = model._ar_design(working.z)
        model._working = working
        model._innovations_full = model._innovations(
            np.asarray(state.parameters, dtype=float), working.z, working.x, ar_design
        )
        model.state = state
        model.status = STATUS_FITTED
        model.debug_ = model._debug_info()
        return model

    def _debug_info(self) -> ModelDebugInfo:
        state = self._require_fitted()
        return ModelDebugInfo(
            model_name="sarimax",
            version="v1",
            data={
                "config": self.config.describe(),
                "parameters": {
                    name: float(value) for name, value in zip(state.parameter_names, state.parameters)
                },
                "log_likelihood": float(state.log_likelihood),
                "iterations": int(state.iterations),
                "residuals_tail": [float(v) for v in state.residuals[-20:]],
            },
        )

    # ------------------------------------------------------------------
    # Forecasting
    # ------------------------------------------------------------------

    def _future_exog(self, exog: Optional[ExogLike], horizon: int) -> Optional[np.ndarray]:
        if not self.config.exogenous:
            return None
        if exog is None:
            raise InvalidArgumentError(
                f"Forecasting with regressors {list(self.config.exogenous)} requires future exogenous data"
            )
        future = exog_to_matrix(exog, self.config.exogenous, horizon)
        working = self._working
        combined = np.vstack([working.raw_exog, future])
        for s in self.config.seasonal_orders:
            combined = difference(combined, s.order[1], s.period)
        combined = difference(combined, self.config.order.d, 1)
        future_diff = combined[-horizon:] if horizon else combined[:0]
        return (future_diff - np.asarray(working.exog_means)) / np.asarray(working.exog_stds)

    def _differencing_polynomial(self) -> np.ndarray:
        return differencing_polynomial(
            self.config.order.d,
            [(s.order[1], s.period) for s in self.config.seasonal_orders],
        )

    def predict(self, horizon: int, exog: Optional[ExogLike] = None) -> np.ndarray:
        """Recursive multi-step point forecasts on the original scale.

        Future innovations are set to zero; the forecasts of the working series
        are de-standardized and integrated back through the differencing
        polynomial using the tail of the training series.

        Args:
            horizon: Number of steps ahead.
            exog: Future regressors (horizon rows), required for SARIMAX.

        Returns:
            Array of exactly ``horizon`` values.

        Raises:
            ModelNotFittedError: If called before fit().
            InvalidArgumentError: On a negative horizon or missing exogenous data.
        """
        state = self._require_fitted()
        if horizon < 0:
            raise InvalidArgumentError(f"Horizon must be non-negative, got {horizon}")
        if horizon == 0:
            return np.empty(0)
        working = self._working
        future_x = self._future_exog(exog, horizon)
        params = np.asarray(state.parameters, dtype=float)

        z = list(working.z)
        e = list(self._innovations_full)
        ar_coefficients = params[self._ar_index]
        ma_coefficients = params[self._ma_index]
        beta = params[self._exog_index]
        for step in range(horizon):
            t = len(z)
            value = sum(c * z[t - lag] for c, lag in zip(ar_coefficients, self._ar_lags))
            value += sum(c * e[t - lag] for c, lag in zip(ma_coefficients, self._ma_lags))
            if future_x is not None:
                value += float(future_x[step] @ beta)
            z.append(value)
            e.append(0.0)

        forecasts_z = np.asarray(z[-horizon:])
        forecasts_w = forecasts_z * working.stds[-1] + working.means[-1]
        return undifference(forecasts_w, working.raw, self._differencing_polynomial())

    def psi_weights(self, horizon: int) -> np.ndarray:
        """First ``horizon`` MA(infinity) weights of the integrated model."""
        state = self._require_fitted()
        params = np.asarray(state.parameters, dtype=float)

        ar_polynomial = np.zeros(self._burn_in + 1)
        ar_polynomial[0] = 1.0
        for index, lag in zip(self._ar_index, self._ar_lags):
            ar_polynomial[lag] -= params[index]
        ma_polynomial = np.zeros(self._ma_order + 1)
        ma_polynomial[0] = 1.0
        for index, lag in zip(self._ma_index, self._ma_lags):
            ma_polynomial[lag] += params[index]

        integrated = np.convolve(ar_polynomial, self._differencing_polynomial())
        impulse = np.zeros(horizon)
        if horizon:
            impulse[0] = 1.0
        return lfilter(ma_polynomial, integrated, impulse)

    def forecast(
        self,
        horizon: int,
        confidence: float = DEFAULT_CONFIDENCE,
        exog: Optional[ExogLike] = None,
        timestamps: Optional[Sequence[Any]] = None,
    ) -> List[ForecastPoint]:
        """Point forecasts with symmetric normal confidence intervals.

        The h-step variance is sigma2 * sum_{j<h} psi_j^2 on the original
        scale, with psi the weights of the integrated model.

        Args:
            horizon: Number of steps ahead.
            confidence: Interval coverage in (0, 1).
            exog: Future regressors for SARIMAX.
            timestamps: Optional timestamps, one per step.

        Raises:
            InvalidArgumentError: If confidence is outside (0, 1) or timestamps
                do not match the horizon.
        """
        if not 0.0 < confidence < 1.0:
            raise InvalidArgumentError(f"Confidence must be in (0, 1), got {confidence}")
        if timestamps is not None and len(timestamps) != horizon:
            raise InvalidArgumentError(f"Got {len(timestamps)} timestamps for horizon {horizon}")
        values = self.predict(horizon, exog=exog)
        state = self._require_fitted()
        if horizon == 0:
            return []

        critical = normal_inverse_cdf((1.0 + confidence) / 2.0)
        scale2 = state.sigma2 * self._working.stds[-1] ** 2
        variances = scale2 * np.cumsum(self.psi_weights(horizon) ** 2)

        points = []
        for step, (value, variance) in enumerate(zip(values, variances)):
            half_width = critical * math.sqrt(variance)
            points.append(
                ForecastPoint(
                    timestamp=timestamps[step] if timestamps is not None else None,
                    value=float(value),
                    lower_bound=float(value - half_width),
                    upper_bound=float(value + half_width),
                    confidence=confidence,
                )
            )
        return points

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def residuals(self) -> np.ndarray:
        return np.asarray(self._require_fitted().residuals)

    def fitted_values(self) -> np.ndarray:
        """One-step-ahead in-sample predictions aligned with residuals."""
        return self.actual_values() - self._require_fitted().residuals

    def actual_values(self) -> np.ndarray:
        """Training observations aligned with residuals and fitted_values()."""
        state = self._require_fitted()
        return self._working.raw[self._working.raw.shape[0] - len(state.residuals) :]

    def get_parameters(self) -> Dict[str, float]:
        """Named coefficients plus sigma2 (innovation variance in differenced units)."""
        state = self._require_fitted()
        parameters = {
            name: float(value) for name, value in zip(state.parameter_names, state.parameters)
        }
        parameters["sigma2"] = float(state.sigma2 * state.stds[-1] ** 2)
        return parameters

    def get_diagnostics(self) -> ModelDiagnostics:
        """Information criteria, residual statistics and parameter significance."""
        state = self._require_fitted()
        residuals = np.asarray(state.residuals)
        n = residuals.shape[0]
        k = len(state.parameters)
        log_likelihood = float(state.log_likelihood)

        aic = -2.0 * log_likelihood + 2.0 * k
        bic = -2.0 * log_likelihood + k * math.log(n)
        aicc = aic + 2.0 * k * (k + 1) / (n - k - 1) if n - k - 1 > 0 else None
        hqic = -2.0 * log_likelihood + 2.0 * k * math.log(math.log(n)) if n > 1 else None
        residual_variance = float(np.mean(residuals**2))
        fpe = residual_variance * (n + k) / (n - k) if n > k else None

        residual_stats = ResidualStats(
            mean=float(np.mean(residuals)),
            variance=float(np.var(residuals, ddof=1)) if n > 1 else 0.0,
            skewness=skewness(residuals),
            kurtosis=kurtosis(residuals),
            ljung_box=ljung_box(residuals, n_params=k),
            jarque_bera=jarque_bera(residuals),
        )

        return ModelDiagnostics(
            aic=aic,
            bic=bic,
            aicc=aicc,
            hqic=hqic,
            fpe=fpe,
            log_likelihood=log_likelihood,
            n_obs=n,
            n_params=k,
            residual_stats=residual_stats,
            parameter_stats=self._parameter_stats(state),
        )

    def _parameter_stats(self, state: FittedState) -> Tuple[ParameterStat, ...]:
        covariance = state.parameter_covariance
        stats = []
        for i, (name, value) in enumerate(zip(state.parameter_names, state.parameters)):
            standard_error = t_statistic = p_value = None
            if covariance is not None and covariance[i, i] > 0:
                standard_error = math.sqrt(covariance[i, i])
                t_statistic = float(value) / standard_error
                p_value = 2.0 * (1.0 - normal_cdf(abs(t_statistic)))
            stats.append(
                ParameterStat(
                    name=name,
                    value=float(value),
                    standard_error=standard_error,
                    t_statistic=t_statistic,
                    p_value=p_value,
                )
            )
        return tuple(stats)

    def __repr__(self) -> str:
        return f"SeasonalModel({self.config.describe()}, status={self.status!r})"
