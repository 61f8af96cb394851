"""Weighted ensembles of forecasting models.

An EnsembleModel fits every member on the same series and forecasts the
weighted sum of their forecasts. Weights come from one of four strategies:

- **equal**: 1 / k for each of the k members
- **performance**: accuracy of a multi-step forecast of the last
  ``holdout_size`` observations, each member trained on the data before them
- **dynamic**: accuracy of the one-step-ahead forecasts of the last
  ``dynamic_window_size`` observations, refitting at every origin
- **stacked**: least-squares combination of the holdout forecasts, clipped to
  non-negative weights that sum to one

For error metrics (rmse, mae, mape) member i gets (total - e_i) / ((k - 1) * total),
so weights sum to one and lower error means higher weight. For r2 the weights
are proportional to max(r2, 0). Undefined scores fall back to equal weights.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from forecast_core.config import DEFAULT_ENSEMBLE_HOLDOUT, DEFAULT_ENSEMBLE_WINDOW
from forecast_core.exceptions import (
    InsufficientDataError,
    InvalidArgumentError,
    InvalidConfigError,
    ModelNotFittedError,
)
from forecast_core.models.base import ForecastModel
from forecast_core.models.sarimax import series_to_array
from forecast_core.stats.linalg import ols_estimate
from forecast_core.types import ExogLike, ModelDebugInfo, SeriesLike
from forecast_core.validation import calculate_metrics

logger = logging.getLogger(__name__)

WEIGHTING_STRATEGIES = ("equal", "performance", "dynamic", "stacked")
ENSEMBLE_METRICS = ("mape", "rmse", "mae", "r2")


def _rows(data: Any, start: int, stop: int) -> Any:
    if data is None:
        return None
    if isinstance(data, (pd.DataFrame, pd.Series)):
        return data.iloc[start:stop]
    return data[start:stop]


def _member_name(model: ForecastModel) -> str:
    config = getattr(model, "config", None)
    if config is not None and hasattr(config, "describe"):
        return config.describe()
    return type(model).__name__


class EnsembleModel(ForecastModel):
    """Weighted combination of fitted forecasting models.

    Args:
        models: Member models; they are refit by every call to fit().
        weighting: "equal", "performance", "dynamic" or "stacked".
        metric: Accuracy metric used to score members: "rmse", "mae", "mape" or "r2".
        dynamic_window_size: One-step-ahead origins scored by "dynamic".
        holdout_size: Trailing observations scored by "performance" and "stacked".

    Raises:
        InvalidConfigError: On an empty member list or unknown options.
    """

    def __init__(
        self,
        models: Sequence[ForecastModel],
        weighting: str = "equal",
        metric: str = "rmse",
        dynamic_window_size: int = DEFAULT_ENSEMBLE_WINDOW,
        holdout_size: int = DEFAULT_ENSEMBLE_HOLDOUT,
    ) -> None:
        if not models:
            raise InvalidConfigError("An ensemble needs at least one model")
        if weighting not in WEIGHTING_STRATEGIES:
            raise InvalidConfigError(
                f"weighting must be one of {WEIGHTING_STRATEGIES}, got {weighting!r}"
            )
        if metric not in ENSEMBLE_METRICS:
            raise InvalidConfigError(f"metric must be one of {ENSEMBLE_METRICS}, got {metric!r}")
        if dynamic_window_size < 1:
            raise InvalidConfigError(f"dynamic_window_size must be positive, got {dynamic_window_size}")
        if holdout_size < 1:
            raise InvalidConfigError(f"holdout_size must be positive, got {holdout_size}")

        self.models: List[ForecastModel] = list(models)
        self.weighting = weighting
        self.metric = metric
        self.dynamic_window_size = dynamic_window_size
        self.holdout_size = holdout_size
        self.weights = np.full(len(self.models), 1.0 / len(self.models))
        self.scores: Optional[List[Optional[float]]] = None
        self._fitted = False
        self.debug_: Optional[ModelDebugInfo] = None

    @property
    def is_fitted(self) -> bool:
        return self._fitted and all(model.is_fitted for model in self.models)

    def fit(self, series: SeriesLike, exog: Optional[ExogLike] = None) -> EnsembleModel:
        """Score the members, set the weights and refit every member on the full series.

        Returns:
            self

        Raises:
            InsufficientDataError: If the series is too short for the scoring window.
            Any error raised by a member fit.
        """
        values, point_rows = series_to_array(series)
        future = exog
        if future is None:
            future = series if isinstance(series, pd.DataFrame) else point_rows

        scores: Optional[List[Optional[float]]] = None
        if self.weighting == "equal":
            weights = np.full(len(self.models), 1.0 / len(self.models))
        elif self.weighting == "dynamic":
            actual, predictions = self._one_step_forecasts(series, exog, future, values)
            scores = self._score(actual, predictions)
            weights = self._weights_from_scores(scores)
        else:
            actual, predictions = self._holdout_forecasts(series, exog, future, values)
            scores = self._score(actual, predictions)
            weights = self._weights_from_scores(scores)
            if self.weighting == "stacked":
                weights = self._stacked_weights(actual, predictions, weights)

        for model in self.models:
            model.fit(series, exog=exog)

        self.weights = weights
        self.scores = scores
        self._fitted = True
        self.debug_ = ModelDebugInfo(
            model_name="ensemble",
            version="v1",
            data={
                "weighting": self.weighting,
                "metric": self.metric,
                "members": [_member_name(model) for model in self.models],
                "weights": [float(w) for w in weights],
                "scores": scores,
            },
        )
        logger.info(
            f"Fitted {len(self.models)}-model ensemble ({self.weighting}, {self.metric}) "
            f"on {values.shape[0]} observations: weights={np.round(weights, 4).tolist()}"
        )
        return self

    def predict(self, horizon: int, exog: Optional[ExogLike] = None) -> np.ndarray:
        """Weighted sum of the member forecasts.

        Raises:
            ModelNotFittedError: If called before fit().
            InvalidArgumentError: On a negative horizon.
        """
        if not self.is_fitted:
            raise ModelNotFittedError("Ensemble has not been fitted")
        if horizon < 0:
            raise InvalidArgumentError(f"Horizon must be non-negative, got {horizon}")
        forecasts = np.vstack(
            [np.asarray(model.predict(horizon, exog=exog), dtype=float) for model in self.models]
        )
        return self.weights @ forecasts

    def get_parameters(self) -> Dict[str, float]:
        """Member count and weight_i for every member."""
        parameters: Dict[str, float] = {"n_models": float(len(self.models))}
        for i, weight in enumerate(self.weights):
            parameters[f"weight_{i}"] = float(weight)
        return parameters

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _holdout_forecasts(
        self, series: SeriesLike, exog: Optional[ExogLike], future: Any, values: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        n = values.shape[0]
        h = self.holdout_size
        if n <= h:
            raise InsufficientDataError(f"Holdout of {h} needs more than {n} observations")
        cut = n - h
        predictions = np.vstack(
            [
                np.asarray(
                    model.fit(_rows(series, 0, cut), exog=_rows(exog, 0, cut)).predict(
                        h, exog=_rows(future, cut, n)
                    ),
                    dtype=float,
                )
                for model in self.models
            ]
        )
        return values[cut:], predictions

    def _one_step_forecasts(
        self, series: SeriesLike, exog: Optional[ExogLike], future: Any, values: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        n = values.shape[0]
        w = self.dynamic_window_size
        if n <= w:
            raise InsufficientDataError(f"Dynamic window of {w} needs more than {n} observations")
        predictions = np.empty((len(self.models), w))
        for j, origin in enumerate(range(n - w, n)):
            for i, model in enumerate(self.models):
                model.fit(_rows(series, 0, origin), exog=_rows(exog, 0, origin))
                predictions[i, j] = model.predict(1, exog=_rows(future, origin, origin + 1))[0]
        return values[n - w :], predictions

    def _score(self, actual: np.ndarray, predictions: np.ndarray) -> List[Optional[float]]:
        return [getattr(calculate_metrics(actual, row), self.metric) for row in predictions]

    def _weights_from_scores(self, scores: Sequence[Optional[float]]) -> np.ndarray:
        k = len(scores)
        equal = np.full(k, 1.0 / k)
        if k == 1:
            return equal
        if any(s is None or not math.isfinite(s) for s in scores):
            logger.warning(f"Undefined {self.metric} for some members {scores}; using equal weights")
            return equal

        s = np.asarray(scores, dtype=float)
        if self.metric == "r2":
            s = np.clip(s, 0.0, None)
            total = s.sum()
            return s / total if total > 0 else equal
        total = s.sum()
        if total == 0:
            return equal
        return (total - s) / ((k - 1) * total)

    def _stacked_weights(
        self, actual: np.ndarray, predictions: np.ndarray, fallback: np.ndarray
    ) -> np.ndarray:
        try:
            coefficients = ols_estimate(predictions.T, actual)
        except InvalidArgumentError as e:
            logger.warning(f"Stacking regression failed ({e}); using performance weights")
            return fallback
        coefficients = np.clip(coefficients, 0.0, None)
        total = coefficients.sum()
        if total <= 0:
            logger.warning("Stacking regression gave no positive weight; using performance weights")
            return fallback
        return coefficients / total
