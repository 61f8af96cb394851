"""Public API of the forecasting engine.

ForecastingService orchestrates the lifecycle of a stored model: initialize,
train (preprocess, optionally select, fit, validate), forecast and track
accuracy against actuals. All persistence goes through a ModelStore.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from forecast_core.config import DEFAULT_CONFIDENCE
from forecast_core.data.preparation import (
    RawSeries,
    denormalize,
    median_spacing,
    points_to_frame,
    preprocess_data,
)
from forecast_core.exceptions import DataQualityError, ModelNotFittedError
from forecast_core.models.sarimax import SeasonalModel
from forecast_core.selection import SelectionOptions, find_best_model
from forecast_core.storage import (
    STATUS_ERROR,
    STATUS_INITIALIZED,
    STATUS_TRAINED,
    STATUS_TRAINING,
    InMemoryModelStore,
    ModelStore,
)
from forecast_core.types import (
    CrossValidationResult,
    DiagnosticResult,
    ExogLike,
    ForecastPoint,
    ForecastResult,
    ModelConfig,
    ModelEvaluation,
    TimeSeriesPoint,
    ValidationMetrics,
)
from forecast_core.validation import (
    CrossValidationOptions,
    build_diagnostic_result,
    calculate_metrics,
    cross_validate,
)

logger = logging.getLogger(__name__)


@dataclass
class TrainingOptions:
    """Options of ForecastingService.train_model.

    Attributes:
        interpolate: Fill missing values before fitting.
        outlier_method: "iqr", "zscore" or None.
        normalize: Z-score normalize the series (forecasts are mapped back).
        auto_select: Search for the best configuration instead of using the
            stored one.
        selection: Search options when auto_select is set.
        cross_validation: Cross-validate the final configuration when given.
    """

    interpolate: bool = True
    outlier_method: Optional[str] = "iqr"
    normalize: bool = True
    auto_select: bool = False
    selection: Optional[SelectionOptions] = None
    cross_validation: Optional[CrossValidationOptions] = None


@dataclass
class ForecastOptions:
    """Options of ForecastingService.generate_forecast.

    Attributes:
        confidence: Interval coverage; the service default when None.
        exog: Future exogenous regressors (one row per step) for SARIMAX models.
    """

    confidence: Optional[float] = None
    exog: Optional[ExogLike] = None


@dataclass
class TrainingResult:
    """Outcome of ForecastingService.train_model."""

    model_id: str
    config: ModelConfig
    parameters: Dict[str, float]
    diagnostics: DiagnosticResult
    cross_validation: Optional[CrossValidationResult] = None
    evaluation: Optional[ModelEvaluation] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ForecastingService:
    """Model lifecycle on top of a ModelStore.

    Example:
        >>> service = ForecastingService()
        >>> model_id = service.initialize_model(ModelConfig.create((1, 1, 0)))
        >>> service.train_model(model_id, points)
        >>> result = service.generate_forecast(model_id, horizon=14)
        >>> result.to_frame()
    """

    def __init__(
        self,
        store: Optional[ModelStore] = None,
        default_confidence: float = DEFAULT_CONFIDENCE,
    ) -> None:
        self.store: ModelStore = store if store is not None else InMemoryModelStore()
        self.default_confidence = default_confidence

    def initialize_model(
        self, config: ModelConfig, metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """Register a model configuration and return its id (status "initialized")."""
        record_metadata = dict(metadata or {})
        record_metadata["status"] = STATUS_INITIALIZED
        record_metadata["created_at"] = datetime.now().isoformat()
        model_id = self.store.save_model(config, None, record_metadata)
        logger.info(f"Initialized model {model_id}: {config.describe()}")
        return model_id

    def train_model(
        self,
        model_id: str,
        data: RawSeries,
        options: Optional[TrainingOptions] = None,
    ) -> TrainingResult:
        """Preprocess data, fit (or select) the model and persist the fitted state.

        Args:
            model_id: Id returned by initialize_model.
            data: Historical observations (TimeSeriesPoints, DataFrame or Series).
            options: Preprocessing, selection and validation options.

        Returns:
            TrainingResult with parameters, diagnostics and optional
            cross-validation.

        Raises:
            ModelNotFoundError: If model_id is unknown.
            Any preprocessing, selection or fitting error; the stored status
            becomes "error" with metadata["last_error"] before re-raising.
        """
        options = options or TrainingOptions()
        record = self.store.load_model(model_id)
        metadata = dict(record.metadata)
        metadata["status"] = STATUS_TRAINING
        self.store.save_model(record.config, record.fitted_state, metadata, model_id=model_id)

        try:
            prepared = preprocess_data(
                data,
                interpolate=options.interpolate,
                outlier_method=options.outlier_method,
                normalize=options.normalize,
            )
            evaluation = None
            if options.auto_select:
                selection = options.selection or SelectionOptions()
                if record.config.exogenous and not selection.exogenous:
                    selection = replace(selection, exogenous=record.config.exogenous)
                outcome = find_best_model(prepared.frame, selection)
                model = outcome.best_model
                evaluation = outcome.evaluation
            else:
                model = SeasonalModel(record.config).fit(prepared.frame)
            config = model.config

            cross_validation = None
            if options.cross_validation is not None:
                cross_validation = cross_validate(config, prepared.frame, options.cross_validation)

            diagnostics = build_diagnostic_result(model)
        except Exception as e:
            metadata["status"] = STATUS_ERROR
            metadata["last_error"] = str(e)
            self.store.save_model(record.config, record.fitted_state, metadata, model_id=model_id)
            logger.error(f"Training model {model_id} failed: {e}")
            raise

        self.store.save_historical_data(model_id, prepared.to_points())
        metadata.pop("last_error", None)
        metadata.update(
            {
                "status": STATUS_TRAINED,
                "trained_at": datetime.now().isoformat(),
                "model": config.describe(),
                "scaling": prepared.scaling,
                "n_observations": int(len(prepared.frame)),
                "information_criteria": dict(diagnostics.information_criteria),
                "forecast_accuracy": dict(diagnostics.forecast_accuracy),
            }
        )
        self.store.save_model(config, model.state, metadata, model_id=model_id)
        logger.info(f"Trained model {model_id}: {config.describe()} on {len(prepared.frame)} points")

        return TrainingResult(
            model_id=model_id,
            config=config,
            parameters=model.get_parameters(),
            diagnostics=diagnostics,
            cross_validation=cross_validation,
            evaluation=evaluation,
            metadata=metadata,
        )

    def _restore(self, model_id: str):
        record = self.store.load_model(model_id)
        if record.fitted_state is None or record.status != STATUS_TRAINED:
            raise ModelNotFittedError(f"Model {model_id} has not been trained (status {record.status!r})")
        history = self.store.get_historical_data(model_id)
        frame = points_to_frame(history)
        model = SeasonalModel.restore(record.config, record.fitted_state, frame)
        return record, frame, model

    def generate_forecast(
        self,
        model_id: str,
        horizon: int,
        options: Optional[ForecastOptions] = None,
    ) -> ForecastResult:
        """Forecast ``horizon`` steps past the training data.

        Values and bounds are mapped back to the original units and stamped at
        the median spacing of the historical timestamps. The points are stored
        with the model.

        Raises:
            ModelNotFoundError: If model_id is unknown.
            ModelNotFittedError: If the model was never trained successfully.
        """
        options = options or ForecastOptions()
        confidence = options.confidence if options.confidence is not None else self.default_confidence
        record, frame, model = self._restore(model_id)

        spacing = median_spacing(frame.index)
        timestamps = None
        if spacing is not None:
            last = frame.index[-1]
            timestamps = [last + spacing * (step + 1) for step in range(horizon)]

        raw_points = model.forecast(horizon, confidence=confidence, exog=options.exog, timestamps=timestamps)
        scaling = record.metadata.get("scaling")
        points = []
        for point in raw_points:
            value, lower, upper = denormalize([point.value, point.lower_bound, point.upper_bound], scaling)
            points.append(
                ForecastPoint(
                    timestamp=point.timestamp,
                    value=float(value),
                    lower_bound=float(lower),
                    upper_bound=float(upper),
                    confidence=point.confidence,
                )
            )

        self.store.save_forecast_results(model_id, points)
        logger.info(f"Generated {horizon}-step forecast for model {model_id}")
        return ForecastResult(
            model_id=model_id,
            points=tuple(points),
            metadata={
                "model": record.config.describe(),
                "horizon": horizon,
                "confidence": confidence,
                "scaling": scaling,
                "generated_at": datetime.now().isoformat(),
            },
        )

    def analyze_forecast_accuracy(
        self, model_id: str, actual_data: Sequence[TimeSeriesPoint]
    ) -> ValidationMetrics:
        """Compare stored forecasts with observed values at matching timestamps.

        When several stored forecasts share a timestamp the most recent one is
        used. The metrics are saved in the model metadata under "accuracy".

        Raises:
            DataQualityError: If no actual value matches a forecast timestamp.
        """
        record = self.store.load_model(model_id)
        forecasts: Dict[pd.Timestamp, float] = {}
        for point in self.store.load_forecast_results(model_id):
            if point.timestamp is not None:
                forecasts[pd.Timestamp(point.timestamp)] = point.value

        actual: List[float] = []
        predicted: List[float] = []
        for point in actual_data:
            key = pd.Timestamp(point.timestamp)
            if key in forecasts and point.value is not None and not pd.isna(point.value):
                actual.append(float(point.value))
                predicted.append(forecasts[key])
        if not actual:
            raise DataQualityError(f"No actual values match stored forecasts of model {model_id}")

        metrics = calculate_metrics(actual, predicted)
        metadata = dict(record.metadata)
        metadata["accuracy"] = asdict(metrics)
        metadata["accuracy_points"] = len(actual)
        self.store.save_model(record.config, record.fitted_state, metadata, model_id=model_id)
        logger.info(f"Model {model_id} accuracy on {len(actual)} points: rmse={metrics.rmse:.4f}")
        return metrics
