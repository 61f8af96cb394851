"""Forecast Core - seasonal time series forecasting engine.

This package fits SARIMA/SARIMAX models by conditional maximum likelihood,
validates them and searches model orders automatically:

- **Statistics**: descriptive statistics, distributions, spectral analysis
  and hypothesis tests used throughout the engine
- **Models**: the SeasonalModel (SARIMA/SARIMAX), its optimizer and
  weighted ensembles of models
- **Validation**: cross-validation, residual diagnostics, rolling windows
- **Selection**: candidate generation and ranking by information criteria
- **Service**: model lifecycle on top of a pluggable ModelStore

Module Structure:
    forecast_core.stats: Statistical utilities
    forecast_core.models: SeasonalModel, EnsembleModel, differencing and optimizer
    forecast_core.validation: ModelValidator operations
    forecast_core.selection: Automatic model selection
    forecast_core.data: CSV loading and preprocessing
    forecast_core.api: ForecastingService
    forecast_core.pipeline: Command-line entry point

Quick Start:
    >>> from forecast_core import ForecastingService, ModelConfig
    >>>
    >>> service = ForecastingService()
    >>> model_id = service.initialize_model(ModelConfig.create((1, 1, 0), [(1, 0, 0, 7)]))
    >>> service.train_model(model_id, points)
    >>> result = service.generate_forecast(model_id, horizon=14)
    >>> print(result.to_frame().head())
"""

__version__ = "0.1.0"

from forecast_core.api import ForecastingService, ForecastOptions, TrainingOptions, TrainingResult
from forecast_core.exceptions import (
    DataQualityError,
    DidNotConvergeError,
    ForecastCoreError,
    InsufficientDataError,
    InvalidArgumentError,
    InvalidConfigError,
    ModelNotFittedError,
    ModelNotFoundError,
    NoViableModelError,
)
from forecast_core.models import SeasonalModel
from forecast_core.models.ensemble import EnsembleModel
from forecast_core.selection import SelectionOptions, SelectionResult, find_best_model
from forecast_core.storage import InMemoryModelStore, ModelStore
from forecast_core.types import (
    ForecastPoint,
    ForecastResult,
    ModelConfig,
    ModelOrder,
    SeasonalOrder,
    TimeSeriesPoint,
)
from forecast_core.validation import CrossValidationOptions, cross_validate

__all__ = [
    "CrossValidationOptions",
    "DataQualityError",
    "DidNotConvergeError",
    "EnsembleModel",
    "ForecastCoreError",
    "ForecastOptions",
    "ForecastPoint",
    "ForecastResult",
    "ForecastingService",
    "InMemoryModelStore",
    "InsufficientDataError",
    "InvalidArgumentError",
    "InvalidConfigError",
    "ModelConfig",
    "ModelNotFittedError",
    "ModelNotFoundError",
    "ModelOrder",
    "ModelStore",
    "NoViableModelError",
    "SeasonalModel",
    "SeasonalOrder",
    "SelectionOptions",
    "SelectionResult",
    "TimeSeriesPoint",
    "TrainingOptions",
    "TrainingResult",
    "__version__",
    "cross_validate",
    "find_best_model",
]
