"""Base model interface for forecasting models.

This module defines the abstract base class that forecasting models implement,
so validation and selection can treat any model type the same way.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from forecast_core.types import ExogLike, ModelDebugInfo, SeriesLike


class ForecastModel(ABC):
    """Abstract base class for forecasting models.

    All forecasting models must implement fit() and predict(). Models expose
    a ``debug_`` attribute that is populated after a successful fit.
    """

    debug_: Optional[ModelDebugInfo] = None

    @abstractmethod
    def fit(self, series: SeriesLike, exog: Optional[ExogLike] = None) -> ForecastModel:
        """Fit the model to a time series.

        Args:
            series: Historical values (raw scale, not differenced).
            exog: Optional exogenous regressors aligned with series.

        Returns:
            The fitted model (self), for chaining.

        Raises:
            InsufficientDataError: If the series is too short for the model.
            DidNotConvergeError: If estimation fails to converge.
        """
        pass

    @abstractmethod
    def predict(self, horizon: int, exog: Optional[ExogLike] = None) -> np.ndarray:
        """Generate point forecasts from a fitted model.

        Args:
            horizon: Number of periods to forecast ahead.
            exog: Future exogenous regressors, one row per forecast step.

        Returns:
            Array of exactly ``horizon`` forecasts on the original scale.

        Raises:
            ModelNotFittedError: If called before fit().
        """
        pass

    @property
    @abstractmethod
    def is_fitted(self) -> bool:
        """Whether the model has completed a successful fit."""
        pass
