"""Persistence boundary of the forecasting service.

The service talks to storage only through the ModelStore protocol. The
bundled InMemoryModelStore keeps everything in process memory and is used by
tests and the CLI; a database-backed store only has to implement the same
methods.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from forecast_core.exceptions import ModelNotFoundError
from forecast_core.types import FittedState, ForecastPoint, ModelConfig, TimeSeriesPoint

logger = logging.getLogger(__name__)

STATUS_INITIALIZED = "initialized"
STATUS_TRAINING = "training"
STATUS_TRAINED = "trained"
STATUS_ERROR = "error"


@dataclass
class ModelRecord:
    """Stored model: configuration, fitted state and free-form metadata.

    ``metadata["status"]`` tracks the lifecycle (initialized, training,
    trained, error).
    """

    model_id: str
    config: ModelConfig
    fitted_state: Optional[FittedState] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> str:
        return self.metadata.get("status", STATUS_INITIALIZED)


@runtime_checkable
class ModelStore(Protocol):
    def save_model(
        self,
        config: ModelConfig,
        fitted_state: Optional[FittedState],
        metadata: Optional[Dict[str, Any]] = None,
        model_id: Optional[str] = None,
    ) -> str:
        """Create (model_id None) or replace a model record; returns its id."""
        ...

    def load_model(self, model_id: str) -> ModelRecord:
        """Raises ModelNotFoundError for unknown ids."""
        ...

    def save_forecast_results(self, model_id: str, points: Sequence[ForecastPoint]) -> None:
        ...

    def load_forecast_results(self, model_id: str) -> List[ForecastPoint]:
        ...

    def save_historical_data(self, model_id: str, points: Sequence[TimeSeriesPoint]) -> None:
        ...

    def get_historical_data(self, model_id: str, limit: Optional[int] = None) -> List[TimeSeriesPoint]:
        """Most recent ``limit`` points in chronological order (all when None)."""
        ...


class InMemoryModelStore:
    """Thread-safe ModelStore kept in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._models: Dict[str, ModelRecord] = {}
        self._forecasts: Dict[str, List[ForecastPoint]] = {}
        self._history: Dict[str, List[TimeSeriesPoint]] = {}

    def _require(self, model_id: str) -> ModelRecord:
        try:
            return self._models[model_id]
        except KeyError:
            raise ModelNotFoundError(f"Model {model_id!r} not found") from None

    def save_model(
        self,
        config: ModelConfig,
        fitted_state: Optional[FittedState],
        metadata: Optional[Dict[str, Any]] = None,
        model_id: Optional[str] = None,
    ) -> str:
        with self._lock:
            if model_id is None:
                model_id = uuid.uuid4().hex
                record = ModelRecord(model_id=model_id, config=config)
                logger.debug(f"Created model record {model_id}")
            else:
                record = self._require(model_id)
                record.config = config
                record.updated_at = datetime.now()
            record.fitted_state = fitted_state
            record.metadata = copy.deepcopy(metadata) if metadata else {}
            self._models[model_id] = record
            return model_id

    def load_model(self, model_id: str) -> ModelRecord:
        with self._lock:
            return copy.deepcopy(self._require(model_id))

    def save_forecast_results(self, model_id: str, points: Sequence[ForecastPoint]) -> None:
        with self._lock:
            self._require(model_id)
            self._forecasts.setdefault(model_id, []).extend(points)

    def load_forecast_results(self, model_id: str) -> List[ForecastPoint]:
        with self._lock:
            self._require(model_id)
            return list(self._forecasts.get(model_id, []))

    def save_historical_data(self, model_id: str, points: Sequence[TimeSeriesPoint]) -> None:
        with self._lock:
            self._require(model_id)
            self._history[model_id] = list(points)

    def get_historical_data(self, model_id: str, limit: Optional[int] = None) -> List[TimeSeriesPoint]:
        with self._lock:
            self._require(model_id)
            history = self._history.get(model_id, [])
            if limit is not None:
                history = history[-limit:] if limit > 0 else []
            return list(history)
