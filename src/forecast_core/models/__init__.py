"""Forecasting models module.

Forecasting Model Debug Checklist
==================================

When adding a new forecasting model, follow this checklist so debug
information is exposed the same way as SeasonalModel does it:

1. Subclass ForecastModel and initialize the debug attribute in __init__:
   ```python
   def __init__(self, config: ModelConfig) -> None:
       # ... other initialization ...
       self.debug_: ModelDebugInfo | None = None
   ```

2. Populate debug info at the end of fit():
   ```python
   def fit(self, series, exog=None):
       # ... estimate parameters ...
       self.debug_ = ModelDebugInfo(
           model_name="your_model_name",  # e.g., "sarimax"
           version="v1",
           data={
               # "config": self.config.describe(),
               # "log_likelihood": state.log_likelihood,
               # "residuals_tail": residuals[-20:].tolist(),
           },
       )
       return self
   ```

3. Important constraints:
   - predict() always returns exactly ``horizon`` values as a numpy array
   - A failed fit must not leave half-updated state behind
   - Keep the data dict JSON-serializable (floats, strings, lists)

Example implementations:
- SeasonalModel: see models/sarimax.py
- EnsembleModel: see models/ensemble.py (import it from forecast_core or
  forecast_core.models.ensemble; it depends on forecast_core.validation)
"""

from forecast_core.models.base import ForecastModel
from forecast_core.models.differencing import (
    difference,
    differencing_polynomial,
    integrate,
    undifference,
)
from forecast_core.models.optimizer import OptimizationResult, newton_raphson
from forecast_core.models.sarimax import SeasonalModel

__all__ = [
    "ForecastModel",
    "OptimizationResult",
    "SeasonalModel",
    "difference",
    "differencing_polynomial",
    "integrate",
    "newton_raphson",
    "undifference",
]
