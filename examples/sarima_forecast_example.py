"""Example: Forecasting a Weekly Seasonal Series

This example demonstrates the forecasting engine end to end:
fitting a SARIMA model directly, letting model selection pick the orders,
and running the full service lifecycle (train, forecast, track accuracy).

Prerequisites:
- A daily series CSV with 'timestamp' and 'value' columns, or nothing at all:
  synthetic data is generated when the file is missing.
"""

from pathlib import Path

import numpy as np
import pandas as pd

from forecast_core import (
    ForecastingService,
    ModelConfig,
    SeasonalModel,
    SelectionOptions,
    TimeSeriesPoint,
    TrainingOptions,
    find_best_model,
)
from forecast_core.data import load_series_csv

# Modify this path to point to your own series
data_file = Path("data/daily_sales.csv")

if data_file.exists():
    print(f"\nLoading data from: {data_file}")
    df = load_series_csv(data_file)
else:
    print(f"\nData file not found: {data_file}")
    print("Using synthetic data for demonstration instead...")
    num_days = 140
    rng = np.random.default_rng(42)
    t = np.arange(num_days)
    # Weekly pattern plus a slow upward trend
    weekly = np.array([100, 120, 130, 140, 150, 160, 180])[t % 7]
    df = pd.DataFrame(
        {
            "timestamp": pd.date_range("2025-01-01", periods=num_days, freq="D"),
            "value": weekly + 0.5 * t + rng.normal(scale=5.0, size=num_days),
        }
    )

print(f"Loaded {len(df)} observations")
print(f"Date range: {df['timestamp'].min()} to {df['timestamp'].max()}")

# Example 1: Fit a fixed SARIMA configuration
print("\n" + "=" * 80)
print("Example 1: SARIMA(1,1,0)x(1,1,0,7)")
print("=" * 80)

config = ModelConfig.create(order=(1, 1, 0), seasonal_orders=[(1, 1, 0, 7)])
model = SeasonalModel(config).fit(df["value"])

print("\nParameters:")
for name, value in model.get_parameters().items():
    print(f"  {name:<12} {value:>10.4f}")

diagnostics = model.get_diagnostics()
print(f"\nAIC={diagnostics.aic:.2f} BIC={diagnostics.bic:.2f}")
print(f"Ljung-Box p-value: {diagnostics.residual_stats.ljung_box.p_value}")

print("\nNext 7 days:")
for step, point in enumerate(model.forecast(7, confidence=0.9), start=1):
    print(f"  +{step}: {point.value:8.2f}  [{point.lower_bound:8.2f}, {point.upper_bound:8.2f}]")

# Example 2: Automatic model selection
print("\n" + "=" * 80)
print("Example 2: Automatic Model Selection")
print("=" * 80)

selection = find_best_model(
    df["value"],
    SelectionOptions(max_order=1, max_d=1, max_seasonal_order=1, max_seasonal_d=1),
)
print(f"\nBest model: {selection.best_model.config.describe()}")
print(f"Candidates fitted: {len(selection.search_results)}, dropped: {len(selection.failures)}")
print("\nTop 5 candidates by AIC:")
for evaluation in selection.search_results[:5]:
    print(f"  {evaluation.config.describe():<30} AIC={evaluation.aic:.2f}")

# Example 3: Service lifecycle with a holdout week
print("\n" + "=" * 80)
print("Example 3: Forecasting Service with Accuracy Tracking")
print("=" * 80)

history, holdout = df.iloc[:-7], df.iloc[-7:]

service = ForecastingService()
model_id = service.initialize_model(config, metadata={"source": str(data_file)})
training = service.train_model(model_id, history, TrainingOptions(outlier_method=None))
print(f"\nTrained {training.config.describe()} on {training.metadata['n_observations']} points")

result = service.generate_forecast(model_id, horizon=7)
print("\nForecast DataFrame:")
print(result.to_frame())

actual = [
    TimeSeriesPoint(timestamp=row.timestamp, value=row.value) for row in holdout.itertuples()
]
metrics = service.analyze_forecast_accuracy(model_id, actual)
print(f"\nHoldout accuracy: RMSE={metrics.rmse:.2f} MAE={metrics.mae:.2f} MAPE={metrics.mape:.2f}%")
