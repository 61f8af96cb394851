"""Data loading utilities for the forecasting pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import pandas as pd

from forecast_core.exceptions import DataQualityError

REQUIRED_COLUMNS = ("timestamp", "value")


def load_series_csv(csv_path: Union[str, Path]) -> pd.DataFrame:
    """Load a time series from a CSV file.

    The file must have 'timestamp' and 'value' columns; any other column is
    treated as an exogenous regressor.

    Args:
        csv_path: Path to the CSV file.

    Returns:
        DataFrame with a parsed 'timestamp' column, sorted by timestamp.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        DataQualityError: If required columns are missing.
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Series data not found at {csv_path}")

    df = pd.read_csv(csv_path)
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DataQualityError(f"Missing required columns: {missing}. Found: {list(df.columns)}")

    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df
