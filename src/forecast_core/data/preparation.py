"""Data preparation utilities for time series forecasting.

This module turns raw observations into clean series suitable for model
fitting: ordering, gap interpolation, outlier clipping and normalization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from forecast_core.config import IQR_MULTIPLIER, OUTLIER_ZSCORE
from forecast_core.exceptions import DataQualityError, InvalidConfigError
from forecast_core.types import TimeSeriesPoint

logger = logging.getLogger(__name__)

OUTLIER_METHODS = ("iqr", "zscore")

RawSeries = Union[Sequence[TimeSeriesPoint], pd.DataFrame, pd.Series]


@dataclass
class PreparedSeries:
    """Output of preprocess_data.

    Attributes:
        frame: DataFrame indexed by timestamp with a 'value' column followed by
            one column per exogenous regressor.
        scaling: {"mean": ..., "std": ...} applied to 'value', or None when the
            series was not normalized.
        outliers_clipped: Number of values moved to the outlier bounds.
        interpolated: Number of missing values filled.
    """

    frame: pd.DataFrame
    scaling: Optional[Dict[str, float]] = None
    outliers_clipped: int = 0
    interpolated: int = 0
    exogenous: List[str] = field(default_factory=list)

    @property
    def values(self) -> np.ndarray:
        return self.frame["value"].to_numpy(dtype=float)

    def to_points(self) -> List[TimeSeriesPoint]:
        return frame_to_points(self.frame)


def points_to_frame(points: Sequence[TimeSeriesPoint]) -> pd.DataFrame:
    """Convert TimeSeriesPoints to a DataFrame indexed by timestamp.

    Args:
        points: Observations; exogenous mappings become columns.

    Returns:
        DataFrame with a 'value' column and one column per exogenous name,
        sorted by timestamp.
    """
    rows = []
    for point in points:
        row = {"timestamp": pd.Timestamp(point.timestamp), "value": point.value}
        if point.exogenous:
            row.update(point.exogenous)
        rows.append(row)
    df = pd.DataFrame(rows)
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    return df.set_index("timestamp").sort_index()


def frame_to_points(frame: pd.DataFrame) -> List[TimeSeriesPoint]:
    """Inverse of points_to_frame."""
    exog_columns = [col for col in frame.columns if col != "value"]
    points = []
    for timestamp, row in frame.iterrows():
        exogenous = {col: float(row[col]) for col in exog_columns} if exog_columns else None
        points.append(
            TimeSeriesPoint(timestamp=timestamp, value=float(row["value"]), exogenous=exogenous)
        )
    return points


def _to_frame(data: RawSeries) -> pd.DataFrame:
    if isinstance(data, pd.Series):
        frame = data.rename("value").to_frame()
    elif isinstance(data, pd.DataFrame):
        frame = data.copy()
        if "timestamp" in frame.columns:
            frame["timestamp"] = pd.to_datetime(frame["timestamp"])
            frame = frame.set_index("timestamp")
        if "value" not in frame.columns:
            raise DataQualityError(f"Missing required column 'value'. Found: {list(frame.columns)}")
        frame["value"] = pd.to_numeric(frame["value"], errors="coerce")
    else:
        if len(data) == 0:
            raise DataQualityError("Cannot preprocess an empty series")
        frame = points_to_frame(data)
    if frame.empty:
        raise DataQualityError("Cannot preprocess an empty series")
    frame = frame.sort_index()
    columns = ["value"] + [col for col in frame.columns if col != "value"]
    return frame[columns]


def interpolate_missing(values: pd.Series) -> pd.Series:
    """Fill gaps linearly in time; leading and trailing gaps take the nearest value."""
    method = "time" if isinstance(values.index, pd.DatetimeIndex) else "linear"
    return values.interpolate(method=method, limit_direction="both")


def clip_outliers(values: pd.Series, method: str = "iqr") -> Tuple[pd.Series, int]:
    """Clip values outside the IQR fences (1.5 x IQR) or the 3-sigma band.

    Returns:
        Tuple of (clipped series, number of values clipped).

    Raises:
        InvalidConfigError: If method is unknown.
    """
    if method == "iqr":
        q1, q3 = values.quantile(0.25), values.quantile(0.75)
        spread = q3 - q1
        lower, upper = q1 - IQR_MULTIPLIER * spread, q3 + IQR_MULTIPLIER * spread
    elif method == "zscore":
        mean, std = values.mean(), values.std(ddof=0)
        lower, upper = mean - OUTLIER_ZSCORE * std, mean + OUTLIER_ZSCORE * std
    else:
        raise InvalidConfigError(f"outlier_method must be one of {OUTLIER_METHODS} or None, got {method!r}")
    clipped = values.clip(lower=lower, upper=upper)
    count = int((clipped != values).sum())
    return clipped, count


def preprocess_data(
    data: RawSeries,
    interpolate: bool = True,
    outlier_method: Optional[str] = "iqr",
    normalize: bool = True,
) -> PreparedSeries:
    """Clean a raw series for model fitting.

    Steps, in order: sort by timestamp, interpolate missing values
    (time-weighted), clip outliers, normalize to zero mean and unit variance.

    Args:
        data: TimeSeriesPoints, a DataFrame with 'value' (and optionally
            'timestamp' and exogenous) columns, or a Series.
        interpolate: Fill missing values.
        outlier_method: "iqr", "zscore" or None to skip clipping.
        normalize: Apply z-score normalization to 'value'.

    Returns:
        PreparedSeries with the cleaned frame and the scaling needed to
        map forecasts back to the original units.

    Raises:
        DataQualityError: If the input is empty, lacks a 'value' column or has
            no observed values.
        InvalidConfigError: If outlier_method is unknown.
    """
    if outlier_method is not None and outlier_method not in OUTLIER_METHODS:
        raise InvalidConfigError(
            f"outlier_method must be one of {OUTLIER_METHODS} or None, got {outlier_method!r}"
        )
    frame = _to_frame(data)
    if frame["value"].notna().sum() == 0:
        raise DataQualityError("Series has no observed values")

    missing = int(frame["value"].isna().sum())
    if interpolate and missing:
        frame["value"] = interpolate_missing(frame["value"])
        logger.info(f"Interpolated {missing} missing values")

    clipped = 0
    if outlier_method is not None:
        frame["value"], clipped = clip_outliers(frame["value"], outlier_method)
        if clipped:
            logger.warning(f"Clipped {clipped} outliers using the {outlier_method} rule")

    scaling = None
    if normalize:
        mean = float(frame["value"].mean())
        std = float(frame["value"].std(ddof=0))
        if not std > 0:
            std = 1.0
        frame["value"] = (frame["value"] - mean) / std
        scaling = {"mean": mean, "std": std}

    return PreparedSeries(
        frame=frame,
        scaling=scaling,
        outliers_clipped=clipped,
        interpolated=missing if interpolate else 0,
        exogenous=[col for col in frame.columns if col != "value"],
    )


def denormalize(values, scaling: Optional[Dict[str, float]]) -> np.ndarray:
    """Map normalized values back to original units (identity when scaling is None)."""
    array = np.asarray(values, dtype=float)
    if not scaling:
        return array
    return array * scaling["std"] + scaling["mean"]


def median_spacing(index: pd.Index) -> Optional[pd.Timedelta]:
    """Median difference between consecutive timestamps, or None if undefined."""
    if not isinstance(index, pd.DatetimeIndex) or len(index) < 2:
        return None
    return pd.Series(index).diff().dropna().median()
