"""Data loading and preparation utilities."""

from forecast_core.data.loaders import load_series_csv
from forecast_core.data.preparation import (
    PreparedSeries,
    clip_outliers,
    denormalize,
    frame_to_points,
    interpolate_missing,
    median_spacing,
    points_to_frame,
    preprocess_data,
)

__all__ = [
    "PreparedSeries",
    "clip_outliers",
    "denormalize",
    "frame_to_points",
    "interpolate_missing",
    "load_series_csv",
    "median_spacing",
    "points_to_frame",
    "preprocess_data",
]
