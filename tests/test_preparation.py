"""Tests for data loading and preparation."""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from forecast_core.data import (
    clip_outliers,
    denormalize,
    frame_to_points,
    interpolate_missing,
    load_series_csv,
    median_spacing,
    points_to_frame,
    preprocess_data,
)
from forecast_core.exceptions import DataQualityError, InvalidConfigError
from forecast_core.types import TimeSeriesPoint


def _points(values, start=datetime(2024, 1, 1), exogenous=None):
    return [
        TimeSeriesPoint(
            timestamp=start + timedelta(days=i),
            value=value,
            exogenous=exogenous[i] if exogenous else None,
        )
        for i, value in enumerate(values)
    ]


def test_points_to_frame_sorts_and_keeps_exogenous() -> None:
    """Test conversion of points into a timestamp-indexed frame."""
    points = _points([1.0, 2.0, 3.0], exogenous=[{"promo": 0.0}, {"promo": 1.0}, {"promo": 0.0}])
    frame = points_to_frame(list(reversed(points)))

    assert list(frame.columns) == ["value", "promo"]
    assert frame.index.is_monotonic_increasing
    assert frame["value"].tolist() == [1.0, 2.0, 3.0]

    restored = frame_to_points(frame)
    assert [p.value for p in restored] == [1.0, 2.0, 3.0]
    assert restored[1].exogenous == {"promo": 1.0}
    assert restored[0].timestamp == pd.Timestamp("2024-01-01")


def test_interpolate_missing_is_time_weighted() -> None:
    """Test that gaps are filled in proportion to elapsed time."""
    index = pd.DatetimeIndex(["2024-01-01", "2024-01-02", "2024-01-04"])
    values = pd.Series([0.0, np.nan, 3.0], index=index)
    assert interpolate_missing(values).tolist() == pytest.approx([0.0, 1.0, 3.0])

    edges = pd.Series([np.nan, 2.0, np.nan])
    assert interpolate_missing(edges).tolist() == [2.0, 2.0, 2.0]


def test_clip_outliers() -> None:
    """Test IQR and z-score clipping."""
    values = pd.Series([float(v) for v in range(1, 11)] + [100.0])
    clipped, count = clip_outliers(values, "iqr")
    assert count == 1
    # Q1 = 3.5, Q3 = 8.5, upper fence = 8.5 + 1.5 * 5
    assert clipped.iloc[-1] == pytest.approx(16.0)

    spikes = pd.Series([0.0] * 20 + [100.0])
    clipped, count = clip_outliers(spikes, "zscore")
    assert count == 1
    assert clipped.iloc[-1] < 100.0

    with pytest.raises(InvalidConfigError, match="outlier_method"):
        clip_outliers(values, "mad")


def test_preprocess_data_pipeline() -> None:
    """Test interpolation, clipping and normalization on points."""
    prepared = preprocess_data(_points([10.0, None, 14.0, 16.0, 18.0, 20.0]))

    assert prepared.interpolated == 1
    assert prepared.outliers_clipped == 0
    assert prepared.values.mean() == pytest.approx(0.0, abs=1e-12)
    assert prepared.values.std() == pytest.approx(1.0)
    np.testing.assert_allclose(
        denormalize(prepared.values, prepared.scaling), [10.0, 12.0, 14.0, 16.0, 18.0, 20.0]
    )
    assert len(prepared.to_points()) == 6


def test_preprocess_data_from_frame_without_normalizing() -> None:
    """Test frame input with exogenous columns and normalization disabled."""
    frame = pd.DataFrame(
        {
            "timestamp": ["2024-01-03", "2024-01-01", "2024-01-02"],
            "value": [3.0, 1.0, 2.0],
            "temperature": [20.0, 18.0, 19.0],
        }
    )
    prepared = preprocess_data(frame, outlier_method=None, normalize=False)

    assert prepared.scaling is None
    assert prepared.exogenous == ["temperature"]
    assert prepared.values.tolist() == [1.0, 2.0, 3.0]
    np.testing.assert_array_equal(denormalize([1.0, 2.0], None), [1.0, 2.0])


def test_preprocess_data_constant_series() -> None:
    """Test that a constant series is centred with unit scale."""
    prepared = preprocess_data(pd.Series([5.0, 5.0, 5.0]))
    assert prepared.scaling == {"mean": 5.0, "std": 1.0}
    assert prepared.values.tolist() == [0.0, 0.0, 0.0]


def test_preprocess_data_rejects_bad_input() -> None:
    """Test data quality and configuration errors."""
    with pytest.raises(DataQualityError, match="empty"):
        preprocess_data([])
    with pytest.raises(DataQualityError, match="value"):
        preprocess_data(pd.DataFrame({"amount": [1.0, 2.0]}))
    with pytest.raises(DataQualityError, match="no observed values"):
        preprocess_data(_points([None, None]))
    with pytest.raises(InvalidConfigError):
        preprocess_data(_points([1.0, 2.0]), outlier_method="mad")


def test_median_spacing() -> None:
    """Test the median spacing of a timestamp index."""
    index = pd.DatetimeIndex(["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-10"])
    assert median_spacing(index) == pd.Timedelta(days=1)
    assert median_spacing(pd.RangeIndex(5)) is None
    assert median_spacing(pd.DatetimeIndex(["2024-01-01"])) is None


def test_load_series_csv(tmp_path) -> None:
    """Test CSV loading, ordering and validation."""
    csv_path = tmp_path / "series.csv"
    csv_path.write_text("timestamp,value,promo\n2024-01-02,2.0,1\n2024-01-01,1.0,0\n")

    df = load_series_csv(csv_path)
    assert df["value"].tolist() == [1.0, 2.0]
    assert pd.api.types.is_datetime64_any_dtype(df["timestamp"])
    assert list(df.columns) == ["timestamp", "value", "promo"]

    bad_path = tmp_path / "bad.csv"
    bad_path.write_text("date,amount\n2024-01-01,1.0\n")
    with pytest.raises(DataQualityError, match="Missing required columns"):
        load_series_csv(bad_path)

    with pytest.raises(FileNotFoundError):
        load_series_csv(tmp_path / "missing.csv")
