"""Tests for weighted model ensembles."""

from typing import Optional

import numpy as np
import pytest

from forecast_core import EnsembleModel
from forecast_core.exceptions import (
    InsufficientDataError,
    InvalidArgumentError,
    InvalidConfigError,
    ModelNotFittedError,
)
from forecast_core.models.base import ForecastModel
from forecast_core.models.sarimax import SeasonalModel
from forecast_core.types import ModelConfig


class OffsetModel(ForecastModel):
    """Extends the last observation by a fixed slope plus a constant bias."""

    def __init__(self, slope: float = 2.0, bias: float = 0.0) -> None:
        self.slope = slope
        self.bias = bias
        self.last: Optional[float] = None
        self.fit_calls = 0

    def fit(self, series, exog=None) -> "OffsetModel":
        self.last = float(np.asarray(series, dtype=float)[-1])
        self.fit_calls += 1
        return self

    def predict(self, horizon: int, exog=None) -> np.ndarray:
        steps = np.arange(1, horizon + 1, dtype=float)
        return self.last + self.slope * steps + self.bias

    @property
    def is_fitted(self) -> bool:
        return self.last is not None


def _line(n: int = 40) -> np.ndarray:
    return 10.0 + 2.0 * np.arange(n, dtype=float)


def test_invalid_options_raise() -> None:
    """Test that empty member lists and unknown options raise InvalidConfigError."""
    with pytest.raises(InvalidConfigError, match="at least one"):
        EnsembleModel([])
    with pytest.raises(InvalidConfigError, match="weighting"):
        EnsembleModel([OffsetModel()], weighting="median")
    with pytest.raises(InvalidConfigError, match="metric"):
        EnsembleModel([OffsetModel()], metric="smape")
    with pytest.raises(InvalidConfigError, match="dynamic_window_size"):
        EnsembleModel([OffsetModel()], dynamic_window_size=0)


def test_predict_before_fit_raises() -> None:
    ensemble = EnsembleModel([OffsetModel(), OffsetModel(bias=1.0)])
    assert not ensemble.is_fitted
    with pytest.raises(ModelNotFittedError):
        ensemble.predict(3)


def test_equal_weights_average_members() -> None:
    """Test that equal weighting averages the member forecasts."""
    data = _line()
    ensemble = EnsembleModel([OffsetModel(bias=1.0), OffsetModel(bias=3.0)]).fit(data)

    np.testing.assert_allclose(ensemble.weights, [0.5, 0.5])
    np.testing.assert_allclose(ensemble.predict(3), data[-1] + 2.0 * np.arange(1, 4) + 2.0)
    assert ensemble.predict(0).shape == (0,)
    assert ensemble.get_parameters() == {"n_models": 2.0, "weight_0": 0.5, "weight_1": 0.5}
    assert ensemble.scores is None

    with pytest.raises(InvalidArgumentError, match="non-negative"):
        ensemble.predict(-1)


@pytest.mark.parametrize("metric", ["rmse", "mae", "mape"])
def test_performance_weights_favor_lower_error(metric) -> None:
    """Test the (total - e_i) / ((k - 1) * total) rule for error metrics."""
    ensemble = EnsembleModel(
        [OffsetModel(bias=1.0), OffsetModel(bias=3.0)], weighting="performance", metric=metric
    ).fit(_line())

    # errors are proportional to the bias: 1 and 3 out of a total of 4
    np.testing.assert_allclose(ensemble.weights, [0.75, 0.25])
    assert ensemble.weights.sum() == pytest.approx(1.0)


def test_performance_weights_with_r2() -> None:
    """Test that r2 weights are proportional to each member's holdout r2."""
    data = _line()
    ensemble = EnsembleModel(
        [OffsetModel(bias=1.0), OffsetModel(bias=3.0)],
        weighting="performance",
        metric="r2",
        holdout_size=10,
    ).fit(data)

    holdout = data[-10:]
    ss_tot = np.sum((holdout - holdout.mean()) ** 2)
    r2 = np.array([1.0 - 10 * 1.0 / ss_tot, 1.0 - 10 * 9.0 / ss_tot])
    np.testing.assert_allclose(ensemble.weights, r2 / r2.sum())
    assert ensemble.weights[0] > ensemble.weights[1]


def test_perfect_member_takes_all_weight() -> None:
    """Test that a member with zero holdout error gets weight one."""
    ensemble = EnsembleModel(
        [OffsetModel(bias=0.0), OffsetModel(bias=3.0)], weighting="performance"
    ).fit(_line())

    np.testing.assert_allclose(ensemble.weights, [1.0, 0.0])
    np.testing.assert_allclose(ensemble.predict(2), [_line()[-1] + 2.0, _line()[-1] + 4.0])


def test_undefined_scores_fall_back_to_equal_weights() -> None:
    """Test that an undefined r2 on a constant holdout gives equal weights."""
    flat = np.full(30, 5.0)
    ensemble = EnsembleModel(
        [OffsetModel(slope=0.0, bias=1.0), OffsetModel(slope=0.0, bias=2.0)],
        weighting="performance",
        metric="r2",
    ).fit(flat)

    assert ensemble.scores == [None, None]
    np.testing.assert_allclose(ensemble.weights, [0.5, 0.5])


def test_single_member_gets_full_weight() -> None:
    ensemble = EnsembleModel([OffsetModel(bias=2.0)], weighting="performance").fit(_line())
    np.testing.assert_allclose(ensemble.weights, [1.0])


def test_dynamic_weights_use_recent_one_step_forecasts() -> None:
    """Test dynamic weighting over the last window of one-step-ahead forecasts."""
    members = [OffsetModel(bias=1.0), OffsetModel(bias=3.0)]
    ensemble = EnsembleModel(members, weighting="dynamic", dynamic_window_size=5).fit(_line())

    np.testing.assert_allclose(ensemble.weights, [0.75, 0.25])
    assert ensemble.scores == pytest.approx([1.0, 3.0])
    # one fit per origin, then the final fit on the full series
    assert [m.fit_calls for m in members] == [6, 6]
    assert all(m.last == _line()[-1] for m in members)


def test_stacked_weights_solve_the_combination() -> None:
    """Test that stacking clips negative coefficients and renormalizes."""
    ensemble = EnsembleModel(
        [OffsetModel(bias=1.0), OffsetModel(bias=3.0)], weighting="stacked"
    ).fit(_line())

    # the unconstrained solution is (1.5, -0.5)
    np.testing.assert_allclose(ensemble.weights, [1.0, 0.0], atol=1e-8)


def test_stacked_weights_cancel_opposite_biases() -> None:
    """Test that opposite biases are combined into an unbiased forecast."""
    data = _line()
    ensemble = EnsembleModel(
        [OffsetModel(bias=2.0), OffsetModel(bias=-2.0)], weighting="stacked"
    ).fit(data)

    np.testing.assert_allclose(ensemble.weights, [0.5, 0.5], atol=1e-8)
    np.testing.assert_allclose(ensemble.predict(3), data[-1] + 2.0 * np.arange(1, 4), atol=1e-6)


def test_stacking_falls_back_when_singular() -> None:
    """Test that identical members fall back to performance weights."""
    ensemble = EnsembleModel(
        [OffsetModel(bias=1.0), OffsetModel(bias=1.0)], weighting="stacked"
    ).fit(_line())
    np.testing.assert_allclose(ensemble.weights, [0.5, 0.5])


def test_short_series_raises_insufficient_data() -> None:
    with pytest.raises(InsufficientDataError, match="Holdout"):
        EnsembleModel([OffsetModel()], weighting="performance", holdout_size=10).fit(_line(10))
    with pytest.raises(InsufficientDataError, match="Dynamic window"):
        EnsembleModel([OffsetModel()], weighting="dynamic", dynamic_window_size=10).fit(_line(8))


def test_ensemble_of_seasonal_models() -> None:
    """Test an ensemble of SARIMA members end to end."""
    rng = np.random.default_rng(21)
    noise = rng.normal(size=150)
    data = np.zeros(150)
    for t in range(1, 150):
        data[t] = 0.6 * data[t - 1] + noise[t]
    data += 50.0

    members = [
        SeasonalModel(ModelConfig.create((1, 0, 0))),
        SeasonalModel(ModelConfig.create((0, 0, 1))),
    ]
    ensemble = EnsembleModel(members, weighting="performance", metric="mae").fit(data)

    assert ensemble.is_fitted
    assert ensemble.weights.sum() == pytest.approx(1.0)
    assert np.all(ensemble.weights >= 0)
    expected = ensemble.weights @ np.vstack([m.predict(5) for m in members])
    np.testing.assert_allclose(ensemble.predict(5), expected)
    assert ensemble.debug_.model_name == "ensemble"
    assert ensemble.debug_.data["members"] == ["ARIMA(1,0,0)", "ARIMA(0,0,1)"]
    assert set(ensemble.get_parameters()) == {"n_models", "weight_0", "weight_1"}
