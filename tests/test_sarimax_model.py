"""Tests for the SARIMA/SARIMAX SeasonalModel."""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from forecast_core.exceptions import (
    DidNotConvergeError,
    InsufficientDataError,
    InvalidArgumentError,
    InvalidConfigError,
    ModelNotFittedError,
)
from forecast_core.models.sarimax import SeasonalModel
from forecast_core.types import ModelConfig, TimeSeriesPoint


def _ar1(n: int, phi: float, seed: int, scale: float = 1.0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    noise = rng.normal(scale=scale, size=n)
    values = np.zeros(n)
    for t in range(1, n):
        values[t] = phi * values[t - 1] + noise[t]
    return values


def _seasonal(n: int, period: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    return 100.0 + 10.0 * np.sin(2.0 * np.pi * (t % period) / period) + rng.normal(size=n)


def test_invalid_order_raises_at_construction() -> None:
    """Test that a negative order raises InvalidConfigError when the config is built."""
    with pytest.raises(InvalidConfigError, match="non-negative"):
        ModelConfig.create((-1, 0, 0))
    with pytest.raises(InvalidConfigError):
        ModelConfig.create((1, 0, 0), [(1, 0, 0, 0)])
    with pytest.raises(InvalidConfigError, match="tolerance"):
        ModelConfig.create((1, 0, 0), tolerance=0.0)
    with pytest.raises(InvalidConfigError, match="Duplicated"):
        ModelConfig.create((1, 0, 0), exogenous=["x", "x"])


def test_config_round_trips_through_dict() -> None:
    """Test to_dict / from_dict and the human-readable description."""
    config = ModelConfig.create((2, 1, 1), [(1, 1, 0, 7), (0, 0, 1, 12)], exogenous=["promo"])
    assert ModelConfig.from_dict(config.to_dict()) == config
    assert config.describe() == "SARIMAX(2,1,1)x(1,1,0,7)x(0,0,1,12)"
    assert config.n_params == 2 + 1 + 1 + 1 + 1
    assert config.differencing_lag == 1 + 7


def test_parameter_names_follow_layout() -> None:
    """Test parameter naming for non-seasonal, seasonal and exogenous terms."""
    config = ModelConfig.create((2, 0, 1), [(1, 0, 1, 7), (2, 0, 0, 4)], exogenous=["temp"])
    model = SeasonalModel(config)
    assert model.parameter_names == (
        "ar.L1",
        "ar.L2",
        "ma.L1",
        "ar.S7.L7",
        "ma.S7.L7",
        "ar.S4.L4",
        "ar.S4.L8",
        "temp",
    )
    assert model.status == "unfit"


def test_predict_before_fit_raises() -> None:
    """Test that a fresh model refuses to predict or report diagnostics."""
    model = SeasonalModel(ModelConfig.create((1, 0, 0)))
    assert not model.is_fitted
    with pytest.raises(ModelNotFittedError):
        model.predict(3)
    with pytest.raises(ModelNotFittedError):
        model.get_diagnostics()
    with pytest.raises(ModelNotFittedError):
        model.get_parameters()


def test_fit_recovers_ar1_coefficient() -> None:
    """Test that fitting AR(1) data recovers phi within 0.15."""
    data = _ar1(300, 0.5, seed=42)
    model = SeasonalModel(ModelConfig.create((1, 0, 0))).fit(data)

    assert model.status == "fitted"
    assert model.get_parameters()["ar.L1"] == pytest.approx(0.5, abs=0.15)
    assert model.debug_ is not None
    assert model.debug_.model_name == "sarimax"
    assert "ar.L1" in model.debug_.data["parameters"]


def test_fit_recovers_ma1_coefficient() -> None:
    """Test that fitting MA(1) data recovers theta within 0.15."""
    rng = np.random.default_rng(7)
    noise = rng.normal(size=501)
    data = noise[1:] + 0.5 * noise[:-1]
    model = SeasonalModel(ModelConfig.create((0, 0, 1))).fit(data)

    assert model.get_parameters()["ma.L1"] == pytest.approx(0.5, abs=0.15)


def test_fit_is_deterministic() -> None:
    """Test that fitting the same config on the same data twice yields identical parameters."""
    data = _seasonal(120, 7, seed=1)
    config = ModelConfig.create((1, 0, 1), [(1, 0, 0, 7)])

    first = SeasonalModel(config).fit(data).get_parameters()
    second = SeasonalModel(config).fit(data).get_parameters()
    assert first == second


def test_seasonal_ar_picks_up_weekly_cycle() -> None:
    """Test that a seasonal AR term at lag 7 is strongly positive on weekly data."""
    data = _seasonal(140, 7, seed=2)
    model = SeasonalModel(ModelConfig.create((0, 0, 0), [(1, 0, 0, 7)])).fit(data)

    assert model.get_parameters()["ar.S7.L7"] > 0.5
    forecasts = model.predict(7)
    expected = 100.0 + 10.0 * np.sin(2.0 * np.pi * (np.arange(140, 147) % 7) / 7)
    np.testing.assert_allclose(forecasts, expected, atol=4.0)


def test_concrete_trending_scenario() -> None:
    """Test the short trending series with an ARIMA(1,1,0)."""
    data = [100, 102, 101, 105, 107, 104, 108, 110, 109, 113]
    model = SeasonalModel(ModelConfig.create((1, 1, 0))).fit(data)
    forecasts = model.predict(3)

    assert forecasts.shape == (3,)
    assert np.all(np.isfinite(forecasts))
    assert np.all((forecasts >= 95) & (forecasts <= 130))


def test_linear_series_is_extrapolated_exactly() -> None:
    """Test that a perfectly linear series continues its trend after differencing."""
    data = np.arange(100.0, 114.0)
    model = SeasonalModel(ModelConfig.create((1, 1, 0))).fit(data)
    np.testing.assert_allclose(model.predict(3), [114.0, 115.0, 116.0], atol=1e-8)


def test_did_not_converge_leaves_model_unfit() -> None:
    """Test that an iteration budget of one raises and keeps the previous state."""
    data = _ar1(200, 0.5, seed=3)
    model = SeasonalModel(ModelConfig.create((1, 0, 0), tolerance=1e-12, max_iterations=1))

    with pytest.raises(DidNotConvergeError):
        model.fit(data)
    assert model.status == "unfit"
    assert model.state is None


def test_failed_refit_keeps_previous_fit() -> None:
    """Test that a refit on too little data leaves the earlier fit in place."""
    config = ModelConfig.create((1, 0, 0), [(1, 1, 0, 7)])
    model = SeasonalModel(config).fit(_seasonal(100, 7, seed=4))
    before = model.get_parameters()

    with pytest.raises(InsufficientDataError):
        model.fit(_seasonal(10, 7, seed=5))
    assert model.status == "fitted"
    assert model.get_parameters() == before


def test_too_short_series_raises_insufficient_data() -> None:
    """Test the minimum length after differencing."""
    model = SeasonalModel(ModelConfig.create((3, 0, 0)))
    with pytest.raises(InsufficientDataError):
        model.fit([1.0, 2.0, 3.0])


def test_missing_values_are_rejected() -> None:
    """Test that NaN values must be interpolated before fitting."""
    with pytest.raises(InvalidArgumentError, match="missing values"):
        SeasonalModel(ModelConfig.create((1, 0, 0))).fit([1.0, np.nan, 2.0, 3.0, 4.0])


def test_input_types_give_same_fit() -> None:
    """Test that arrays, pandas Series and TimeSeriesPoints are interchangeable."""
    data = _ar1(120, 0.4, seed=6)
    start = datetime(2025, 1, 1)
    points = [TimeSeriesPoint(timestamp=start + timedelta(days=i), value=v) for i, v in enumerate(data)]
    config = ModelConfig.create((1, 0, 0))

    from_array = SeasonalModel(config).fit(data).get_parameters()
    from_series = SeasonalModel(config).fit(pd.Series(data)).get_parameters()
    from_points = SeasonalModel(config).fit(points).get_parameters()
    assert from_array == from_series == from_points


def test_predict_horizon_edge_cases() -> None:
    """Test zero and negative horizons."""
    model = SeasonalModel(ModelConfig.create((1, 0, 0))).fit(_ar1(80, 0.5, seed=8))
    assert model.predict(0).shape == (0,)
    assert model.forecast(0) == []
    with pytest.raises(InvalidArgumentError, match="non-negative"):
        model.predict(-1)


def test_forecast_intervals() -> None:
    """Test interval ordering, confidence validation and widening with the horizon."""
    walk = np.cumsum(np.random.default_rng(9).normal(size=150)) + 50.0
    model = SeasonalModel(ModelConfig.create((0, 1, 0))).fit(walk)
    points = model.forecast(5, confidence=0.9)

    assert len(points) == 5
    widths = [p.upper_bound - p.lower_bound for p in points]
    assert all(p.lower_bound < p.value < p.upper_bound for p in points)
    assert all(later > earlier for earlier, later in zip(widths, widths[1:]))
    # random walk: h-step variance grows linearly
    assert widths[3] == pytest.approx(widths[0] * 2.0, rel=1e-6)
    assert all(p.confidence == 0.9 for p in points)

    with pytest.raises(InvalidArgumentError, match="Confidence"):
        model.forecast(3, confidence=1.0)
    with pytest.raises(InvalidArgumentError, match="timestamps"):
        model.forecast(3, timestamps=[datetime(2025, 1, 1)])


def test_white_noise_interval_coverage() -> None:
    """Test that 95% intervals cover about 95% of future values of white noise."""
    rng = np.random.default_rng(10)
    model = SeasonalModel(ModelConfig.create((0, 0, 0))).fit(rng.normal(loc=5.0, size=500))
    point = model.forecast(1, confidence=0.95)[0]

    future = rng.normal(loc=5.0, size=1000)
    coverage = np.mean((future >= point.lower_bound) & (future <= point.upper_bound))
    assert coverage == pytest.approx(0.95, abs=0.03)


def test_ar1_one_step_interval_coverage() -> None:
    """Test one-step coverage of an AR(1) model over 1000 rolling predictions."""
    data = _ar1(1500, 0.6, seed=11)
    config = ModelConfig.create((1, 0, 0))
    fitted = SeasonalModel(config).fit(data[:500])

    hits = 0
    for t in range(500, 1500):
        model = SeasonalModel.restore(config, fitted.state, data[:t])
        point = model.forecast(1)[0]
        hits += point.lower_bound <= data[t] <= point.upper_bound
    assert hits / 1000 == pytest.approx(0.95, abs=0.03)


def test_restore_reproduces_predictions() -> None:
    """Test that a restored model forecasts exactly like the fitted one."""
    data = _seasonal(120, 7, seed=12)
    config = ModelConfig.create((1, 1, 0), [(1, 0, 0, 7)])
    model = SeasonalModel(config).fit(data)

    restored = SeasonalModel.restore(config, model.state, data)
    np.testing.assert_allclose(restored.predict(10), model.predict(10))
    assert restored.status == "fitted"

    with pytest.raises(InvalidArgumentError, match="do not match"):
        SeasonalModel.restore(ModelConfig.create((2, 1, 1)), model.state, data)


def test_exogenous_regressor_drives_forecast() -> None:
    """Test a SARIMAX fit on y = 3 + 2x + noise and forecasting with future x."""
    rng = np.random.default_rng(13)
    x = rng.normal(size=220)
    y = 3.0 + 2.0 * x + rng.normal(scale=0.1, size=220)
    config = ModelConfig.create((0, 0, 0), exogenous=["x"])
    model = SeasonalModel(config).fit(y[:200], exog=x[:200])

    forecasts = model.predict(20, exog=x[200:])
    np.testing.assert_allclose(forecasts, 3.0 + 2.0 * x[200:], atol=0.15)

    frame = pd.DataFrame({"value": y[:200], "x": x[:200]})
    from_frame = SeasonalModel(config).fit(frame)
    assert from_frame.get_parameters()["x"] == pytest.approx(model.get_parameters()["x"])

    with pytest.raises(InvalidArgumentError, match="future exogenous"):
        model.predict(5)
    with pytest.raises(InvalidArgumentError, match="no data"):
        SeasonalModel(config).fit(y[:200])


def test_diagnostics() -> None:
    """Test information criteria ordering and the diagnostic contents."""
    data = _ar1(200, 0.5, seed=14)
    model = SeasonalModel(ModelConfig.create((2, 0, 0))).fit(data)
    diagnostics = model.get_diagnostics()

    assert diagnostics.n_params == 2
    assert diagnostics.n_obs == len(model.residuals)
    assert diagnostics.bic >= diagnostics.aic
    assert diagnostics.aicc > diagnostics.aic
    assert diagnostics.hqic is not None
    assert diagnostics.fpe > 0
    assert [s.name for s in diagnostics.parameter_stats] == ["ar.L1", "ar.L2"]
    assert diagnostics.residual_stats.ljung_box.p_value is not None
    assert abs(diagnostics.residual_stats.mean) < 0.5


def test_bic_not_below_aic_across_configs() -> None:
    """Test BIC >= AIC for several configurations with at least eight residuals."""
    data = _seasonal(80, 7, seed=15)
    for order, seasonal in (((1, 0, 0), []), ((2, 0, 0), []), ((1, 0, 0), [(1, 0, 0, 7)])):
        diagnostics = SeasonalModel(ModelConfig.create(order, seasonal)).fit(data).get_diagnostics()
        assert diagnostics.n_obs >= 8
        assert diagnostics.bic >= diagnostics.aic


def test_fitted_values_align_with_residuals() -> None:
    """Test that fitted values plus residuals reproduce the observations."""
    data = _ar1(100, 0.5, seed=16) + 20.0
    model = SeasonalModel(ModelConfig.create((1, 1, 0))).fit(data)

    actual = model.actual_values()
    np.testing.assert_allclose(model.fitted_values() + model.residuals, actual)
    assert len(actual) == len(data) - 1 - 1
    assert "sigma2" in model.get_parameters()


def test_log_likelihood_is_reported_in_series_units() -> None:
    """Test that rescaling the series shifts the log-likelihood by n * log(scale)."""
    data = _ar1(150, 0.5, seed=17)
    config = ModelConfig.create((1, 0, 0))
    base = SeasonalModel(config).fit(data)
    scaled = SeasonalModel(config).fit(10.0 * data)

    n_obs = base.get_diagnostics().n_obs
    assert scaled.state.log_likelihood == pytest.approx(
        base.state.log_likelihood - n_obs * np.log(10.0), rel=1e-6
    )
    np.testing.assert_allclose(scaled.state.parameters, base.state.parameters, rtol=1e-6)


def test_conditioning_holds_out_leading_observations() -> None:
    """Test that conditioning shortens the scored sample without changing the layout."""
    data = _ar1(120, 0.5, seed=18)
    config = ModelConfig.create((1, 0, 0))

    model = SeasonalModel(config).fit(data, conditioning=25)
    assert model.get_diagnostics().n_obs == len(data) - 25
    assert len(model.actual_values()) == len(data) - 25

    # shorter than the model's own lag: the AR lag still applies
    assert SeasonalModel(config).fit(data, conditioning=0).get_diagnostics().n_obs == len(data) - 1

    differenced = SeasonalModel(ModelConfig.create((1, 1, 0))).fit(data, conditioning=25)
    assert differenced.get_diagnostics().n_obs == len(data) - 25

    with pytest.raises(InvalidArgumentError, match="conditioning"):
        SeasonalModel(config).fit(data, conditioning=-1)
    with pytest.raises(InsufficientDataError):
        SeasonalModel(config).fit(data, conditioning=len(data) - 1)
