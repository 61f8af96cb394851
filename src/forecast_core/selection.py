"""Automatic model selection over a grid of SARIMA(X) configurations.

Candidates are built from the non-seasonal orders and every subset of the
detected seasonal periods, fitted (optionally in parallel batches), ranked by
an information criterion or cross-validated RMSE, and the best configuration
is refit on the full data.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from itertools import combinations, product
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from forecast_core.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CV_FOLDS,
    DEFAULT_MAX_DIFFERENCING,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MAX_ORDER,
    DEFAULT_MAX_SEASONAL_DIFFERENCING,
    DEFAULT_MAX_SEASONAL_ORDER,
    DEFAULT_TOLERANCE,
    MAX_SEASONAL_PERIODS,
)
from forecast_core.exceptions import (
    DidNotConvergeError,
    InsufficientDataError,
    InvalidArgumentError,
    InvalidConfigError,
    NoViableModelError,
)
from forecast_core.models.sarimax import SeasonalModel, series_to_array
from forecast_core.stats.descriptive import acf
from forecast_core.stats.hypothesis import UNDEFINED, adf_test, kruskal_wallis
from forecast_core.stats.spectral import find_seasonal_peaks
from forecast_core.types import ExogLike, ModelConfig, ModelEvaluation, SeriesLike, StatTestResult
from forecast_core.validation import (
    CrossValidationOptions,
    calculate_metrics,
    cross_validate,
    split_series_and_exog,
)

logger = logging.getLogger(__name__)

CRITERIA = ("aic", "bic", "aicc", "hqic", "cv")
EXECUTORS = ("thread", "process")

# Candidate failures that drop the candidate instead of aborting the search
CANDIDATE_ERRORS = (
    DidNotConvergeError,
    InvalidConfigError,
    InsufficientDataError,
    InvalidArgumentError,
)


@dataclass(frozen=True)
class SelectionOptions:
    """Search space and ranking of find_best_model.

    Attributes:
        max_order: Largest non-seasonal p and q.
        max_seasonal_order: Largest seasonal P and Q.
        max_d: Largest regular differencing order.
        max_seasonal_d: Largest seasonal differencing order.
        seasonal_periods: Periods to consider; detected from the data when None.
        max_seasonal_periods: Cap on detected periods.
        criterion: "aic", "bic", "aicc", "hqic" or "cv" (cross-validated RMSE).
        cross_validation_folds: Folds used when criterion is "cv".
        parallel: Evaluate candidates concurrently. Fitting is mostly Python-level
            code that holds the GIL, so the thread executor overlaps little
            work; use executor="process" for CPU-bound speedup on large grids.
        executor: "thread" (default) or "process" pool used when parallel.
        batch_size: Candidates submitted per batch.
        max_workers: Pool size (defaults to batch_size).
        exogenous: Names of exogenous regressors added to every candidate.
        tolerance: Optimizer tolerance of every candidate.
        max_iterations: Optimizer iteration budget of every candidate.
    """

    max_order: int = DEFAULT_MAX_ORDER
    max_seasonal_order: int = DEFAULT_MAX_SEASONAL_ORDER
    max_d: int = DEFAULT_MAX_DIFFERENCING
    max_seasonal_d: int = DEFAULT_MAX_SEASONAL_DIFFERENCING
    seasonal_periods: Optional[Tuple[int, ...]] = None
    max_seasonal_periods: int = MAX_SEASONAL_PERIODS
    criterion: str = "aic"
    cross_validation_folds: int = DEFAULT_CV_FOLDS
    parallel: bool = True
    executor: str = "thread"
    batch_size: int = DEFAULT_BATCH_SIZE
    max_workers: Optional[int] = None
    exogenous: Tuple[str, ...] = ()
    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS

    def __post_init__(self) -> None:
        if self.criterion not in CRITERIA:
            raise InvalidConfigError(f"criterion must be one of {CRITERIA}, got {self.criterion!r}")
        if self.executor not in EXECUTORS:
            raise InvalidConfigError(f"executor must be one of {EXECUTORS}, got {self.executor!r}")
        for name in ("max_order", "max_seasonal_order", "max_d", "max_seasonal_d", "max_seasonal_periods"):
            if getattr(self, name) < 0:
                raise InvalidConfigError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.batch_size < 1:
            raise InvalidConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigError(f"max_workers must be positive, got {self.max_workers}")
        if self.cross_validation_folds < 2:
            raise InvalidConfigError(
                f"cross_validation_folds must be at least 2, got {self.cross_validation_folds}"
            )
        if self.seasonal_periods is not None:
            periods = tuple(int(p) for p in self.seasonal_periods)
            if any(p < 2 for p in periods):
                raise InvalidConfigError(f"Seasonal periods must be at least 2, got {periods}")
            object.__setattr__(self, "seasonal_periods", periods)
        object.__setattr__(self, "exogenous", tuple(self.exogenous))


@dataclass
class SelectionResult:
    """Outcome of find_best_model.

    Attributes:
        best_model: Best configuration fitted on the full data.
        evaluation: Evaluation of the best configuration.
        search_results: All successful evaluations, ranked best first.
        failures: Dropped candidates, description -> error message.
    """

    best_model: SeasonalModel
    evaluation: ModelEvaluation
    search_results: List[ModelEvaluation]
    failures: Dict[str, str] = field(default_factory=dict)


def detect_seasonal_periods(data: SeriesLike, max_periods: int = MAX_SEASONAL_PERIODS) -> List[int]:
    """Seasonal periods confirmed by both the periodogram and the ACF.

    A periodogram peak with period m (2 <= m <= n / 2) is kept when the sample
    autocorrelation at lag m exceeds the 95% white-noise band 1.96 / sqrt(n).

    Returns:
        At most max_periods periods, strongest spectral peak first.
    """
    values, _ = series_to_array(data)
    n = values.size
    if max_periods == 0 or n < 4:
        return []
    threshold = 1.96 / math.sqrt(n)
    correlations = acf(values, n // 2)

    periods = []
    for period in find_seasonal_peaks(values):
        if 2 <= period <= n // 2 and correlations[period] > threshold:
            periods.append(period)
            if len(periods) >= max_periods:
                break
    logger.debug(f"Detected seasonal periods: {periods}")
    return periods


def generate_candidate_configs(
    options: SelectionOptions, periods: Sequence[int]
) -> List[ModelConfig]:
    """Cartesian product of non-seasonal orders and seasonal choices.

    Every subset of ``periods`` is combined with every (P, D, Q) per chosen
    period; all-zero seasonal orders are omitted since they duplicate the
    subset without that period.
    """
    orders = list(
        product(
            range(options.max_order + 1),
            range(options.max_d + 1),
            range(options.max_order + 1),
        )
    )
    seasonal_choices = [
        choice
        for choice in product(
            range(options.max_seasonal_order + 1),
            range(options.max_seasonal_d + 1),
            range(options.max_seasonal_order + 1),
        )
        if any(choice)
    ]

    subsets: List[Tuple[int, ...]] = [()]
    for size in range(1, len(periods) + 1):
        subsets.extend(combinations(periods, size))

    candidates = []
    for order in orders:
        for subset in subsets:
            for choices in product(seasonal_choices, repeat=len(subset)):
                seasonal = tuple((*choice, period) for choice, period in zip(choices, subset))
                candidates.append(
                    ModelConfig(
                        order=order,
                        seasonal_orders=seasonal,
                        tolerance=options.tolerance,
                        max_iterations=options.max_iterations,
                        exogenous=options.exogenous,
                    )
                )
    return candidates


def evaluate_candidate(
    config: ModelConfig,
    values: np.ndarray,
    exog: Optional[np.ndarray],
    options: SelectionOptions,
    seasonality_test: StatTestResult = UNDEFINED,
    stationarity_test: StatTestResult = UNDEFINED,
    conditioning: int = 0,
) -> ModelEvaluation:
    """Fit one candidate and compute its criteria.

    ``conditioning`` leading observations are held out of the likelihood so
    candidates fitted with the same value are scored on the same sample.

    Raises:
        Any error from fitting; find_best_model decides which ones drop the candidate.
    """
    model = SeasonalModel(config).fit(values, exog=exog, conditioning=conditioning)
    diagnostics = model.get_diagnostics()

    cross_validation = None
    if options.criterion == "cv":
        cross_validation = cross_validate(
            config,
            values,
            CrossValidationOptions(folds=options.cross_validation_folds),
            exog=exog,
        )
        rmse = cross_validation.metrics.rmse
        mae = cross_validation.metrics.mae
        mape = cross_validation.metrics.mape
    else:
        metrics = calculate_metrics(model.actual_values(), model.fitted_values())
        rmse, mae, mape = metrics.rmse, metrics.mae, metrics.mape

    return ModelEvaluation(
        config=config,
        aic=diagnostics.aic,
        bic=diagnostics.bic,
        aicc=diagnostics.aicc,
        hqic=diagnostics.hqic,
        fpe=diagnostics.fpe,
        rmse=rmse,
        mae=mae,
        mape=mape,
        seasonality_test=seasonality_test,
        stationarity_test=stationarity_test,
        cross_validation=cross_validation,
        n_obs=diagnostics.n_obs,
    )


def conditioning_length(config: ModelConfig) -> int:
    """Raw observations a candidate needs before its first residual."""
    ar_lags = [config.order.p] + [s.order[0] * s.period for s in config.seasonal_orders]
    return config.differencing_lag + max(ar_lags)


def common_conditioning(candidates: Sequence[ModelConfig], n: int) -> int:
    """Longest conditioning among candidates that can still be estimated on n values."""
    feasible = [
        conditioning_length(c)
        for c in candidates
        if conditioning_length(c) + c.n_params + 1 <= n
    ]
    return max(feasible, default=0)


def _evaluate_safely(
    config: ModelConfig,
    values: np.ndarray,
    exog: Optional[np.ndarray],
    options: SelectionOptions,
    seasonality_test: StatTestResult,
    stationarity_test: StatTestResult,
    conditioning: int,
) -> Tuple[ModelConfig, Optional[ModelEvaluation], Optional[str]]:
    try:
        evaluation = evaluate_candidate(
            config, values, exog, options, seasonality_test, stationarity_test, conditioning
        )
    except CANDIDATE_ERRORS as e:
        logger.warning(f"Dropped candidate {config.describe()}: {e}")
        return config, None, str(e)
    logger.debug(f"{config.describe()}: {options.criterion}={evaluation.criterion(options.criterion)}")
    return config, evaluation, None


def _make_executor(options: SelectionOptions) -> Executor:
    workers = options.max_workers or options.batch_size
    if options.executor == "process":
        return ProcessPoolExecutor(max_workers=workers)
    return ThreadPoolExecutor(max_workers=workers)


def rank_evaluations(evaluations: Sequence[ModelEvaluation], criterion: str) -> List[ModelEvaluation]:
    """Sort ascending by criterion; undefined values rank last, ties keep input order."""

    def key(evaluation: ModelEvaluation) -> Tuple[bool, float]:
        value = evaluation.criterion(criterion)
        if value is None or not math.isfinite(value):
            return (True, 0.0)
        return (False, value)

    return sorted(evaluations, key=key)


def find_best_model(
    data: SeriesLike,
    options: Optional[SelectionOptions] = None,
    exog: Optional[ExogLike] = None,
) -> SelectionResult:
    """Search the configuration grid and return the best fitted model.

    Args:
        data: Historical series.
        options: Search options; defaults to SelectionOptions().
        exog: Exogenous regressors when options.exogenous is set.

    Returns:
        SelectionResult with the best model refit on the full data.

    Raises:
        NoViableModelError: If every candidate failed.
    """
    options = options or SelectionOptions()
    template = ModelConfig(exogenous=options.exogenous)
    values, matrix = split_series_and_exog(template, data, exog)

    if options.seasonal_periods is not None:
        periods = list(options.seasonal_periods)
    else:
        periods = detect_seasonal_periods(values, options.max_seasonal_periods)

    seasonality_test = kruskal_wallis(values, periods[0]) if periods else UNDEFINED
    stationarity_test = adf_test(values)

    candidates = generate_candidate_configs(options, periods)
    conditioning = common_conditioning(candidates, values.shape[0])
    logger.info(
        f"Evaluating {len(candidates)} candidate models (periods={periods}, "
        f"criterion={options.criterion}, conditioning={conditioning}, "
        f"parallel={options.parallel}, executor={options.executor})"
    )

    evaluate = partial(
        _evaluate_safely,
        values=values,
        exog=matrix,
        options=options,
        seasonality_test=seasonality_test,
        stationarity_test=stationarity_test,
        conditioning=conditioning,
    )

    outcomes = []
    if options.parallel:
        with _make_executor(options) as executor:
            for start in range(0, len(candidates), options.batch_size):
                batch = candidates[start : start + options.batch_size]
                outcomes.extend(executor.map(evaluate, batch))
    else:
        outcomes = [evaluate(config) for config in candidates]

    evaluations = [evaluation for _, evaluation, _ in outcomes if evaluation is not None]
    failures = {config.describe(): error for config, _, error in outcomes if error is not None}

    if not evaluations:
        raise NoViableModelError(
            f"All {len(candidates)} candidate models failed", failures=failures
        )

    ranked = rank_evaluations(evaluations, options.criterion)
    best = ranked[0]
    best_model = SeasonalModel(best.config).fit(values, exog=matrix)

    logger.info(
        f"Selected {best.config.describe()} ({options.criterion}="
        f"{best.criterion(options.criterion)}) from {len(evaluations)} fitted candidates, "
        f"{len(failures)} dropped"
    )
    return SelectionResult(
        best_model=best_model,
        evaluation=best,
        search_results=ranked,
        failures=failures,
    )
