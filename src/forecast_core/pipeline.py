"""Command-line forecasting pipeline.

This module trains a seasonal model on a CSV series and prints (or writes)
the forecast with its confidence intervals.

Usage:
    python -m forecast_core.pipeline --file data/sales.csv --horizon 14
    python -m forecast_core.pipeline --file data/sales.csv --order 1 1 0 --seasonal 1 1 0 7
    python -m forecast_core.pipeline --file data/sales.csv --auto --output forecast.csv
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from forecast_core.api import ForecastingService, ForecastOptions, TrainingOptions
from forecast_core.config import DEFAULT_CONFIDENCE
from forecast_core.data.loaders import load_series_csv
from forecast_core.types import ForecastResult, ModelConfig

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train a seasonal model and forecast a CSV series")
    parser.add_argument(
        "--file",
        type=str,
        required=True,
        help="CSV with 'timestamp' and 'value' columns (other columns are exogenous regressors)",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=7,
        help="Number of steps to forecast (default: 7)",
    )
    parser.add_argument(
        "--order",
        type=int,
        nargs=3,
        metavar=("P", "D", "Q"),
        default=[1, 0, 0],
        help="Non-seasonal order p d q (default: 1 0 0)",
    )
    parser.add_argument(
        "--seasonal",
        type=int,
        nargs=4,
        action="append",
        metavar=("P", "D", "Q", "M"),
        default=None,
        help="Seasonal order P D Q m; repeat for several periods",
    )
    parser.add_argument(
        "--auto",
        action="store_true",
        help="Search for the best configuration instead of using --order/--seasonal",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        default=DEFAULT_CONFIDENCE,
        help=f"Prediction interval coverage (default: {DEFAULT_CONFIDENCE})",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the forecast to this CSV file",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def config_from_args(args: argparse.Namespace, exogenous: Sequence[str]) -> ModelConfig:
    """Build the ModelConfig described by the command-line orders."""
    return ModelConfig.create(
        order=args.order,
        seasonal_orders=[tuple(values) for values in (args.seasonal or [])],
        exogenous=exogenous,
    )


def format_forecast(result: ForecastResult) -> str:
    """Human-readable forecast table for console output."""
    if not result.points:
        return "No forecasts available."

    lines = []
    confidence = result.metadata.get("confidence", DEFAULT_CONFIDENCE)
    lines.append(f"Forecast - {result.metadata.get('model', '')}")
    lines.append("=" * 60)
    lines.append(f"{'step':>4}  {'timestamp':<20} {'value':>12} {'lower':>12} {'upper':>12}")
    for step, point in enumerate(result.points, start=1):
        stamp = str(point.timestamp) if point.timestamp is not None else "-"
        lines.append(
            f"{step:>4}  {stamp:<20} {point.value:>12.4f} {point.lower_bound:>12.4f} {point.upper_bound:>12.4f}"
        )
    lines.append("")
    lines.append(f"Intervals at {confidence:.0%} confidence")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> ForecastResult:
    """Run the forecasting pipeline from the command line."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("=" * 60)
    print("Forecasting Pipeline")
    print("=" * 60)
    print(f"Data file: {args.file}")
    print(f"Horizon: {args.horizon} steps")
    print()

    try:
        print("[1/3] Loading series data...")
        df = load_series_csv(args.file)
        exogenous = [col for col in df.columns if col not in ("timestamp", "value")]
        print(f"[OK] Loaded {len(df)} observations ({df['timestamp'].min()} to {df['timestamp'].max()})")
        if exogenous:
            print(f"[OK] Exogenous regressors: {', '.join(exogenous)}")
        print()

        service = ForecastingService(default_confidence=args.confidence)
        config = config_from_args(args, exogenous)
        model_id = service.initialize_model(config, metadata={"source": str(args.file)})

        mode = "automatic selection" if args.auto else config.describe()
        print(f"[2/3] Training model ({mode})...")
        training = service.train_model(model_id, df, TrainingOptions(auto_select=args.auto))
        criteria = training.diagnostics.information_criteria
        print(f"[OK] Trained {training.config.describe()}")
        print(f"[OK] AIC={criteria['aic']:.2f} BIC={criteria['bic']:.2f}")
        print()

        if exogenous:
            # Future regressors are unknown from the CSV alone; hold the last row.
            last_row = df[exogenous].iloc[-1].to_dict()
            future_exog = [dict(last_row) for _ in range(args.horizon)]
        else:
            future_exog = None

        print(f"[3/3] Forecasting {args.horizon} steps...")
        result = service.generate_forecast(
            model_id,
            args.horizon,
            ForecastOptions(confidence=args.confidence, exog=future_exog),
        )
        print(f"[OK] Generated {len(result.points)} forecast points")
        print()

        print(format_forecast(result))
        print()

        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            result.to_frame().to_csv(output_path, index=False)
            print(f"[OK] Forecast written to {output_path}")

        print("=" * 60)
        print("[OK] Pipeline completed successfully!")
        print("=" * 60)
        return result

    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n[ERROR] Pipeline failed: {e}")
        raise


def cli() -> None:
    """Console-script entry point (exit status 0 on success)."""
    main()


if __name__ == "__main__":
    cli()
