"""
Custom model functions in the horizon x window workflow

Trains a user-defined random forest per (horizon, window), predicts the
validation windows, forecasts ahead and saves the error table and plots.

Usage:
    python scripts/custom_model_example.py \
        --input data/series.csv \
        --output artifacts/custom_model \
        --horizons 3 12 \
        --n-tree 50
"""

import argparse
import logging
from pathlib import Path

import pandas as pd
from sklearn.ensemble import RandomForestRegressor

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from src.forecastflow.evaluation import (collect_forecasts, collect_predictions,
                                         combine_forecasts, return_error)
from src.forecastflow.io_utils import read_table, write_table
from src.forecastflow.lagged import create_lagged_df
from src.forecastflow.plotting import plot_error, plot_predictions, save_figure
from src.forecastflow.prediction import predict_model
from src.forecastflow.training import train_model
from src.forecastflow.windows import create_windows


def model_function(data, my_outcome_col, n_tree=(50, 100)):
    """Only the first n_tree value is used; the horizon rides along as meta_data"""
    frame = data.frame.dropna()
    model = RandomForestRegressor(n_estimators=n_tree[0], random_state=224)
    model.fit(frame[list(data.feature_names)], frame[my_outcome_col])
    return {"model": model, "n_tree": n_tree[0], "meta_data": data.horizon}


def prediction_function(model, data_features):
    data_features = data_features.fillna(data_features.median())
    return pd.DataFrame({"y_pred": model["model"].predict(data_features)})


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Custom model functions example")
    parser.add_argument("--input", type=str, required=True, help="CSV/parquet with ds and y columns")
    parser.add_argument("--output", type=str, default="artifacts/custom_model", help="Output directory")
    parser.add_argument("--outcome", type=str, default="y", help="Outcome column")
    parser.add_argument("--horizons", type=int, nargs="+", default=[3, 12], help="Forecast horizons")
    parser.add_argument("--lookback-max", type=int, default=15, help="Use lags 1..N")
    parser.add_argument("--window-length", type=int, default=0, help="Rows per validation window")
    parser.add_argument("--window-start", type=str, default=None, help="First validation date")
    parser.add_argument("--n-tree", type=int, nargs="+", default=[50, 100], help="Trees (first is used)")
    args = parser.parse_args()

    output_dir = Path(args.output)
    data = read_table(Path(args.input))
    lookback = range(1, args.lookback_max + 1)

    lagged = create_lagged_df(data, args.outcome, args.horizons, lookback, date_col="ds")
    windows = create_windows(lagged, window_length=args.window_length, window_start=args.window_start)

    store = train_model(
        lagged, windows, model_function,
        model_name="custom_rf", my_outcome_col=args.outcome, n_tree=tuple(args.n_tree)
    )

    predict_model(store, prediction_function, lagged)
    predictions = collect_predictions(store, lagged)
    error = return_error(predictions)
    logger.info(f"\nError by horizon:\n{error['error_by_horizon']}")

    forecast_data = create_lagged_df(
        data, args.outcome, args.horizons, lookback, date_col="ds", mode="forecast"
    )
    predict_model(store, prediction_function, forecast_data)
    forecasts = combine_forecasts(collect_forecasts(store))

    write_table(predictions, output_dir / "predictions.parquet")
    write_table(forecasts, output_dir / "forecasts.parquet")
    save_figure(plot_predictions(predictions), output_dir / "predictions.png")
    save_figure(plot_error(error["error_by_horizon"]), output_dir / "error_by_horizon.png")
    logger.info(f"Saved outputs to {output_dir}")
    return 0


if __name__ == "__main__":
    exit(main())
