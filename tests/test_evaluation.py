"""
Evaluation tests

Validates NaN-aware metrics, shape mismatch detection at aggregation time,
overlap policies and horizon-specific forecast combination.
"""

import numpy as np
import pandas as pd
import pytest

from src.forecastflow.evaluation import (ForecastMetrics, collect_forecasts,
                                         collect_predictions, combine_forecasts,
                                         combine_predictions, compute_errors,
                                         return_error)
from src.forecastflow.exceptions import ShapeMismatch
from src.forecastflow.lagged import create_lagged_df
from src.forecastflow.prediction import predict_model
from src.forecastflow.training import train_model
from src.forecastflow.windows import create_windows


def _predictions_frame():
    """Horizon 1 with windows 1 (d1, d2) and 2 (d2, d3) overlapping on d2"""
    d1, d2, d3 = pd.date_range("2024-01-01", periods=3, freq="D")
    return pd.DataFrame({
        "model": "m",
        "horizon": 1,
        "window_number": [1, 1, 2, 2],
        "window_start": [d1, d1, d2, d2],
        "window_stop": [d2, d2, d3, d3],
        "date": [d1, d2, d2, d3],
        "y": [1.0, 2.0, 2.0, 3.0],
        "y_pred": [1.0, 2.0, 4.0, 5.0],
    })


@pytest.mark.fail_loud
class TestMetricsNaNHandling:
    """Metrics mask NaN explicitly and return NaN when nothing is valid"""

    def test_rmse_nan_masked(self):
        y_true = np.array([100.0, 102.0, np.nan, 106.0])
        y_pred = np.array([99.0, 101.0, 104.0, 107.0])

        assert ForecastMetrics.rmse(y_true, y_pred) == pytest.approx(1.0)

    def test_all_nan_returns_nan(self):
        y = np.array([np.nan, np.nan])
        assert np.isnan(ForecastMetrics.mae(y, y))
        assert np.isnan(ForecastMetrics.smape(y, y))

    def test_mape_masks_zero_actuals(self):
        y_true = np.array([0.0, 100.0])
        y_pred = np.array([5.0, 110.0])
        assert ForecastMetrics.mape(y_true, y_pred) == pytest.approx(10.0)

    def test_smape_value(self):
        """|110 - 100| / ((100 + 110) / 2) = 9.52%"""
        assert ForecastMetrics.smape(np.array([100.0]), np.array([110.0])) == pytest.approx(
            100 * 10 / 105
        )

    def test_mdape_is_median(self):
        y_true = np.array([100.0, 100.0, 100.0])
        y_pred = np.array([101.0, 110.0, 150.0])
        assert ForecastMetrics.mdape(y_true, y_pred) == pytest.approx(10.0)

    def test_compute_errors_valid_count(self):
        result = compute_errors([1.0, np.nan, 3.0], [1.0, 2.0, np.nan], metrics=["mae"])
        assert result == {"mae": 0.0, "valid_count": 1}

    def test_unknown_metric_raises(self):
        with pytest.raises(ValueError, match="Unknown metrics"):
            compute_errors([1.0], [1.0], metrics=["r2"])


@pytest.mark.smoke
class TestOverlapPolicies:
    """Overlapping windows resolve deterministically"""

    def test_last_window_wins(self):
        combined = combine_predictions(_predictions_frame(), overlap_policy="last")

        assert len(combined) == 3
        assert combined["y_pred"].tolist() == [1.0, 4.0, 5.0]
        assert combined["n_windows"].tolist() == [1, 2, 1]

    def test_mean_of_windows(self):
        combined = combine_predictions(_predictions_frame(), overlap_policy="mean")

        assert combined["y_pred"].tolist() == [1.0, 3.0, 5.0]
        assert combined["y"].tolist() == [1.0, 2.0, 3.0]

    def test_unknown_policy_raises(self):
        with pytest.raises(ValueError, match="overlap_policy"):
            combine_predictions(_predictions_frame(), overlap_policy="first")


@pytest.mark.smoke
class TestReturnError:
    """Errors by window, by horizon and overall"""

    def test_error_tables(self):
        error = return_error(_predictions_frame(), metrics=["mae", "rmse"])

        by_window = error["error_by_window"]
        assert by_window["window_number"].tolist() == [1, 2]
        assert by_window["mae"].tolist() == [0.0, 2.0]
        assert "window_start" in by_window.columns

        assert error["error_by_horizon"]["mae"].iloc[0] == pytest.approx(1.0)
        assert error["error_global"]["valid_count"].iloc[0] == 4
        assert "coverage" not in error["error_global"].columns

    def test_interval_coverage_column(self):
        """Interval columns add coverage; NaN bounds leave the denominator"""
        predictions = _predictions_frame().assign(
            y_pred_lower=[0.0, 1.0, 3.0, np.nan],
            y_pred_upper=[2.0, 3.0, 5.0, 6.0],
        )
        error = return_error(predictions, metrics=["mae"])

        assert error["error_by_window"]["coverage"].tolist() == [100.0, 0.0]
        assert error["error_global"]["coverage"].iloc[0] == pytest.approx(200 / 3)
        assert error["error_global"]["valid_count"].iloc[0] == 4


@pytest.mark.smoke
class TestForecastCombination:
    """Forecast period p uses the shortest horizon model h >= p"""

    def test_shortest_horizon_selected(self):
        dates = pd.date_range("2020-01-01", periods=3, freq="MS")
        forecasts = pd.DataFrame({
            "model": "m",
            "horizon": [1, 3, 3, 3],
            "window_number": 1,
            "forecast_period": [1, 1, 2, 3],
            "date": [dates[0], dates[0], dates[1], dates[2]],
            "y_pred": [10.0, 30.0, 31.0, 32.0],
        })

        combined = combine_forecasts(forecasts)

        assert combined["forecast_period"].tolist() == [1, 2, 3]
        assert combined["horizon"].tolist() == [1, 3, 3]
        assert combined["y_pred"].tolist() == [10.0, 31.0, 32.0]

    def test_collect_forecasts_from_store(self, monthly_data):
        horizons = [1, 3]
        lagged = create_lagged_df(monthly_data, "y", horizons, range(1, 7), date_col="ds")
        windows = create_windows(lagged, 0, "2019-01-01", "2019-12-01")
        store = train_model(lagged, windows, lambda data: float(data.outcome.mean()))
        forecast_data = create_lagged_df(
            monthly_data, "y", horizons, range(1, 7), date_col="ds", mode="forecast"
        )
        predict_model(store, lambda mean, features: [mean] * len(features), forecast_data)

        forecasts = collect_forecasts(store)

        assert len(forecasts) == 1 + 3
        assert forecasts["forecast_period"].tolist() == [1, 1, 2, 3]
        assert len(combine_forecasts(forecasts)) == 3


@pytest.mark.fail_loud
class TestShapeMismatch:
    """Misaligned predictions surface at aggregation time"""

    @pytest.fixture
    def short_store(self, monthly_data):
        lagged = create_lagged_df(monthly_data, "y", [1], range(1, 4), date_col="ds")
        windows = create_windows(lagged, 0, "2019-01-01", "2019-12-01")
        store = train_model(lagged, windows, lambda data: 0.0)
        # One row short: accepted by the driver, caught when collecting
        predict_model(store, lambda artifact, features: np.zeros(len(features) - 1), lagged)
        return store, lagged

    def test_raise_policy(self, short_store):
        store, lagged = short_store
        with pytest.raises(ShapeMismatch) as exc_info:
            collect_predictions(store, lagged)

        assert exc_info.value.expected == 12
        assert exc_info.value.actual == 11

    def test_warn_policy_skips_pair(self, short_store):
        store, lagged = short_store
        predictions = collect_predictions(store, lagged, on_mismatch="warn")
        assert predictions.empty

    def test_collected_rows_carry_actuals(self, monthly_data):
        lagged = create_lagged_df(monthly_data, "y", [1], range(1, 4), date_col="ds")
        windows = create_windows(lagged, 0, "2019-01-01", "2019-12-01")
        store = train_model(lagged, windows, lambda data: 0.0, model_name="zero")
        predict_model(store, lambda artifact, features: np.zeros(len(features)), lagged)

        predictions = collect_predictions(store, lagged)

        assert len(predictions) == 12
        assert (predictions["model"] == "zero").all()
        assert predictions["y"].tolist() == monthly_data["y"].iloc[-12:].tolist()
