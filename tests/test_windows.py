"""
Validation window tests

Validates window layout (length, skip, truncation), shared windows across
horizons and the ordering / bounds gates.
"""

import pandas as pd
import pytest

from src.forecastflow.lagged import create_lagged_df
from src.forecastflow.windows import (Window, create_windows, serialize_windows,
                                      validate_windows)


@pytest.fixture
def lagged(monthly_data):
    return create_lagged_df(monthly_data, "y", [1, 3, 12], range(1, 16), date_col="ds")


@pytest.mark.smoke
class TestWindowLayout:
    """Windows tile [window_start, window_stop] in date order"""

    def test_yearly_windows(self, lagged):
        """Two 12-month windows over 2018-2019"""
        windows = create_windows(lagged, 12, "2018-01-01", "2019-12-01")

        assert list(windows) == [1, 3, 12]
        assert [w.window_id for w in windows[1]] == [1, 2]
        assert windows[1][0] == Window(1, pd.Timestamp("2018-01-01"), pd.Timestamp("2018-12-01"))
        assert windows[1][1] == Window(2, pd.Timestamp("2019-01-01"), pd.Timestamp("2019-12-01"))

    def test_same_windows_every_horizon(self, lagged):
        """Window N means the same dates for every horizon"""
        windows = create_windows(lagged, 12, "2018-01-01", "2019-12-01")

        assert windows[1] == windows[3] == windows[12]
        assert windows[1] is not windows[3]

    def test_zero_length_single_window(self, lagged):
        """window_length=0 -> one window over the full range"""
        windows = create_windows(lagged, 0, "2019-01-01", "2019-12-01")

        assert len(windows[3]) == 1
        assert windows[3][0].start == pd.Timestamp("2019-01-01")
        assert windows[3][0].stop == pd.Timestamp("2019-12-01")

    def test_defaults_span_all_data(self, lagged):
        """No bounds -> first to last date"""
        windows = create_windows(lagged)

        assert windows[1][0].start == pd.Timestamp("2010-01-01")
        assert windows[1][0].stop == pd.Timestamp("2019-12-01")

    def test_last_window_truncated(self, lagged):
        """24 months in windows of 10 -> 10, 10, 4"""
        windows = create_windows(lagged, 10, "2018-01-01", "2019-12-01")

        assert len(windows[1]) == 3
        assert windows[1][2].start == pd.Timestamp("2019-09-01")
        assert windows[1][2].stop == pd.Timestamp("2019-12-01")

    def test_skip_between_windows(self, lagged):
        """length 6, skip 6 -> Jan-Jun of each year"""
        windows = create_windows(lagged, 6, "2018-01-01", "2019-12-01", skip=6)

        assert [(w.start.month, w.stop.month) for w in windows[1]] == [(1, 6), (1, 6)]
        assert windows[1][1].start.year == 2019

    def test_bounds_clipped_to_data(self, lagged):
        """A stop past the data ends at the last date"""
        windows = create_windows(lagged, 0, "2019-06-01", "2025-01-01")

        assert windows[1][0].stop == pd.Timestamp("2019-12-01")

    def test_serialize(self, lagged):
        windows = create_windows(lagged, 12, "2018-01-01", "2019-12-01")
        serialized = serialize_windows(windows)

        assert serialized["3"]["n_windows"] == 2
        assert serialized["3"]["windows"][0]["window_id"] == 1
        assert serialized["3"]["windows"][0]["start"].startswith("2018-01-01")


@pytest.mark.fail_loud
class TestWindowGates:
    """Invalid window requests raise"""

    def test_start_after_stop_raises(self, lagged):
        with pytest.raises(ValueError):
            create_windows(lagged, 12, "2019-12-01", "2018-01-01")

    def test_range_outside_data_raises(self, lagged):
        with pytest.raises(ValueError, match="outside"):
            create_windows(lagged, 12, "2030-01-01", "2031-01-01")

    def test_range_between_dates_raises(self, lagged):
        """Bounds inside the data but between two month starts select nothing"""
        with pytest.raises(ValueError, match="No dates between"):
            create_windows(lagged, 0, "2015-01-10", "2015-01-20")

    def test_window_rejects_reversed_bounds(self):
        with pytest.raises(ValueError):
            Window(1, pd.Timestamp("2020-02-01"), pd.Timestamp("2020-01-01"))

    def test_forecast_data_rejected(self, monthly_data):
        forecast = create_lagged_df(
            monthly_data, "y", [1], [1, 2], date_col="ds", mode="forecast"
        )
        with pytest.raises(ValueError, match="train-mode"):
            create_windows(forecast, 1)

    def test_validate_detects_overlap(self):
        windows = {1: [Window(1, 1, 5), Window(2, 5, 8)]}
        assert validate_windows(windows) == {1: False}

    def test_validate_accepts_generated_windows(self, lagged):
        windows = create_windows(lagged, 12, "2018-01-01", "2019-12-01")
        assert all(validate_windows(windows).values())
