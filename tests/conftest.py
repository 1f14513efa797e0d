import numpy as np
import pandas as pd
import pytest


def make_monthly_data(n_periods: int = 120, seed: int = 42) -> pd.DataFrame:
    """Monthly series with trend + yearly seasonality and one extra predictor"""
    rng = np.random.default_rng(seed)
    t = np.arange(n_periods)
    return pd.DataFrame({
        "ds": pd.date_range("2010-01-01", periods=n_periods, freq="MS"),
        "y": 100 + 0.5 * t + 10 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 2, n_periods),
        "x": 50 + rng.normal(0, 5, n_periods),
    })


@pytest.fixture
def monthly_data() -> pd.DataFrame:
    return make_monthly_data()
