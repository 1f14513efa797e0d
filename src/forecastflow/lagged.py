# file: src/forecastflow/lagged.py
"""
Lagged feature tables for direct multi-horizon forecasting.

One table is built per forecast horizon. The model for horizon h may only
see values that are at least h periods old at prediction time, so each
table keeps the lookback offsets k >= h and drops the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .validate import assert_valid_time_index, infer_frequency

logger = logging.getLogger(__name__)

MODES = ("train", "forecast")


@dataclass(frozen=True, eq=False)
class LaggedDataset:
    """Feature table for one horizon plus its metadata.

    ``frame`` is indexed by the date index. In train mode it holds the
    outcome column followed by the feature columns; in forecast mode it holds
    one row per forecast period and only the feature columns.
    """
    horizon: int
    frame: pd.DataFrame
    outcome_col: str
    feature_names: Tuple[str, ...]
    lookback: Tuple[int, ...]
    mode: str = "train"
    frequency: Optional[str] = None

    @property
    def date_index(self) -> pd.Index:
        return self.frame.index

    @property
    def n_rows(self) -> int:
        return len(self.frame)

    @property
    def features(self) -> pd.DataFrame:
        """Feature columns only (never the outcome)"""
        return self.frame[list(self.feature_names)]

    @property
    def outcome(self) -> pd.Series:
        if self.outcome_col not in self.frame.columns:
            raise ValueError(f"{self.mode} dataset has no outcome column {self.outcome_col}")
        return self.frame[self.outcome_col]

    def _bounds_mask(self, start, stop) -> np.ndarray:
        index = self.date_index
        if isinstance(index, pd.DatetimeIndex):
            start, stop = pd.Timestamp(start), pd.Timestamp(stop)
        return np.asarray((index >= start) & (index <= stop))

    def rows_between(self, start, stop) -> "LaggedDataset":
        """Rows with start <= date <= stop, same metadata"""
        mask = self._bounds_mask(start, stop)
        return replace(self, frame=self.frame.loc[mask].copy())

    def rows_outside(self, start, stop) -> "LaggedDataset":
        """Rows with date < start or date > stop, same metadata"""
        mask = self._bounds_mask(start, stop)
        return replace(self, frame=self.frame.loc[~mask].copy())

    @property
    def info(self) -> Dict:
        index = self.date_index
        return {
            "horizon": self.horizon,
            "mode": self.mode,
            "n_rows": self.n_rows,
            "n_features": len(self.feature_names),
            "start": str(index[0]) if len(index) else None,
            "stop": str(index[-1]) if len(index) else None,
            "lookback": list(self.lookback),
            "frequency": self.frequency,
        }


def _positive_ints(values: Iterable[int], name: str) -> List[int]:
    values = [int(v) for v in values]
    if not values:
        raise ValueError(f"{name} must not be empty")
    bad = [v for v in values if v < 1]
    if bad:
        raise ValueError(f"{name} must be positive integers, got {bad}")
    if len(set(values)) != len(values):
        raise ValueError(f"{name} contains duplicates: {values}")
    return values


def _build_index(
    frame: pd.DataFrame,
    date_col: Optional[str],
    dates: Optional[Sequence],
) -> pd.Index:
    if date_col is not None and dates is not None:
        raise ValueError("Pass either date_col or dates, not both")

    if date_col is not None:
        if date_col not in frame.columns:
            raise ValueError(f"Missing date column: {date_col}")
        index = pd.DatetimeIndex(pd.to_datetime(frame[date_col], errors="raise"))
        return index.rename(date_col)

    if dates is not None:
        if len(dates) != len(frame):
            raise ValueError(f"dates has {len(dates)} entries, data has {len(frame)} rows")
        index = pd.Index(dates)
        if not pd.api.types.is_numeric_dtype(index):
            index = pd.DatetimeIndex(pd.to_datetime(index, errors="raise"))
        return index.rename("date")

    return pd.RangeIndex(1, len(frame) + 1, name="index")


def _forecast_index(index: pd.Index, horizon: int, frequency: Optional[str]) -> pd.Index:
    if isinstance(index, pd.DatetimeIndex):
        future = pd.date_range(start=index[-1], periods=horizon + 1, freq=frequency)[1:]
        return future.rename(index.name)
    return pd.Index([index[-1] + p for p in range(1, horizon + 1)], name=index.name)


def create_lagged_df(
    data: pd.DataFrame,
    outcome_col: str,
    horizons: Iterable[int],
    lookback: Iterable[int],
    date_col: Optional[str] = None,
    dates: Optional[Sequence] = None,
    frequency: Optional[str] = None,
    mode: str = "train",
    dynamic_features: Iterable[str] = (),
    predictor_cols: Optional[Iterable[str]] = None,
) -> Dict[int, LaggedDataset]:
    """
    Build one lagged feature table per forecast horizon.

    Args:
        data: Time-ordered table, one row per period
        outcome_col: Column to forecast
        horizons: Forecast horizons (periods ahead), kept in the given order
        lookback: Lag offsets; horizon h uses only offsets >= h
        date_col: Column holding the dates (dropped from the features)
        dates: Dates passed separately (alternative to date_col)
        frequency: Pandas offset alias; inferred for datetime indexes if None
        mode: "train" (historical rows) or "forecast" (future rows)
        dynamic_features: Columns copied without lagging (train mode only)
        predictor_cols: Columns to lag; defaults to every non-dynamic column

    Returns:
        Dictionary mapping horizon to LaggedDataset
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}")
    if outcome_col not in data.columns:
        raise ValueError(f"Missing outcome column: {outcome_col}")

    horizons = _positive_ints(horizons, "horizons")
    lookback = sorted(_positive_ints(lookback, "lookback"))
    dynamic_features = list(dynamic_features)

    frame = data.reset_index(drop=True)
    index = _build_index(frame, date_col, dates)
    if date_col is not None:
        frame = frame.drop(columns=[date_col])

    # Order/duplicate gates first, then gaps against the frequency
    assert_valid_time_index(index)
    if isinstance(index, pd.DatetimeIndex):
        if frequency is None:
            frequency = infer_frequency(index)
        assert_valid_time_index(index, frequency=frequency)

    missing = [col for col in dynamic_features if col not in frame.columns]
    if missing:
        raise ValueError(f"Missing dynamic feature columns: {missing}")
    if mode == "forecast" and dynamic_features:
        raise ValueError("Dynamic features have no future values; not supported in forecast mode")

    if predictor_cols is None:
        predictor_cols = [c for c in frame.columns if c not in dynamic_features]
    else:
        predictor_cols = list(predictor_cols)
        missing = [col for col in predictor_cols if col not in frame.columns]
        if missing:
            raise ValueError(f"Missing predictor columns: {missing}")
    if outcome_col not in predictor_cols:
        predictor_cols = [outcome_col] + predictor_cols

    n = len(frame)
    lagged_by_horizon = {}

    for horizon in horizons:
        usable = tuple(k for k in lookback if k >= horizon)
        if not usable:
            raise ValueError(
                f"No lookback offsets >= horizon {horizon} (lookback={lookback})"
            )

        if mode == "train":
            lags = {
                f"{col}_lag_{k}": frame[col].shift(k)
                for col in predictor_cols
                for k in usable
            }
            table = pd.concat(
                [frame[[outcome_col]], pd.DataFrame(lags), frame[dynamic_features]],
                axis=1
            )
            table.index = index
        else:
            rows = []
            for period in range(1, horizon + 1):
                row = {}
                for col in predictor_cols:
                    values = frame[col].to_numpy()
                    for k in usable:
                        pos = n - 1 + period - k
                        row[f"{col}_lag_{k}"] = values[pos] if pos >= 0 else np.nan
                rows.append(row)
            table = pd.DataFrame(rows, index=_forecast_index(index, horizon, frequency))

        feature_names = tuple(c for c in table.columns if c != outcome_col)

        lagged_by_horizon[horizon] = LaggedDataset(
            horizon=horizon,
            frame=table,
            outcome_col=outcome_col,
            feature_names=feature_names,
            lookback=usable,
            mode=mode,
            frequency=frequency,
        )
        logger.debug(
            f"Horizon {horizon}: {len(table)} rows, {len(feature_names)} features"
        )

    logger.info(
        f"Built {len(lagged_by_horizon)} {mode} lagged datasets "
        f"(horizons={horizons}, max lag={max(lookback)})"
    )
    return lagged_by_horizon
