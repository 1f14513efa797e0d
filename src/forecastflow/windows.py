"""
Validation windows over the lagged datasets.

A window is a contiguous slice of the date index held out for validation.
Windows are laid out once on the shared date index and handed to every
horizon, so window N means the same dates for every horizon.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from .lagged import LaggedDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Window:
    """Represents a single validation window"""
    window_id: int
    start: Any
    stop: Any

    def __post_init__(self):
        """Validate ordering"""
        if self.start > self.stop:
            raise ValueError(
                f"Window {self.window_id}: start ({self.start}) > stop ({self.stop})"
            )

    @property
    def info(self) -> Dict:
        """Serialize window info"""
        return {
            "window_id": self.window_id,
            "start": str(self.start),
            "stop": str(self.stop),
        }


def _coerce_bound(index: pd.Index, value):
    if isinstance(index, pd.DatetimeIndex):
        bound = pd.Timestamp(value)
        if index.tz is not None and bound.tzinfo is None:
            bound = bound.tz_localize(index.tz)
        return bound
    if pd.api.types.is_integer_dtype(index):
        return int(value)
    return value


def create_windows(
    lagged: Dict[int, LaggedDataset],
    window_length: int = 0,
    window_start=None,
    window_stop=None,
    skip: int = 0
) -> Dict[int, List[Window]]:
    """
    Partition the shared date index into validation windows

    Args:
        lagged: Train-mode datasets from create_lagged_df
        window_length: Rows per window; 0 means one window over the whole range
        window_start: First date eligible for validation (default: first date)
        window_stop: Last date eligible for validation (default: last date)
        skip: Rows left out between consecutive windows

    Returns:
        Dictionary mapping horizon to list of Window, in date order
    """
    if not lagged:
        raise ValueError("No lagged datasets given")
    if window_length < 0 or skip < 0:
        raise ValueError("window_length and skip must be >= 0")

    datasets = list(lagged.values())
    not_train = [ds.horizon for ds in datasets if ds.mode != "train"]
    if not_train:
        raise ValueError(f"Windows need train-mode datasets; got forecast data for {not_train}")

    index = datasets[0].date_index
    for ds in datasets[1:]:
        if not ds.date_index.equals(index):
            raise ValueError(f"Horizon {ds.horizon} does not share the date index")

    start = index[0] if window_start is None else _coerce_bound(index, window_start)
    stop = index[-1] if window_stop is None else _coerce_bound(index, window_stop)

    if start > stop:
        raise ValueError(f"window_start ({start}) > window_stop ({stop})")
    if start > index[-1] or stop < index[0]:
        raise ValueError(
            f"Window range {start} to {stop} lies outside the data "
            f"({index[0]} to {index[-1]})"
        )

    positions = np.flatnonzero(np.asarray((index >= start) & (index <= stop)))
    if positions.size == 0:
        raise ValueError(f"No dates between {start} and {stop}")

    windows = []
    if window_length == 0:
        windows.append(Window(1, index[positions[0]], index[positions[-1]]))
    else:
        window_id = 1
        for offset in range(0, len(positions), window_length + skip):
            # Final window is truncated at window_stop
            chunk = positions[offset:offset + window_length]
            windows.append(Window(window_id, index[chunk[0]], index[chunk[-1]]))
            window_id += 1

    logger.info(
        f"Generated {len(windows)} validation windows "
        f"({windows[0].start} to {windows[-1].stop}) for {len(lagged)} horizons"
    )
    return {horizon: list(windows) for horizon in lagged}


def validate_windows(windows: Dict[int, List[Window]]) -> Dict[int, bool]:
    """
    Validate windows: ids unique, date ordered, no overlap

    Args:
        windows: Dictionary of windows per horizon

    Returns:
        Dictionary mapping horizon to validation result
    """
    validation_results = {}

    for horizon, horizon_windows in windows.items():
        is_valid = True

        ids = [w.window_id for w in horizon_windows]
        if len(set(ids)) != len(ids):
            logger.error(f"Horizon {horizon}: duplicate window ids {ids}")
            is_valid = False

        for previous, current in zip(horizon_windows, horizon_windows[1:]):
            if previous.stop >= current.start:
                logger.error(
                    f"Horizon {horizon}: windows {previous.window_id} and "
                    f"{current.window_id} overlap or are out of order"
                )
                is_valid = False

        validation_results[horizon] = is_valid

    return validation_results


def serialize_windows(windows: Dict[int, List[Window]]) -> Dict:
    """
    Serialize windows for saving to JSON

    Args:
        windows: Dictionary of windows per horizon

    Returns:
        Serializable dictionary
    """
    return {
        str(horizon): {
            "n_windows": len(horizon_windows),
            "windows": [w.info for w in horizon_windows],
        }
        for horizon, horizon_windows in windows.items()
    }
